class Tween:
    """
    Eases a single float toward a target over a fixed duration of simulated time.

    Uses a cubic ease-out curve: fast start, gentle arrival. Retargeting to the
    value it is already heading for is a no-op, so it is safe to call `to()` on
    every incoming frame.
    """

    def __init__(self, value: float = 0.0) -> None:
        self.value: float = value
        self._start: float = value
        self._target: float = value
        self._duration: float = 0.0
        self._elapsed: float = 0.0

    @property
    def running(self) -> bool:
        return self._elapsed < self._duration

    def to(self, target: float, duration: float) -> None:
        """
        Starts easing from the current value toward `target`.

        Args:
            target (float): Final value.
            duration (float): Seconds of simulated time. <= 0 jumps immediately.
        """
        if target == self._target and (self.running or self.value == target):
            return
        if duration <= 0.0:
            self.set(target)
            return
        self._start = self.value
        self._target = target
        self._duration = duration
        self._elapsed = 0.0

    def set(self, value: float) -> None:
        """Jumps to `value` and cancels any running transition."""
        self.value = value
        self._start = value
        self._target = value
        self._duration = 0.0
        self._elapsed = 0.0

    def step(self, dt: float) -> float:
        if not self.running:
            return self.value
        self._elapsed = min(self._elapsed + dt, self._duration)
        t = self._elapsed / self._duration
        eased = 1.0 - (1.0 - t) ** 3
        self.value = self._start + (self._target - self._start) * eased
        return self.value

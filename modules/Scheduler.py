import heapq
import itertools
from typing import Callable, List, Tuple


class Scheduler:
    """
    A min-heap of (fire_at, action) records driven by the animation clock.

    Nothing here looks at the wall clock: actions fire when the caller advances
    simulated time past their deadline with `run_due()`. Actions scheduled for the
    same instant fire in the order they were added.
    """

    def __init__(self) -> None:
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._queue)

    def call_at(self, when: float, action: Callable[[], None]) -> None:
        heapq.heappush(self._queue, (when, next(self._counter), action))

    def run_due(self, now: float) -> int:
        """
        Runs every action whose deadline is <= `now`.

        Returns:
            int: How many actions fired.
        """
        fired = 0
        while self._queue and self._queue[0][0] <= now:
            _, _, action = heapq.heappop(self._queue)
            action()
            fired += 1
        return fired

    def clear(self) -> None:
        self._queue.clear()

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, List, NamedTuple, Optional, Sequence, Tuple, Union

import Config

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
PALM_BASE = 9
MIDDLE_TIP = 12
RING_TIP = 16
PINKY_TIP = 20
LANDMARK_COUNT = 21


class Landmark(NamedTuple):
    """Minimal stand-in for a MediaPipe NormalizedLandmark."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class GestureThresholds:
    """Vertical fingertip-to-palm distances, in normalized image units."""
    index_curled: float = Config.INDEX_CURLED
    middle_curled: float = Config.MIDDLE_CURLED
    ring_curled: float = Config.RING_CURLED
    pinky_curled: float = Config.PINKY_CURLED
    thumb_curled: float = Config.THUMB_CURLED
    index_extended: float = Config.INDEX_EXTENDED
    middle_extended: float = Config.MIDDLE_EXTENDED
    ring_extended: float = Config.RING_EXTENDED
    pinky_extended: float = Config.PINKY_EXTENDED


DEFAULT_THRESHOLDS = GestureThresholds()


@dataclass(frozen=True)
class FingerState:
    """Everything the classifier derived from one frame of landmarks."""
    wrist: Any
    palm_base: Any
    thumb_curled: bool
    fingers_curled: int
    fingers_extended: int
    is_fist: bool
    is_one_finger: bool
    is_two_fingers: bool
    is_three_fingers: bool

    @property
    def fist_strength(self) -> float:
        """Share of the four fingers that are curled (0.75 or 1.0 while a fist is held)."""
        return self.fingers_curled / 4.0

    @property
    def any_gesture(self) -> bool:
        return self.is_fist or self.is_one_finger or self.is_two_fingers or self.is_three_fingers


def classify(landmarks: Optional[Sequence[Any]], thresholds: GestureThresholds = DEFAULT_THRESHOLDS) -> Optional[FingerState]:
    """
    Converts one frame of hand landmarks into a FingerState.

    A finger counts as curled when its tip sits close to the palm base vertically,
    and as extended when it is clearly away from it. The band between the two
    thresholds is neither, which keeps borderline poses from matching anything.

    Args:
        landmarks (Sequence[Any]): 21 landmarks exposing .x and .y (normalized 0.0-1.0).
        thresholds (GestureThresholds): Per-finger curl/extend thresholds.

    Returns:
        Optional[FingerState]: None when the set is missing or has fewer than 21 points.
    """
    if not landmarks or len(landmarks) < LANDMARK_COUNT:
        return None

    palm_base = landmarks[PALM_BASE]

    def reach(tip: int) -> float:
        return abs(landmarks[tip].y - palm_base.y)

    thumb, index, middle, ring, pinky = (reach(THUMB_TIP), reach(INDEX_TIP), reach(MIDDLE_TIP),
                                         reach(RING_TIP), reach(PINKY_TIP))
    t = thresholds

    # 1. Curled: fingertip folded back to palm height
    curled = (index < t.index_curled, middle < t.middle_curled,
              ring < t.ring_curled, pinky < t.pinky_curled)
    thumb_curled = thumb < t.thumb_curled

    # 2. Extended: fingertip clearly above (or below) the palm
    index_ext = index > t.index_extended
    middle_ext = middle > t.middle_extended
    ring_ext = ring > t.ring_extended
    pinky_ext = pinky > t.pinky_extended

    fingers_curled = sum(curled)
    fingers_extended = sum((index_ext, middle_ext, ring_ext, pinky_ext))

    return FingerState(
        wrist=landmarks[WRIST],
        palm_base=palm_base,
        thumb_curled=thumb_curled,
        fingers_curled=fingers_curled,
        fingers_extended=fingers_extended,
        is_fist=fingers_curled >= 3 and thumb_curled,
        is_one_finger=index_ext and not middle_ext and not ring_ext and not pinky_ext,
        is_two_fingers=index_ext and middle_ext and not ring_ext and not pinky_ext,
        is_three_fingers=index_ext and middle_ext and ring_ext and not pinky_ext,
    )


# --- Gesture events ---

@dataclass(frozen=True)
class OneFinger:
    pass


@dataclass(frozen=True)
class TwoFingers:
    pass


@dataclass(frozen=True)
class ThreeFingers:
    pass


@dataclass(frozen=True)
class Pinch:
    strength: float
    palm_x: float
    palm_y: float


@dataclass(frozen=True)
class NoGesture:
    pass


Gesture = Union[OneFinger, TwoFingers, ThreeFingers, Pinch, NoGesture]
Callback = Callable[[Gesture], None]


def _ignore(event: Gesture) -> None:
    pass


class GestureDispatcher:
    """
    Turns per-frame FingerStates into gesture events.

    The finger-count gestures are edge triggered: each has a latch that fires its
    callback on the frame the pose first appears and re-arms on the first frame it
    is gone, so holding a pose fires exactly once. The fist is continuous and
    reports its strength every frame it is held. A frame with nothing recognised
    (including no hand at all) reports NoGesture.
    """

    def __init__(self,
                 on_one_finger: Callback = _ignore,
                 on_two_fingers: Callback = _ignore,
                 on_three_fingers: Callback = _ignore,
                 on_pinch: Callback = _ignore,
                 on_no_gesture: Callback = _ignore,
                 thresholds: GestureThresholds = DEFAULT_THRESHOLDS) -> None:
        self.thresholds: GestureThresholds = thresholds
        self.on_pinch: Callback = on_pinch
        self.on_no_gesture: Callback = on_no_gesture

        # (event, callback) per discrete gesture, latches kept alongside
        self._discrete: List[Tuple[Gesture, Callback]] = [
            (OneFinger(), on_one_finger),
            (TwoFingers(), on_two_fingers),
            (ThreeFingers(), on_three_fingers),
        ]
        self.latched: List[bool] = [False, False, False]

    def process(self, landmarks: Optional[Sequence[Any]]) -> List[Gesture]:
        """
        Classifies one frame and fires callbacks.

        Returns:
            List[Gesture]: The events emitted for this frame, in callback order.
        """
        return self.dispatch(classify(landmarks, self.thresholds))

    def dispatch(self, state: Optional[FingerState]) -> List[Gesture]:
        emitted: List[Gesture] = []
        held = (
            state is not None and state.is_one_finger,
            state is not None and state.is_two_fingers,
            state is not None and state.is_three_fingers,
        )

        # 1. Edge-triggered finger counts
        for slot, ((event, callback), active) in enumerate(zip(self._discrete, held)):
            if active and not self.latched[slot]:
                self.latched[slot] = True
                logger.debug("Gesture %s", type(event).__name__)
                callback(event)
                emitted.append(event)
            elif not active:
                self.latched[slot] = False

        # 2. Continuous fist / nothing at all
        if state is not None and state.is_fist:
            pinch = Pinch(state.fist_strength, float(state.palm_base.x), float(state.palm_base.y))
            self.on_pinch(pinch)
            emitted.append(pinch)
        elif state is None or not state.any_gesture:
            none = NoGesture()
            self.on_no_gesture(none)
            emitted.append(none)

        return emitted


class GestureMailbox:
    """
    Hands gesture events from the perception side to the animation tick.

    Continuous events (Pinch / NoGesture) share one slot where the latest wins;
    the tick only cares about the most recent hand pose. One-shot events queue
    up so none is lost when several perception frames land between two ticks.
    """

    def __init__(self) -> None:
        self._latest: Optional[Union[Pinch, NoGesture]] = None
        self._pending: Deque[Gesture] = deque()

    def post(self, event: Gesture) -> None:
        if isinstance(event, (Pinch, NoGesture)):
            self._latest = event
        else:
            self._pending.append(event)

    def take(self) -> Tuple[List[Gesture], Optional[Union[Pinch, NoGesture]]]:
        """
        Drains the mailbox.

        Returns:
            Tuple: (one-shot events in arrival order, latest continuous event or None).
        """
        pending = list(self._pending)
        self._pending.clear()
        latest, self._latest = self._latest, None
        return pending, latest

    def __bool__(self) -> bool:
        return self._latest is not None or bool(self._pending)

from typing import Callable, List

import numpy as np
import pytest

from GestureEngine import Landmark

PALM_X = 0.5
PALM_Y = 0.6

# Vertical tip-to-palm distances
EXTENDED = 0.30   # clearly above the palm
CURLED = 0.05     # folded to palm height
BETWEEN = 0.135   # neither curled nor extended for the four fingers


def make_hand(index: float = EXTENDED,
              middle: float = EXTENDED,
              ring: float = EXTENDED,
              pinky: float = EXTENDED,
              thumb: float = EXTENDED,
              palm_x: float = PALM_X,
              palm_y: float = PALM_Y) -> List[Landmark]:
    """21 landmarks with each fingertip the given distance above the palm base."""
    hand = [Landmark(palm_x, palm_y) for _ in range(21)]
    for tip, reach in ((4, thumb), (8, index), (12, middle), (16, ring), (20, pinky)):
        hand[tip] = Landmark(palm_x, palm_y - reach)
    return hand


@pytest.fixture
def hand() -> Callable[..., List[Landmark]]:
    return make_hand


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)

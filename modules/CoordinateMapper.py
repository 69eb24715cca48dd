from typing import Tuple

import Config


class CoordinateMapper:
    """
    Turns a palm position in normalized image space (0.0 to 1.0) into a rotation
    target for the tree group.

    1. Centering: moves the origin from the top-left corner to the frame center
       and stretches it to -1..1.
    2. Scaling: vertical palm motion tilts the tree (pitch), horizontal palm
       motion turns it (yaw). Yaw is negated so moving the hand right turns the
       front of the tree right, like a mirror.
    """

    def __init__(self, speed_x: float = Config.ROTATION_SPEED_X, speed_y: float = Config.ROTATION_SPEED_Y) -> None:
        """
        Args:
            speed_x (float): Radians of pitch per unit of centered palm Y.
            speed_y (float): Radians of yaw per unit of centered palm X.
        """
        self.speed_x: float = speed_x
        self.speed_y: float = speed_y

    def center(self, x_raw: float, y_raw: float) -> Tuple[float, float]:
        """Maps 0..1 image coordinates to -1..1 with 0 at the frame center."""
        return (x_raw - 0.5) * 2.0, (y_raw - 0.5) * 2.0

    def to_rotation(self, x_raw: float, y_raw: float) -> Tuple[float, float]:
        """
        Returns:
            Tuple[float, float]: (pitch, yaw) in radians for the tree group.
        """
        cx, cy = self.center(x_raw, y_raw)
        return cy * self.speed_x, -cx * self.speed_y

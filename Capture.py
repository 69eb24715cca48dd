import logging
import os
from typing import Optional, Tuple

import cv2
import numpy as np

import Config

logger = logging.getLogger(__name__)


class CameraAccessError(IOError):
    """The webcam could not be opened (missing device or permission refused)."""

    USER_MESSAGE: str = 'Camera access denied. Please allow camera permissions.'


class Capture:
    """
    A wrapper class for cv2.VideoCapture that feeds frames to the hand tracker.

    Note:
        Optional Video4Linux2 tuning relies on the 'v4l2-ctl' command line
        utility, which is specific to Linux environments.
    """

    def __init__(self,
                 webcam_id: int = Config.WEBCAM_ID,
                 width: int = Config.CAMERA_WIDTH,
                 height: int = Config.CAMERA_HEIGHT,
                 fps: int = Config.TARGET_FPS) -> None:
        """
        Opens the capture device and applies the stream properties.

        Raises:
            CameraAccessError: If the webcam cannot be opened.
        """
        if Config.FORCE_V4L2_SETTINGS:
            self.force_camera_settings(webcam_id)

        self.cap: cv2.VideoCapture = cv2.VideoCapture(webcam_id)

        # CODEC must be set first for some cameras to accept higher resolutions
        self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter.fourcc(*Config.CODEC))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self.cap.set(cv2.CAP_PROP_FPS, fps)

        if not self.cap.isOpened():
            raise CameraAccessError(f"{CameraAccessError.USER_MESSAGE} (webcam ID {webcam_id})")

        logger.info("Camera %d opened at %dx%d", webcam_id,
                    int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))

    @staticmethod
    def force_camera_settings(webcam_id: int) -> None:
        """
        Disables dynamic framerate reduction in low light and selects aperture
        priority auto exposure, so the frame rate stays steady.
        """
        device = f"/dev/video{webcam_id}"
        os.system(f"v4l2-ctl -d {device} --set-ctrl=exposure_dynamic_framerate=0")
        os.system(f"v4l2-ctl -d {device} --set-ctrl=auto_exposure=3")

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Reads the next frame from the video stream.

        Returns:
            Tuple[bool, Optional[np.ndarray]]: success flag and BGR frame (None on failure).
        """
        return self.cap.read()

    def release(self) -> None:
        if self.cap.isOpened():
            self.cap.release()
            logger.info("Camera released")

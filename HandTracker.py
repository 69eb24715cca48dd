import enum
import logging
import time
from typing import Any, List, Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

import Config

logger = logging.getLogger(__name__)


class TrackerStatus(enum.Enum):
    LOADING = 'LOADING'
    ACTIVE = 'ACTIVE'
    ERROR = 'ERROR'


class PerceptionUnavailableError(RuntimeError):
    """The hand landmarker could not be created within the retry window."""

    USER_MESSAGE: str = 'MediaPipe failed to load. Please check the model file and restart.'


class HandTracker:
    """
    A wrapper for MediaPipe's Hand Landmarker in LIVE_STREAM mode.

    MediaPipe delivers results on its own thread through a callback; the callback
    only stores the latest result. The owner polls `poll_result()` from the event
    loop, so gesture handling never runs on MediaPipe's thread.
    """

    def __init__(self, model_path: str = Config.MODEL_PATH) -> None:
        self.model_path: str = model_path
        self.status: TrackerStatus = TrackerStatus.LOADING
        self.error_message: Optional[str] = None
        self.landmarker: Optional[vision.HandLandmarker] = None

        # (result, timestamp_ms) written by the MediaPipe thread as a single assignment
        self._latest: Tuple[Optional[vision.HandLandmarkerResult], int] = (None, 0)
        self._polled_timestamp_ms: int = 0

        # MediaPipe requires strictly increasing timestamps
        self.latest_timestamp_ms: int = 0

    def start(self,
              attempts: int = Config.TRACKER_INIT_ATTEMPTS,
              retry_delay_s: float = Config.TRACKER_INIT_RETRY_S) -> None:
        """
        Creates the landmarker, retrying for a bounded window.

        Raises:
            PerceptionUnavailableError: If every attempt failed. The status is left
                                        at ERROR; the caller should not retry.
        """
        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=self.model_path),
            running_mode=vision.RunningMode.LIVE_STREAM,
            num_hands=Config.MAX_HANDS,
            min_hand_detection_confidence=Config.MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=Config.MIN_TRACKING_CONFIDENCE,
            result_callback=self._on_result,
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                self.landmarker = vision.HandLandmarker.create_from_options(options)
            except (RuntimeError, ValueError, OSError) as e:
                last_error = e
                logger.debug("Landmarker attempt %d/%d failed: %s", attempt, attempts, e)
                time.sleep(retry_delay_s)
                continue
            self.status = TrackerStatus.ACTIVE
            logger.info("Hand landmarker ready (%s)", self.model_path)
            return

        self.status = TrackerStatus.ERROR
        self.error_message = PerceptionUnavailableError.USER_MESSAGE
        raise PerceptionUnavailableError(f"{self.error_message} ({last_error})") from last_error

    def _on_result(self, result: vision.HandLandmarkerResult, output_image: mp.Image, timestamp_ms: int) -> None:
        self._latest = (result, timestamp_ms)

    def detect_async(self, frame_bgr: np.ndarray, timestamp_ms: int) -> None:
        """
        Sends an OpenCV (BGR) frame to the MediaPipe graph. Frames with a
        timestamp that is not newer than the last one are dropped.
        """
        if self.landmarker is None or timestamp_ms <= self.latest_timestamp_ms:
            return
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        self.landmarker.detect_async(mp_image, timestamp_ms)
        self.latest_timestamp_ms = timestamp_ms

    def poll_result(self) -> Optional[vision.HandLandmarkerResult]:
        """
        Returns the newest result if it has not been polled before, else None.
        """
        result, timestamp_ms = self._latest
        if result is None or timestamp_ms <= self._polled_timestamp_ms:
            return None
        self._polled_timestamp_ms = timestamp_ms
        return result

    @staticmethod
    def first_hand(result: Optional[vision.HandLandmarkerResult]) -> Optional[List[Any]]:
        """The landmarks of the first detected hand, or None when no hand is visible."""
        if result is None or not result.hand_landmarks:
            return None
        return result.hand_landmarks[0]

    def close(self) -> None:
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None
            logger.info("Hand landmarker closed")

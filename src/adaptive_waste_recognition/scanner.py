"""Live camera pipeline: sampled frames, smoothing and stream filtering."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import List, Optional

from .config import DetectorConfig
from .image_utils import ImageInput
from .smoothing import TemporalSmoother, filter_stream
from .types import FrameDetection, VisionResult
from .vision import VisionWasteDetector

logger = logging.getLogger(__name__)


@dataclass
class ProcessingStats:
    total_processed: int = 0
    successful: int = 0
    average_time_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.total_processed == 0:
            return 0.0
        return 100.0 * self.successful / self.total_processed


class CameraScanner:
    """Feeds camera frames through the vision detector at a fixed cadence."""

    def __init__(
        self,
        detector: Optional[VisionWasteDetector] = None,
        smoother: Optional[TemporalSmoother] = None,
        config: Optional[DetectorConfig] = None,
    ) -> None:
        self.config = config or DetectorConfig()
        self.detector = detector or VisionWasteDetector(self.config)
        self.smoother = smoother or TemporalSmoother(self.config)
        self.stats = ProcessingStats()
        self._lock = threading.Lock()
        self._last_processed: Optional[float] = None

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    def detect_streaming(self, frame: ImageInput, timestamp: Optional[float] = None) -> List[FrameDetection]:
        """Process ``frame`` if its sampling slot is due.

        ``timestamp`` is in milliseconds and defaults to the wall clock. Frames
        arriving before the processing interval has elapsed, or while another
        frame is being processed, yield no detections.
        """

        if timestamp is None:
            timestamp = time.time() * 1000.0
        if not self._lock.acquire(blocking=False):
            logger.debug("Frame at %.0f skipped, scanner busy", timestamp)
            return []
        try:
            if (
                self._last_processed is not None
                and timestamp - self._last_processed < self.config.processing_interval_ms
            ):
                return []
            self._last_processed = timestamp

            result = self.detector.detect(frame)
            self._record(result)
            if not result.success:
                logger.debug("Frame at %.0f produced no result: %s", timestamp, result.error)
                return []

            smoothed = self.smoother.smooth(result.objects, timestamp)
            visible = filter_stream(smoothed, self.config.min_stream_confidence)
            frame_id = f"frame_{int(timestamp)}"
            return [
                replace(
                    detection,
                    timestamp=timestamp,
                    frame_id=frame_id,
                    stability_score=self.smoother.stability_score(detection.category),
                )
                for detection in visible
            ]
        finally:
            self._lock.release()

    def reset(self) -> None:
        with self._lock:
            self.smoother.reset()
            self.stats = ProcessingStats()
            self._last_processed = None

    def _record(self, result: VisionResult) -> None:
        stats = self.stats
        total_time = stats.average_time_ms * stats.total_processed + result.processing_time_ms
        stats.total_processed += 1
        if result.success:
            stats.successful += 1
        stats.average_time_ms = total_time / stats.total_processed

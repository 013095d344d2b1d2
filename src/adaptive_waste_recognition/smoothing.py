"""Temporal smoothing of camera detections across recent frames."""

from __future__ import annotations

import math
from collections import Counter, deque
from dataclasses import replace
from typing import Deque, List, Optional, Sequence, Tuple

from .config import DetectorConfig
from .types import DominantColor, FrameDetection, Stability, VisualSignature

_MAX_COLOR_DISTANCE = 255.0 * math.sqrt(3.0)


def _clip_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def color_similarity(colors_a: Sequence[DominantColor], colors_b: Sequence[DominantColor]) -> float:
    """Greedy best-pair similarity of two dominant colour lists."""

    if not colors_a or not colors_b:
        return 0.0
    used = set()
    total = 0.0
    for color in colors_a:
        best_score = 0.0
        best_index = -1
        for index, other in enumerate(colors_b):
            if index in used:
                continue
            distance = math.dist(color.rgb, other.rgb)
            score = max(0.0, 1.0 - distance / _MAX_COLOR_DISTANCE)
            if score > best_score:
                best_score = score
                best_index = index
        if best_index >= 0:
            used.add(best_index)
            total += best_score
    return total / len(colors_a)


def signature_similarity(a: Optional[VisualSignature], b: Optional[VisualSignature]) -> float:
    """Average closeness of aspect ratio, edge intensity and colours."""

    if a is None or b is None:
        return 1.0
    largest_aspect = max(a.aspect_ratio, b.aspect_ratio)
    aspect = 1.0 if largest_aspect <= 0 else 1.0 - abs(a.aspect_ratio - b.aspect_ratio) / largest_aspect
    edge = 1.0 - abs(a.edge_intensity - b.edge_intensity)
    color = color_similarity(a.dominant_colors, b.dominant_colors)
    return (_clip_unit(aspect) + _clip_unit(edge) + _clip_unit(color)) / 3.0


def detection_similarity(a: FrameDetection, b: FrameDetection) -> float:
    return (a.bounding_box.iou(b.bounding_box) + signature_similarity(a.signature, b.signature)) / 2.0


def filter_stream(detections: Sequence[FrameDetection], min_confidence: int = 50) -> List[FrameDetection]:
    """Drop detections too weak or too vague to show on a live feed."""

    return [
        detection
        for detection in detections
        if detection.confidence >= min_confidence
        and detection.signature is not None
        and detection.name != "Unknown Object"
    ]


class TemporalSmoother:
    """Stabilises per-frame detections against a sliding window of history.

    A detection is matched against earlier frames only, so an object seen
    once is ``low``, twice ``medium`` and ``confidence_smoothing`` times or
    more ``high`` with an averaged confidence.
    """

    def __init__(self, config: Optional[DetectorConfig] = None) -> None:
        self.config = config or DetectorConfig()
        self._history: Deque[Tuple[float, Tuple[FrameDetection, ...]]] = deque()

    def __len__(self) -> int:
        return len(self._history)

    def reset(self) -> None:
        self._history.clear()

    def smooth(self, detections: Sequence[FrameDetection], timestamp: float) -> List[FrameDetection]:
        """Smooth one frame; ``timestamp`` is in milliseconds."""

        self._prune(timestamp)

        smoothed: List[FrameDetection] = []
        for detection in detections:
            matches = self._similar(detection)
            observations = len(matches) + 1
            if observations >= self.config.confidence_smoothing:
                confidences = [match.confidence for match in matches] + [detection.confidence]
                smoothed.append(
                    replace(
                        detection,
                        confidence=int(round(sum(confidences) / len(confidences))),
                        stability=Stability.HIGH,
                        detection_count=observations,
                    )
                )
            elif observations > 1:
                smoothed.append(replace(detection, stability=Stability.MEDIUM, detection_count=observations))
            else:
                smoothed.append(replace(detection, stability=Stability.LOW, detection_count=1))

        self._history.append((timestamp, tuple(detections)))
        return smoothed

    def stability_score(self, category: str) -> float:
        """How often ``category`` appears in the window relative to the commonest one."""

        counts = Counter(
            detection.category for _, frame in self._history for detection in frame
        )
        if not counts:
            return 0.0
        return counts.get(category, 0) / max(counts.values())

    def _prune(self, timestamp: float) -> None:
        limit = timestamp - self.config.history_window_ms
        self._history = deque(entry for entry in self._history if entry[0] > limit)

    def _similar(self, target: FrameDetection) -> List[FrameDetection]:
        return [
            detection
            for _, frame in self._history
            for detection in frame
            if detection.category == target.category
            and detection_similarity(detection, target) > self.config.similarity_threshold
        ]

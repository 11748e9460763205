from collections import Counter
from typing import Sequence

from fruit_detector.core.types import Detection


def count_by_label(detections: Sequence[Detection]) -> dict[str, int]:
    # Counter keeps first-seen order, matching the detection list
    return dict(Counter(detection.label for detection in detections))


def format_detection_line(detection: Detection) -> str:
    line = f'Detected: {detection.label} at ({detection.box.x}, {detection.box.y})'
    if detection.score is not None:
        line += f' with score: {detection.score:.4f}'
    return line


def build_report(detections: Sequence[Detection]) -> list[str]:
    lines = [format_detection_line(detection) for detection in detections]
    lines.append(f'Detected objects: {len(detections)}')
    return lines

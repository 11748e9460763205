from fruit_detector.core.types import Box


def compute_iou(left: Box, right: Box) -> float:
    ix1 = max(left.x, right.x)
    iy1 = max(left.y, right.y)
    ix2 = min(left.x2, right.x2)
    iy2 = min(left.y2, right.y2)
    overlap = max(0, ix2 - ix1) * max(0, iy2 - iy1)
    if overlap <= 0:
        return 0.0
    return overlap / float(left.area + right.area - overlap)


def fits_inside(box: Box, size: tuple[int, int]) -> bool:
    width, height = size
    return box.x2 <= width and box.y2 <= height

import logging
import math

import numpy as np

from fruit_detector.core.geometry import fits_inside
from fruit_detector.core.types import Box, Candidate

logger = logging.getLogger('fruit_detector.extractor')


def extract_candidates(
    grid,
    template_width: int,
    template_height: int,
    label: str,
    threshold: float = 0.6,
    source_size: tuple[int, int] | None = None,
) -> list[Candidate]:
    """Turn a similarity grid into candidates, scanning rows then columns.

    ``grid[y][x]`` scores the template placed with its top-left corner at
    ``(x, y)``. When ``source_size`` (width, height) is given, placements that
    would cross the source bounds are dropped.
    """
    scores = np.asarray(grid, dtype=np.float64)
    if scores.size == 0:
        return []
    if scores.ndim != 2:
        raise ValueError(f'Similarity grid must be 2D, got shape {scores.shape}')

    candidates: list[Candidate] = []
    # np.argwhere walks in C order, so row index outer, column index inner.
    for y, x in np.argwhere(scores >= threshold):
        score = float(scores[y, x])
        if not math.isfinite(score):
            continue
        box = Box(x=int(x), y=int(y), width=template_width, height=template_height)
        if source_size is not None and not fits_inside(box, source_size):
            continue
        candidates.append(Candidate(box=box, score=score, label=label))
        logger.debug('candidate label=%s x=%s y=%s score=%.4f', label, box.x, box.y, score)
    return candidates

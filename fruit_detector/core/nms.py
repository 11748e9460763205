from enum import Enum

from fruit_detector.core.geometry import compute_iou
from fruit_detector.core.types import Candidate


class NmsPolicy(str, Enum):
    # Highest remaining score survives each round.
    SCORE_SORTED = 'score_sorted'
    # First remaining candidate in input order survives, whatever its score.
    FIRST_IN_ORDER = 'first_in_order'


def _ordered_pool(candidates: list[Candidate], policy: NmsPolicy) -> list[Candidate]:
    if policy == NmsPolicy.FIRST_IN_ORDER:
        return list(candidates)
    # sorted() is stable, equal scores keep their scan order
    return sorted(candidates, key=lambda item: item.score, reverse=True)


def suppress(
    candidates: list[Candidate],
    iou_threshold: float = 0.5,
    policy: NmsPolicy | str = NmsPolicy.SCORE_SORTED,
) -> list[Candidate]:
    """Greedy non-maximum suppression.

    Each round the head of the pool survives and every remaining candidate
    overlapping it with IoU strictly above ``iou_threshold`` is dropped.
    Survivors are returned in selection order.
    """
    pool = _ordered_pool(candidates, NmsPolicy(policy))
    survivors: list[Candidate] = []
    while pool:
        best = pool.pop(0)
        survivors.append(best)
        pool = [item for item in pool if compute_iou(best.box, item.box) <= iou_threshold]
    return survivors

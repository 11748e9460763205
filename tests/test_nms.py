import itertools

import numpy as np
import pytest

from fruit_detector.core.extractor import extract_candidates
from fruit_detector.core.geometry import compute_iou
from fruit_detector.core.nms import NmsPolicy, suppress
from fruit_detector.core.types import Box, Candidate


def _candidate(x: int, y: int, score: float, width: int = 10, height: int = 10, label: str = 'Apple') -> Candidate:
    return Candidate(box=Box(x=x, y=y, width=width, height=height), score=score, label=label)


def _random_candidates(seed: int, count: int = 60) -> list[Candidate]:
    rng = np.random.default_rng(seed)
    return [
        _candidate(int(x), int(y), float(s), width=int(w), height=int(h))
        for x, y, w, h, s in zip(
            rng.integers(0, 40, count),
            rng.integers(0, 40, count),
            rng.integers(4, 16, count),
            rng.integers(4, 16, count),
            rng.uniform(0.6, 1.0, count),
        )
    ]


def test_empty_pool_yields_nothing():
    assert suppress([], 0.5) == []


def test_first_in_order_keeps_first_even_if_lower_score():
    first = _candidate(0, 0, 0.9, width=17)
    second = _candidate(3, 0, 0.95, width=17)
    assert compute_iou(first.box, second.box) == pytest.approx(0.7)

    survivors = suppress([first, second], 0.5, NmsPolicy.FIRST_IN_ORDER)

    assert survivors == [first]


def test_score_sorted_keeps_highest_score():
    first = _candidate(0, 0, 0.9, width=17)
    second = _candidate(3, 0, 0.95, width=17)

    survivors = suppress([first, second], 0.5, NmsPolicy.SCORE_SORTED)

    assert survivors == [second]


def test_policy_accepts_plain_strings():
    first = _candidate(0, 0, 0.9)
    second = _candidate(1, 0, 0.95)

    assert suppress([first, second], 0.5, 'first_in_order') == [first]
    with pytest.raises(ValueError):
        suppress([first, second], 0.5, 'largest_area')


def test_overlap_equal_to_threshold_is_kept():
    # overlap 5x10=50, union 150 -> iou 1/3
    left = _candidate(0, 0, 0.9)
    right = _candidate(5, 0, 0.8)

    assert suppress([left, right], 1 / 3, NmsPolicy.FIRST_IN_ORDER) == [left, right]
    assert suppress([left, right], 0.3, NmsPolicy.FIRST_IN_ORDER) == [left]


def test_zero_threshold_keeps_only_first_of_an_overlapping_chain():
    chain = [_candidate(i, 0, 0.9) for i in range(5)]

    assert suppress(chain, 0.0, NmsPolicy.FIRST_IN_ORDER) == [chain[0]]


def test_threshold_one_keeps_everything_but_identical_boxes():
    a = _candidate(0, 0, 0.9)
    b = _candidate(1, 0, 0.8)

    assert suppress([a, b], 1.0, NmsPolicy.FIRST_IN_ORDER) == [a, b]
    assert suppress([a, a], 0.99, NmsPolicy.FIRST_IN_ORDER) == [a]


def test_score_sorted_ties_keep_input_order():
    a = _candidate(0, 0, 0.8)
    b = _candidate(1, 1, 0.8)

    assert suppress([a, b], 0.5, NmsPolicy.SCORE_SORTED) == [a]
    assert suppress([b, a], 0.5, NmsPolicy.SCORE_SORTED) == [b]


@pytest.mark.parametrize('policy', list(NmsPolicy))
@pytest.mark.parametrize('threshold', [0.0, 0.3, 0.5, 0.8])
def test_survivors_are_bounded_and_pairwise_separated(policy, threshold):
    candidates = _random_candidates(seed=5)

    survivors = suppress(candidates, threshold, policy)

    assert 1 <= len(survivors) <= len(candidates)
    for left, right in itertools.combinations(survivors, 2):
        assert compute_iou(left.box, right.box) <= threshold


@pytest.mark.parametrize('policy', list(NmsPolicy))
def test_suppress_is_idempotent(policy):
    candidates = _random_candidates(seed=9)

    once = suppress(candidates, 0.4, policy)

    assert suppress(once, 0.4, policy) == once


def test_first_in_order_is_order_sensitive_but_still_valid():
    candidates = _random_candidates(seed=21)

    forward = suppress(candidates, 0.3, NmsPolicy.FIRST_IN_ORDER)
    backward = suppress(list(reversed(candidates)), 0.3, NmsPolicy.FIRST_IN_ORDER)

    assert forward[0] == candidates[0]
    assert backward[0] == candidates[-1]
    for survivors in (forward, backward):
        for left, right in itertools.combinations(survivors, 2):
            assert compute_iou(left.box, right.box) <= 0.3


def test_three_by_three_grid_with_small_template_keeps_vertical_neighbours():
    grid = [[0.5, 0.7, 0.5], [0.5, 0.9, 0.5], [0.5, 0.7, 0.5]]
    candidates = extract_candidates(grid, 2, 2, 'Apple', threshold=0.6)

    # 2x2 boxes one row apart overlap with iou 1/3, below 0.5
    survivors = suppress(candidates, 0.5, NmsPolicy.FIRST_IN_ORDER)

    assert [(c.box.x, c.box.y) for c in survivors] == [(1, 0), (1, 1), (1, 2)]


@pytest.mark.parametrize(
    'policy, expected',
    [(NmsPolicy.FIRST_IN_ORDER, (1, 0, 0.7)), (NmsPolicy.SCORE_SORTED, (1, 1, 0.9))],
)
def test_three_by_three_grid_with_large_template_collapses_to_one(policy, expected):
    grid = [[0.5, 0.7, 0.5], [0.5, 0.9, 0.5], [0.5, 0.7, 0.5]]
    candidates = extract_candidates(grid, 8, 8, 'Apple', threshold=0.6)

    survivors = suppress(candidates, 0.5, policy)

    assert len(candidates) == 3
    assert [(c.box.x, c.box.y, c.score) for c in survivors] == [expected]

import random

import pytest

from knowledge_quiz.domain.models import HistoryItem
from knowledge_quiz.engine.scoring import ScoreConfig, clamp_score, fold_scores, is_review_eligible, score_board


@pytest.mark.parametrize("raw, expected", [(7, 5), (-1, 0), ("3", 3), (2.6, 3), (0, 0), (5, 5)])
def test_clamp_score(raw, expected):
    assert clamp_score(raw) == expected


def test_clamp_score_rejects_booleans():
    with pytest.raises(ValueError):
        clamp_score(True)


def test_fold_ignores_unscored_items():
    tally = fold_scores([3, None, 5])

    assert (tally.total, tally.possible, tally.answered) == (8, 10, 2)
    assert tally.ratio == pytest.approx(0.8)


def test_empty_fold_has_zero_ratio():
    tally = fold_scores([])

    assert (tally.total, tally.possible) == (0, 0)
    assert tally.ratio == 0.0


def test_threshold_is_strict():
    assert is_review_eligible(HistoryItem("q", "a", awarded_score=2))
    assert not is_review_eligible(HistoryItem("q", "a", awarded_score=3))
    assert not is_review_eligible(HistoryItem("q", "a"))
    assert is_review_eligible(HistoryItem("q", "a", awarded_score=3), ScoreConfig(review_threshold=4))


def test_score_board_splits_fresh_and_reviewed():
    history = [
        HistoryItem("q1", "a", awarded_score=4, first_score=1, review_count=1),
        HistoryItem("q2", "a", awarded_score=5, first_score=5),
    ]

    board = score_board(history)

    assert (board.fresh.total, board.fresh.possible) == (6, 10)
    assert (board.reviewed.total, board.reviewed.possible) == (4, 5)
    assert (board.combined.total, board.combined.possible) == (9, 10)


def test_folded_totals_stay_in_range():
    rng = random.Random(42)
    for _ in range(200):
        history = [
            HistoryItem(f"q{i}", "a", awarded_score=rng.choice([None, 0, 1, 2, 3, 4, 5]))
            for i in range(rng.randint(0, 12))
        ]
        board = score_board(history)
        scored = [i for i in history if i.is_scored]

        assert 0 <= board.combined.total <= board.combined.possible
        assert board.combined.possible == 5 * len(scored)
        assert board.combined.total == sum(i.awarded_score for i in scored)

"""
Tests for the Ranking Engine

Verifies the sort contract (total desc, then average desc, then stable),
division and month filtering, badges and score bands.

Run: pytest tests/test_ranking.py -v
"""

from datetime import date

import pytest

from ecoscore.calculators.ranking import (
    compute_division_leaderboard,
    compute_leaderboard,
    rank_badge,
    score_band,
    top_n,
    with_ranks,
)
from ecoscore.errors import ValidationError


def ids(leaderboard):
    return [s.classroom.id for s in leaderboard]


class TestSortContract:
    """Total score descending, ties broken by average score"""

    def test_orders_by_total_descending(self, record):
        evaluations = [
            record('low', date(2024, 3, 1), 40),
            record('high', date(2024, 3, 1), 95),
            record('mid', date(2024, 3, 1), 70),
        ]

        assert ids(compute_leaderboard(evaluations)) == ['high', 'mid', 'low']

    def test_equal_totals_prefer_higher_average(self, record):
        """180 over two visits beats 180 over three."""
        # Arrange
        evaluations = [
            record('steady', date(2024, 3, 1), 60),
            record('steady', date(2024, 3, 2), 60),
            record('steady', date(2024, 3, 3), 60),
            record('sharp', date(2024, 3, 1), 90),
            record('sharp', date(2024, 3, 2), 90),
        ]

        # Act
        board = compute_leaderboard(evaluations)

        # Assert
        assert ids(board) == ['sharp', 'steady']
        assert [s.total_score for s in board] == [180, 180]

    def test_full_ties_keep_aggregation_order(self, record):
        evaluations = [
            record('first', date(2024, 3, 1), 50),
            record('second', date(2024, 3, 1), 50),
            record('third', date(2024, 3, 1), 50),
        ]

        assert ids(compute_leaderboard(evaluations)) == ['first', 'second', 'third']

    def test_same_input_same_order(self, record):
        """Ranking is deterministic."""
        evaluations = [record(f'c{i % 5}', date(2024, 3, 1 + i), (i * 37) % 100) for i in range(20)]

        assert ids(compute_leaderboard(evaluations)) == ids(compute_leaderboard(evaluations))

    def test_pairwise_contract_holds(self, record):
        evaluations = [record(f'c{i % 7}', date(2024, 3, 1 + i % 28), (i * 53) % 100) for i in range(40)]

        board = compute_leaderboard(evaluations)

        for a, b in zip(board, board[1:]):
            assert a.total_score >= b.total_score
            if a.total_score == b.total_score:
                assert a.average_score >= b.average_score

    def test_seeded_classrooms_rank_last(self, record):
        classrooms = [{'id': 'idle', 'name': 'Idle', 'grade': '1', 'division': 'Elementary'}]

        board = compute_leaderboard([record('busy', date(2024, 3, 1), 10)], classrooms=classrooms)

        assert ids(board) == ['busy', 'idle']


class TestDivisionLeaderboard:
    """Per-division views"""

    @pytest.fixture
    def evaluations(self, record):
        return [
            record('e1', date(2024, 3, 5), 70, division='Elementary'),
            record('e2', date(2024, 3, 6), 90, division='Elementary'),
            record('h1', date(2024, 3, 7), 99, division='High School'),
            record('e1', date(2024, 4, 1), 100, division='Elementary'),
            record('e3', date(2024, 3, 9), 50, division='Elementary'),
        ]

    def test_only_the_division(self, evaluations):
        board = compute_division_leaderboard('High School', evaluations)
        assert ids(board) == ['h1']

    def test_all_time_ranking(self, evaluations):
        board = compute_division_leaderboard('Elementary', evaluations)
        assert ids(board) == ['e1', 'e2', 'e3']

    def test_month_window(self, evaluations):
        """April's evaluation does not count toward March."""
        board = compute_division_leaderboard('Elementary', evaluations, year=2024, month=3)

        assert ids(board) == ['e2', 'e1', 'e3']
        assert board[1].total_score == 70

    def test_limit(self, evaluations):
        board = compute_division_leaderboard('Elementary', evaluations, year=2024, month=3, limit=2)
        assert ids(board) == ['e2', 'e1']

    def test_empty_division(self, evaluations):
        assert compute_division_leaderboard('Pre-School', evaluations) == []

    @pytest.mark.parametrize('limit', [0, -1])
    def test_limit_below_one(self, evaluations, limit):
        with pytest.raises(ValidationError) as exc_info:
            compute_division_leaderboard('Elementary', evaluations, limit=limit)
        assert exc_info.value.field == 'limit'


class TestTopN:
    def test_defaults_to_configured_three(self, record):
        board = compute_leaderboard([record(f'c{i}', date(2024, 3, 1), 10 * i) for i in range(6)])
        assert ids(top_n(board)) == ['c5', 'c4', 'c3']

    def test_explicit_n(self, record):
        board = compute_leaderboard([record(f'c{i}', date(2024, 3, 1), 10 * i) for i in range(6)])
        assert len(top_n(board, 5)) == 5

    def test_fewer_than_n(self, record):
        board = compute_leaderboard([record('only', date(2024, 3, 1), 10)])
        assert ids(top_n(board)) == ['only']

    def test_negative_n_is_rejected(self, record):
        """A negative n must not silently drop the bottom entries."""
        board = compute_leaderboard([record(f'c{i}', date(2024, 3, 1), 10 * i) for i in range(6)])

        with pytest.raises(ValidationError):
            top_n(board, -2)


class TestBadgesAndBands:
    """Display labels derived from rank and average"""

    @pytest.mark.parametrize("rank,badge", [
        (1, 'Champion'),
        (2, 'Runner-up'),
        (3, 'Third Place'),
        (4, '#4'),
        (12, '#12'),
    ])
    def test_rank_badge(self, rank, badge):
        assert rank_badge(rank) == badge

    @pytest.mark.parametrize("score,band", [
        (100, 'Excellent'),
        (90, 'Excellent'),
        (89, 'Good'),
        (75, 'Good'),
        (60, 'Fair'),
        (59, 'Needs Improvement'),
        (0, 'Needs Improvement'),
    ])
    def test_score_band(self, score, band):
        assert score_band(score) == band

    def test_with_ranks_is_positional(self, record):
        board = compute_leaderboard([
            record('a', date(2024, 3, 1), 50),
            record('b', date(2024, 3, 1), 50),
        ])

        ranked = with_ranks(board)

        assert [(r.rank, r.badge) for r in ranked] == [(1, 'Champion'), (2, 'Runner-up')]
        entry = ranked[0].to_dict()
        assert entry['rank'] == 1
        assert entry['score_band'] == 'Needs Improvement'
        assert entry['classroom']['id'] == 'a'

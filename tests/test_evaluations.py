"""
Tests for evaluation records and the leaderboard views built on them

Run: pytest tests/test_evaluations.py -v
"""

from datetime import date, datetime

import pytest

from ecoscore.database import queries
from ecoscore.errors import NotFoundError, ValidationError
from ecoscore.services.evaluations import (
    delete_evaluation,
    division_leaderboard,
    leaderboard,
    leaderboard_stats,
    list_evaluations,
    record_evaluation,
)
from ecoscore.utilities.common import current_time


class TestRecordEvaluation:
    """Validated inserts into the active store"""

    def test_records(self, session, sample_classrooms):
        evaluation = record_evaluation(
            session, 'c-ele-1', 'sup-9', total_score=42, max_score=50,
            items={'lights_off': True}, evaluation_date=date(2024, 3, 4), notes='Good sorting',
        )

        stored = queries.get_evaluation(session, evaluation.id)
        assert stored.total_score == 42
        assert stored.items == {'lights_off': True}
        assert stored.evaluation_date == date(2024, 3, 4)

    def test_defaults_to_today(self, session, sample_classrooms):
        evaluation = record_evaluation(session, 'c-ele-1', 'sup-9', total_score=10, max_score=50)
        assert evaluation.evaluation_date == current_time().date()

    def test_datetime_is_truncated_to_date(self, session, sample_classrooms):
        evaluation = record_evaluation(session, 'c-ele-1', 'sup-9', 10, 50,
                                       evaluation_date=datetime(2024, 3, 4, 15, 0))
        assert evaluation.evaluation_date == date(2024, 3, 4)

    @pytest.mark.parametrize("total,maximum,field", [
        (51, 50, 'total_score'),
        (-1, 50, 'total_score'),
        (10, 0, 'max_score'),
    ])
    def test_rejects_bad_scores(self, session, sample_classrooms, total, maximum, field):
        with pytest.raises(ValidationError) as exc_info:
            record_evaluation(session, 'c-ele-1', 'sup-9', total, maximum)

        assert exc_info.value.field == field
        assert queries.count_evaluations(session) == 0

    def test_rejects_unknown_classroom(self, session, sample_classrooms):
        with pytest.raises(ValidationError, match='Classroom not found'):
            record_evaluation(session, 'ghost', 'sup-9', 10, 50)


class TestDeleteEvaluation:
    def test_deletes(self, session, march_evaluations):
        delete_evaluation(session, march_evaluations[0].id)
        assert queries.count_evaluations(session) == 11

    def test_missing(self, session, march_evaluations):
        with pytest.raises(NotFoundError) as exc_info:
            delete_evaluation(session, 'missing')

        assert exc_info.value.resource_id == 'missing'
        assert queries.count_evaluations(session) == 12


class TestListEvaluations:
    def test_open_ended_range(self, session, march_evaluations):
        assert len(list_evaluations(session, start=date(2024, 3, 20))) == 2
        assert len(list_evaluations(session, end=date(2024, 3, 2))) == 1

    def test_invalid_division(self, session, march_evaluations):
        with pytest.raises(ValidationError):
            list_evaluations(session, division='Primary')


class TestLeaderboardViews:
    """Leaderboards read straight from the database"""

    def test_global(self, session, march_evaluations):
        board = leaderboard(session)
        assert [s.classroom.id for s in board] == ['c-hs-1', 'c-mid-1', 'c-ele-2', 'c-ele-1']

    def test_include_unevaluated_seeds_active_classrooms(self, session, march_evaluations):
        board = leaderboard(session, include_unevaluated=True)

        ids = [s.classroom.id for s in board]
        assert ids[-1] == 'c-pre-1'
        assert 'c-tech-1' not in ids
        assert board[-1].last_evaluated_display == 'Never'

    def test_division_for_month(self, session, march_evaluations, make_evaluation):
        make_evaluation('c-ele-1', date(2024, 4, 2), 100)

        march = division_leaderboard(session, 'Elementary', year=2024, month=3)
        all_time = division_leaderboard(session, 'Elementary')

        assert [s.classroom.id for s in march] == ['c-ele-2', 'c-ele-1']
        assert [s.classroom.id for s in all_time] == ['c-ele-1', 'c-ele-2']

    def test_division_requires_year_and_month_together(self, session, march_evaluations):
        with pytest.raises(ValidationError):
            division_leaderboard(session, 'Elementary', year=2024)

    def test_stats(self, session, march_evaluations):
        stats = leaderboard_stats(session, now=datetime(2024, 3, 25))

        assert stats.total_classrooms == 4
        assert stats.total_evaluations == 12
        assert stats.leading_classroom.classroom.id == 'c-hs-1'
        assert stats.top_grade_level == '10'
        assert stats.recent_activity_count == 3

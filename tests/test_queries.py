"""
Tests for the storage queries

Run: pytest tests/test_queries.py -v
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from ecoscore.database import queries
from ecoscore.database.models import ArchiveEvaluation, ArchiveRun, Evaluation, MonthlyWinner


class TestClassroomDirectory:
    def test_list_by_division(self, session, sample_classrooms):
        names = [c.name for c in queries.list_classrooms(session, division='Elementary')]
        assert names == ['Grade 1 Sunflowers', 'Grade 2 Oaks']

    def test_list_active_only(self, session, sample_classrooms):
        ids = {c.id for c in queries.list_classrooms(session, active=True)}
        assert 'c-tech-1' not in ids
        assert len(ids) == 5

    def test_directory(self, session, sample_classrooms):
        directory = queries.get_classroom_directory(session)
        assert directory['c-mid-1'].division == 'Middle School'


class TestEvaluationStore:
    def test_newest_first(self, session, sample_classrooms, make_evaluation):
        make_evaluation('c-ele-1', date(2024, 3, 3), 10)
        make_evaluation('c-ele-1', date(2024, 3, 9), 20)
        make_evaluation('c-ele-2', date(2024, 3, 6), 30)

        scores = [ev.total_score for ev in queries.list_evaluations(session)]

        assert scores == [20, 30, 10]

    def test_filters(self, session, march_evaluations):
        assert len(queries.list_evaluations(session, classroom_id='c-hs-1')) == 3
        assert len(queries.list_evaluations(session, division='Elementary')) == 6
        in_range = queries.list_evaluations(session, date_range=(date(2024, 3, 1), date(2024, 3, 5)))
        assert len(in_range) == 3

    def test_month_bounds_inclusive(self, session, sample_classrooms, make_evaluation):
        make_evaluation('c-ele-1', date(2024, 2, 1), 10)
        make_evaluation('c-ele-1', date(2024, 2, 29), 20)
        make_evaluation('c-ele-1', date(2024, 3, 1), 30)

        february = queries.list_evaluations_for_month(session, 2024, 2)

        assert sorted(ev.total_score for ev in february) == [10, 20]

    def test_latest_date(self, session, march_evaluations):
        assert queries.get_latest_evaluation_date(session) == date(2024, 3, 23)

    def test_latest_date_empty(self, session):
        assert queries.get_latest_evaluation_date(session) is None

    def test_delete_by_ids_only(self, session, march_evaluations):
        ids = [ev.id for ev in march_evaluations[:5]]

        deleted = queries.delete_all_evaluations(session, ids)

        assert deleted == 5
        assert queries.count_evaluations(session) == 7
        assert queries.count_evaluations(session, ids) == 0

    def test_delete_empty_id_list_is_noop(self, session, march_evaluations):
        assert queries.delete_all_evaluations(session, []) == 0
        assert queries.count_evaluations(session) == 12

    def test_delete_single(self, session, march_evaluations):
        assert queries.delete_evaluation(session, march_evaluations[0].id) is True
        assert queries.delete_evaluation(session, 'missing') is False

    def test_score_above_max_rejected(self, session, sample_classrooms):
        session.add(Evaluation(classroom_id='c-ele-1', supervisor_id='s', evaluation_date=date(2024, 3, 1),
                               total_score=120, max_score=100, items={}))
        with pytest.raises(IntegrityError):
            session.flush()


class TestArchive:
    def test_archive_marker_from_rows(self, session, march_evaluations):
        queries.insert_archive_evaluations(
            session, march_evaluations[:1], datetime(2024, 4, 2, tzinfo=timezone.utc)
        )
        session.commit()

        assert queries.archive_exists_in_month(session, 2024, 4) is True
        assert queries.archive_exists_in_month(session, 2024, 5) is False
        assert queries.archive_exists_in_month(session, 2024, 3) is False

    def test_archive_marker_from_ledger(self, session):
        ArchiveRun.start_run(session, 'auto', datetime(2024, 4, 1, tzinfo=timezone.utc),
                             period_key='2024-04')
        session.commit()

        assert queries.archive_exists_in_month(session, 2024, 4) is True

    def test_evaluation_archived_once(self, session, march_evaluations):
        archived_at = datetime(2024, 4, 2, tzinfo=timezone.utc)
        queries.insert_archive_evaluations(session, march_evaluations[:2], archived_at)
        session.commit()
        session.expunge_all()

        with pytest.raises(IntegrityError):
            queries.insert_archive_evaluations(session, march_evaluations[1:3], archived_at)
        session.rollback()

        assert queries.count_archive_evaluations(session) == 2

    def test_run_counts(self, session, march_evaluations):
        run = ArchiveRun.start_run(session, 'manual', datetime(2024, 4, 2, tzinfo=timezone.utc))

        written = queries.insert_archive_evaluations(
            session, march_evaluations, datetime(2024, 4, 2, tzinfo=timezone.utc), run
        )

        assert written == run.evaluations_archived == 12
        rows = queries.list_archive_evaluations(session, archive_run_id=run.id)
        assert len(rows) == 12
        assert all(isinstance(row, ArchiveEvaluation) for row in rows)


class TestMonthlyWinnerUpsert:
    def _fields(self, classroom_id, total):
        return {
            'classroom_id': classroom_id,
            'total_score': total,
            'average_score': total / 3,
            'evaluation_count': 3,
            'declared_by': None,
            'declared_at': datetime(2024, 4, 1, tzinfo=timezone.utc),
            'notes': None,
        }

    def test_insert_then_update_same_key(self, session, sample_classrooms):
        first = queries.upsert_monthly_winner(session, ('Elementary', 2024, 3), self._fields('c-ele-1', 250))
        second = queries.upsert_monthly_winner(session, ('Elementary', 2024, 3), self._fields('c-ele-2', 300))
        session.commit()

        assert first.id == second.id
        assert second.classroom_id == 'c-ele-2'
        assert len(queries.list_monthly_winners(session)) == 1

    def test_unique_key_enforced(self, session, sample_classrooms):
        session.add(MonthlyWinner(classroom_id='c-ele-1', division='Elementary', year=2024, month=3))
        session.add(MonthlyWinner(classroom_id='c-ele-2', division='Elementary', year=2024, month=3))

        with pytest.raises(IntegrityError):
            session.flush()

"""
Tests for the command-line entry points

Run: pytest tests/test_scripts.py -v
"""

import json
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from ecoscore.database import queries
from ecoscore.scripts import reset_database, run_archival_check


@pytest.fixture
def cli_session(session):
    """Point the scripts at the test session and skip schema creation."""
    with patch.object(run_archival_check, 'get_session', return_value=session), \
            patch.object(run_archival_check, 'init_db'):
        yield session


class TestArchivalCheckCommand:
    def test_archives_and_prints_result(self, cli_session, march_evaluations, capsys):
        exit_code = run_archival_check.main(['--now', '2024-04-02T09:00:00+00:00'])

        assert exit_code == 0
        result = json.loads(capsys.readouterr().out)
        assert (result['archived'], result['count'], result['from_month']) == (True, 12, '2024-03')

    def test_dry_run(self, cli_session, march_evaluations, capsys):
        exit_code = run_archival_check.main(['--now', '2024-04-02T09:00:00', '--dry-run'])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)['reason'] == 'would_archive'
        assert queries.count_evaluations(cli_session) == 12

    def test_purge_failure_exit_code(self, cli_session, march_evaluations):
        failure = OperationalError('DELETE', {}, Exception('disk I/O error'))

        with patch('ecoscore.database.queries.delete_all_evaluations', side_effect=failure):
            exit_code = run_archival_check.main(['--now', '2024-04-02T09:00:00'])

        assert exit_code == 2

    def test_storage_failure_exit_code(self, cli_session, march_evaluations):
        failure = OperationalError('SELECT', {}, Exception('connection refused'))

        with patch('ecoscore.database.queries.get_latest_evaluation_date', side_effect=failure):
            exit_code = run_archival_check.main([])

        assert exit_code == 1


class TestResetDatabaseCommand:
    def test_clears_engine_tables_keeps_classrooms(self, engine, session, sample_classrooms,
                                                   make_evaluation):
        make_evaluation('c-ele-1', date(2024, 3, 1), 50)

        with patch.object(reset_database, 'get_engine', return_value=engine):
            exit_code = reset_database.main(['--confirm'])

        assert exit_code == 0
        assert queries.count_evaluations(session) == 0
        assert len(queries.list_classrooms(session)) == 6

    def test_declined_prompt(self, engine, session, sample_classrooms, make_evaluation):
        make_evaluation('c-ele-1', date(2024, 3, 1), 50)

        with patch.object(reset_database, 'get_engine', return_value=engine), \
                patch('builtins.input', return_value='no'):
            exit_code = reset_database.main([])

        assert exit_code == 1
        assert queries.count_evaluations(session) == 1

    def test_delete_order_puts_dependents_first(self):
        names = [t.name for t in reset_database.tables_to_clear(include_classrooms=True)]

        assert names.index('evaluations') < names.index('classrooms')
        assert names.index('archive_evaluations') < names.index('archive_runs')
        assert 'classrooms' not in [t.name for t in reset_database.tables_to_clear()]

"""
Test fixtures for pytest

SQLite in-memory database shared across a test through a StaticPool,
plus sample classrooms and an evaluation factory.

Usage:
    pytest tests/ -v

Environment Variables:
    TEST_DATABASE_URL: Run the database tests against another engine
        (e.g. a disposable PostgreSQL database)
"""

import os
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ecoscore.database.models import Base, Classroom, Evaluation
from ecoscore.utilities.common import get_settings


# --- Configuration ---

TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'sqlite://')


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; reload them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# --- Database Fixtures ---

@pytest.fixture
def engine():
    """Fresh schema per test."""
    if TEST_DATABASE_URL.startswith('sqlite'):
        eng = create_engine(
            TEST_DATABASE_URL,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )
    else:
        eng = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session configured like the application's session factory."""
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    db = SessionLocal()
    yield db
    db.rollback()
    db.close()


# --- Sample Data Fixtures ---

@pytest.fixture
def sample_classrooms(session):
    """One or two classrooms per division, committed."""
    classrooms = [
        Classroom(id='c-ele-1', name='Grade 1 Sunflowers', grade='1', division='Elementary'),
        Classroom(id='c-ele-2', name='Grade 2 Oaks', grade='2', division='Elementary'),
        Classroom(id='c-mid-1', name='Grade 7 Cedars', grade='7', division='Middle School'),
        Classroom(id='c-hs-1', name='Grade 10 Pines', grade='10', division='High School'),
        Classroom(id='c-pre-1', name='Nursery Tulips', grade='K', division='Pre-School'),
        Classroom(id='c-tech-1', name='Welding A', grade='T1', division='Technical Institute',
                  is_active=False),
    ]
    session.add_all(classrooms)
    session.commit()
    return {c.id: c for c in classrooms}


@pytest.fixture
def make_evaluation(session):
    """
    Factory for committed evaluations.

    Usage:
        def test_something(make_evaluation):
            ev = make_evaluation('c-ele-1', date(2024, 3, 4), 80)
    """
    def factory(classroom_id, evaluation_date, total_score, max_score=100,
                supervisor_id='sup-1', items=None, evaluation_id=None):
        evaluation = Evaluation(
            classroom_id=classroom_id,
            supervisor_id=supervisor_id,
            evaluation_date=evaluation_date,
            total_score=total_score,
            max_score=max_score,
            items=items or {'lights_off': True, 'recycling_sorted': total_score > 50},
        )
        if evaluation_id:
            evaluation.id = evaluation_id
        session.add(evaluation)
        session.commit()
        return evaluation
    return factory


@pytest.fixture
def march_evaluations(sample_classrooms, make_evaluation):
    """Twelve evaluations dated in March 2024 across four classrooms."""
    year, month = 2024, 3
    classroom_ids = ['c-ele-1', 'c-ele-2', 'c-mid-1', 'c-hs-1']
    evaluations = []
    for i in range(12):
        evaluations.append(make_evaluation(
            classroom_ids[i % 4],
            date(year, month, 1 + i * 2),
            60 + i * 3,
        ))
    return evaluations


def evaluation_record(classroom_id, evaluation_date, total_score, division='Elementary',
                      name=None, grade='1'):
    """Plain-dict evaluation joined with its classroom, for the pure calculators."""
    return {
        'classroom_id': classroom_id,
        'evaluation_date': evaluation_date,
        'total_score': total_score,
        'max_score': 100,
        'classroom': {
            'id': classroom_id,
            'name': name or f'Classroom {classroom_id}',
            'grade': grade,
            'division': division,
        },
    }


@pytest.fixture
def record():
    """The evaluation_record helper as a fixture."""
    return evaluation_record

"""
Test configuration and shared fixtures for the Clinic Scheduler test suite.

Every test gets its own SQLite database file, so the timer service's worker
thread sessions and the test's own session see the same committed data.
"""

import os

# Keep the application engine off any real database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from contextlib import contextmanager
from datetime import time
from typing import Generator, Iterator, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from core.database import Base

# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from models import (
    Clinic, User, WorkingHours, Holiday, MaintenanceWindow, Leave, Appointment, Bed, BedTask
)
from services.realtime_notifier import RealtimeNotifier
from services.task_timer_service import TaskTimerService


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite database with the full schema for one test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_maker(db_engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_maker) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    session = session_maker()
    yield session
    session.close()


@pytest.fixture(scope="function")
def session_factory(session_maker):
    """Session context manager with the same commit/rollback behaviour as get_db_context."""
    @contextmanager
    def factory() -> Iterator[Session]:
        session = session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture
def mock_notifier():
    """Notifier whose notify() calls can be inspected."""
    notifier = MagicMock(spec=RealtimeNotifier)
    notifier.notify = AsyncMock(return_value=None)
    return notifier


@pytest.fixture
def mock_scheduler():
    """Stand-in for AsyncIOScheduler; jobs are never fired, tests call tick() directly."""
    return MagicMock()


@pytest.fixture
def timer_service(mock_notifier, session_factory, mock_scheduler) -> TaskTimerService:
    return TaskTimerService(
        notifier=mock_notifier,
        session_factory=session_factory,
        scheduler=mock_scheduler,
        tick_seconds=1,
        persist_every_ticks=5,
        recovery_policy="pause",
    )


# Helper functions for creating test data

def create_clinic(db_session: Session, name: str = "Test Clinic") -> Clinic:
    clinic = Clinic(name=name, is_active=True)
    db_session.add(clinic)
    db_session.commit()
    return clinic


def create_user(
    db_session: Session,
    clinic: Optional[Clinic],
    name: str,
    email: str,
    role: str = "user",
    is_active: bool = True
) -> User:
    user = User(
        clinic_id=clinic.id if clinic else None,
        name=name,
        email=email,
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


def create_employee(
    db_session: Session,
    clinic: Clinic,
    name: str,
    email: str,
    hours: Optional[List[Tuple[int, time, time]]] = None
) -> User:
    """
    Create an employee with weekly working hours.

    Args:
        hours: (day_of_week, start, end) rows; defaults to Monday 09:00-17:00
    """
    employee = create_user(db_session, clinic, name, email, role="employee")
    for day_of_week, start, end in (hours if hours is not None else [(0, time(9, 0), time(17, 0))]):
        db_session.add(WorkingHours(
            user_id=employee.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
        ))
    db_session.commit()
    return employee


def create_bed(
    db_session: Session,
    clinic: Clinic,
    name: str = "Bed 1",
    employees: Optional[List[User]] = None
) -> Bed:
    bed = Bed(clinic_id=clinic.id, name=name)
    bed.employees = list(employees or [])
    db_session.add(bed)
    db_session.commit()
    return bed


def create_bed_task(
    db_session: Session,
    bed: Bed,
    creator: User,
    duration_minutes: int = 1,
    status: str = "pending",
    remaining_secs: Optional[int] = None,
    title: str = "Hot pack"
) -> BedTask:
    task = BedTask(
        bed_id=bed.id,
        created_by_id=creator.id,
        title=title,
        duration_minutes=duration_minutes,
        remaining_secs=remaining_secs if remaining_secs is not None else duration_minutes * 60,
        status=status,
    )
    db_session.add(task)
    db_session.commit()
    return task

"""
Concurrent exclusive writes

Several threads race for the same date against a file-backed SQLite database,
each with its own session and connection. The per-date lock must let exactly
one of them through; the rest get ConflictError.
"""

import threading
import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tourbook.database import Base
from tourbook.errors import ConflictError
from tourbook.services.booking_repository import SqlBookingRepository

TARGET = date(2025, 6, 12)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bookings.db'}",
        # waiters block on the write lock instead of failing
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def race(session_factory, workers, write):
    """Run ``write(repository, index)`` on ``workers`` threads released together"""
    barrier = threading.Barrier(workers)

    def attempt(index):
        db = session_factory()
        try:
            repository = SqlBookingRepository(db)
            barrier.wait()
            try:
                write(repository, index)
                return "ok"
            except ConflictError:
                return "conflict"
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(attempt, range(workers)))


def occupying(session_factory, day):
    db = session_factory()
    try:
        return [b for b in SqlBookingRepository(db).list() if b.client_selected_date == day]
    finally:
        db.close()


class TestCreateExclusiveRace:

    def test_exactly_one_creator_wins(self, session_factory, make_booking):
        workers = 4

        outcomes = race(
            session_factory,
            workers,
            lambda repository, i: repository.create_exclusive(
                make_booking(client_name=f"Client {i}", client_selected_date=TARGET)
            ),
        )

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == workers - 1
        assert len(occupying(session_factory, TARGET)) == 1


class TestPatchExclusiveRace:

    def test_exactly_one_move_wins(self, session_factory, make_booking):
        db = session_factory()
        try:
            repository = SqlBookingRepository(db)
            ids = [
                repository.create(make_booking(client_selected_date=date(2025, 6, 10))).id,
                repository.create(make_booking(client_selected_date=date(2025, 6, 11))).id,
            ]
        finally:
            db.close()

        outcomes = race(
            session_factory,
            len(ids),
            lambda repository, i: repository.patch_exclusive(ids[i], {"client_selected_date": TARGET}),
        )

        assert sorted(outcomes) == ["conflict", "ok"]
        assert len(occupying(session_factory, TARGET)) == 1

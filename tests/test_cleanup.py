"""Tests for the expired-session cleanup scheduler."""

import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.database import Base, session_scope
from app.models.session_token import SessionToken
from app.models.user import User
from app.services.cleanup import SessionCleanupScheduler
from app.services.sessions import SessionTokenService


@pytest.fixture(name="file_session_factory")
def file_session_factory_fixture(tmp_path):
    """File-backed SQLite, so each worker thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'roster.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


def make_scheduler(session_factory, interval_seconds: float = 3600) -> SessionCleanupScheduler:
    return SessionCleanupScheduler(
        session_factory=session_factory,
        interval_seconds=interval_seconds,
        sessions=SessionTokenService(ttl=timedelta(days=7)),
    )


class TestRunOnce:
    def test_run_once_removes_only_expired(self, session_factory, add_user, add_session_token, db_session: Session):
        """Tokens idle for over a week are deleted, recent ones remain."""
        user = add_user()
        add_session_token("old-token", user.id, age=timedelta(days=8))
        add_session_token("recent-token", user.id, age=timedelta(days=4))

        assert make_scheduler(session_factory).run_once() == 1

        db_session.expire_all()
        assert db_session.get(SessionToken, "old-token") is None
        assert db_session.get(SessionToken, "recent-token") is not None

    def test_run_once_on_empty_table(self, session_factory):
        assert make_scheduler(session_factory).run_once() == 0

    def test_run_once_is_repeatable(self, session_factory, add_user, add_session_token):
        """A second run finds nothing left to delete."""
        user = add_user()
        add_session_token("old-token", user.id, age=timedelta(days=8))
        scheduler = make_scheduler(session_factory)
        assert scheduler.run_once() == 1
        assert scheduler.run_once() == 0

    def test_overlapping_runs(self, file_session_factory):
        """Concurrent runs together delete each expired token exactly once."""
        now = datetime.utcnow()
        with session_scope(file_session_factory) as db:
            user = User(username="user1", email="user1@mail.com", password_hash="x", inactive=False)
            db.add(user)
            db.flush()
            for i in range(5):
                db.add(SessionToken(token=f"old-{i}", user_id=user.id, last_used_at=now - timedelta(days=8)))
            for i in range(3):
                db.add(SessionToken(token=f"recent-{i}", user_id=user.id, last_used_at=now - timedelta(days=4)))

        scheduler = make_scheduler(file_session_factory)

        async def overlapping() -> list[int]:
            return await asyncio.gather(*(asyncio.to_thread(scheduler.run_once) for _ in range(4)))

        deleted = asyncio.run(overlapping())
        assert sum(deleted) == 5
        with session_scope(file_session_factory) as db:
            remaining = sorted(row.token for row in db.query(SessionToken).all())
        assert remaining == ["recent-0", "recent-1", "recent-2"]


class TestSchedulerLifecycle:
    def test_start_and_stop(self, session_factory):
        """The background task runs between start and stop."""
        scheduler = make_scheduler(session_factory)

        async def scenario() -> None:
            await scheduler.start()
            assert scheduler.running
            await scheduler.stop()
            assert not scheduler.running

        asyncio.run(scenario())

    def test_stop_without_start(self, session_factory):
        """Stopping an idle scheduler is a no-op."""
        asyncio.run(make_scheduler(session_factory).stop())

    def test_loop_sweeps_periodically(self, session_factory, add_user, db_session: Session):
        """With a short interval the loop deletes expired tokens on its own."""
        user = add_user()
        db_session.add(
            SessionToken(token="old-token", user_id=user.id, last_used_at=datetime.utcnow() - timedelta(days=8))
        )
        db_session.commit()
        db_session.close()
        scheduler = make_scheduler(session_factory, interval_seconds=0.01)
        results = []
        run_once = scheduler.run_once

        def recording_run() -> int:
            results.append(run_once())
            return results[-1]

        scheduler.run_once = recording_run  # type: ignore[method-assign]

        async def scenario() -> None:
            await scheduler.start()
            for _ in range(100):
                await asyncio.sleep(0.02)
                if results:
                    break
            await scheduler.stop()

        asyncio.run(scenario())
        assert results[0] == 1
        assert db_session.query(SessionToken).count() == 0

    def test_loop_survives_failed_run(self, session_factory, monkeypatch):
        """An exception in one run does not end the loop."""
        scheduler = make_scheduler(session_factory, interval_seconds=0.01)
        calls = []

        def failing_run() -> int:
            calls.append(1)
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(scheduler, "run_once", failing_run)

        async def scenario() -> None:
            await scheduler.start()
            for _ in range(100):
                await asyncio.sleep(0.02)
                if len(calls) >= 2:
                    break
            assert scheduler.running
            await scheduler.stop()

        asyncio.run(scenario())
        assert len(calls) >= 2


class TestApplicationLifespan:
    def test_cleanup_runs_for_the_app_lifetime(self, image_store, mailer):
        """Startup starts the scheduler and shutdown stops it."""
        from main import app

        with TestClient(app):
            scheduler = app.state.session_cleanup
            assert scheduler.running
        assert not scheduler.running

    def test_startup_creates_profile_folder(self, image_store, mailer):
        """The image folder is made at startup, not at import."""
        image_store.profile_folder.rmdir()
        from main import app

        assert not image_store.profile_folder.exists()
        with TestClient(app):
            assert image_store.profile_folder.is_dir()

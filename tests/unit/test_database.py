# tests/unit/test_database.py
"""Unit tests for the session dependencies in app.database."""

from unittest.mock import patch

from sqlalchemy.orm import Session

from app import database


class TestSessionDependencies:
    """Tests for get_db() and get_session_factory()."""

    def test_get_db_yields_and_closes_session(self):
        """The request session is closed once the request finishes."""
        gen = database.get_db()
        session = next(gen)
        assert isinstance(session, Session)

        with patch.object(session, "close") as close:
            gen.close()

        close.assert_called_once()

    def test_session_factory_is_process_factory(self):
        assert database.get_session_factory() is database.SessionLocal

    def test_schema_is_owned_by_migrations(self):
        """Tables are created by the alembic revision only, never at import or startup."""
        assert not hasattr(database, "init_db")

"""Tests for smartbee.session - explicit session lifecycle."""

from __future__ import annotations

from smartbee.models import User
from smartbee.session import SessionManager


class TestSessionManager:
    """start / end / auth headers."""

    def test_starts_unauthenticated(self) -> None:
        manager = SessionManager()
        assert manager.current is None
        assert not manager.is_authenticated
        assert manager.auth_headers() == {}

    def test_start_sets_bearer_header(self) -> None:
        manager = SessionManager()
        session = manager.start(token="abc123", user=User(email="ana@example.com"))
        assert manager.is_authenticated
        assert manager.current is session
        assert manager.auth_headers() == {"Authorization": "Bearer abc123"}

    def test_empty_token_sends_no_header(self) -> None:
        manager = SessionManager()
        manager.start()
        assert manager.is_authenticated
        assert manager.auth_headers() == {}

    def test_start_replaces_existing(self) -> None:
        manager = SessionManager()
        manager.start(token="old")
        manager.start(token="new")
        assert manager.auth_headers()["Authorization"] == "Bearer new"

    def test_end(self) -> None:
        manager = SessionManager()
        manager.start(token="abc")
        manager.end("logout")
        assert manager.current is None
        assert manager.auth_headers() == {}
        manager.end()  # no-op

    def test_repr_hides_token(self) -> None:
        session = SessionManager().start(token="s3cr3t", user=User(email="ana@example.com"))
        assert "s3cr3t" not in repr(session)
        assert "s3cr3t" not in str(session)
        assert "ana@example.com" in repr(session)

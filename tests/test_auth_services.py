import uuid
from unittest.mock import MagicMock, patch

import httpx
import pytest

from doctrack.errors import ConflictError
from doctrack.services.auth import (
    AuthClient,
    AuthError,
    AuthUnavailableError,
    SessionEvent,
    SessionManager,
    SessionState,
)

from tests.mocks import FakeAuthClient, FakeHTTPXResponse


def _client(responses):
    http = MagicMock()
    http.request.side_effect = responses
    return AuthClient("https://auth.example.com/", "anon-key", http_client=http), http


class TestAuthClient:
    def test_get_user(self):
        user_id = uuid.uuid4()
        client, http = _client(
            [FakeHTTPXResponse({"id": str(user_id), "email": "a@b.com"})]
        )
        identity = client.get_user("token")
        assert identity.id == user_id
        method, url = http.request.call_args.args
        assert (method, url) == ("GET", "https://auth.example.com/user")
        assert http.request.call_args.kwargs["headers"]["Authorization"] == "Bearer token"

    def test_get_user_invalid_token(self):
        client, _ = _client([FakeHTTPXResponse({"msg": "bad jwt"}, status_code=401)])
        assert client.get_user("expired") is None

    def test_sign_in(self):
        user_id = uuid.uuid4()
        client, http = _client(
            [
                FakeHTTPXResponse(
                    {
                        "access_token": "abc",
                        "refresh_token": "def",
                        "expires_in": 3600,
                        "user": {"id": str(user_id), "email": "a@b.com"},
                    }
                )
            ]
        )
        session = client.sign_in("a@b.com", "pw")
        assert session.access_token == "abc"
        assert session.user.id == user_id
        assert http.request.call_args.kwargs["params"] == {"grant_type": "password"}

    def test_sign_in_rejected(self):
        client, _ = _client(
            [FakeHTTPXResponse({"error_description": "Invalid login credentials"}, 400)]
        )
        with pytest.raises(AuthError, match="Invalid login credentials") as exc:
            client.sign_in("a@b.com", "wrong")
        assert exc.value.status_code == 401

    def test_sign_up_already_registered(self):
        client, _ = _client(
            [FakeHTTPXResponse({"msg": "User already registered"}, status_code=422)]
        )
        with pytest.raises(ConflictError):
            client.sign_up("a@b.com", "pw", {})

    def test_sign_up_uses_admin_endpoint_with_service_key(self):
        http = MagicMock()
        http.request.return_value = FakeHTTPXResponse(
            {"id": str(uuid.uuid4()), "email": "a@b.com"}
        )
        client = AuthClient(
            "https://auth.example.com", "anon", service_role_key="service", http_client=http
        )
        client.sign_up("a@b.com", "pw", {"full_name": "A"})
        _, url = http.request.call_args.args
        assert url == "https://auth.example.com/admin/users"
        assert http.request.call_args.kwargs["json"]["email_confirm"] is True

    def test_non_json_error(self):
        client, _ = _client([FakeHTTPXResponse(None, status_code=500, text="Bad gateway")])
        with pytest.raises(AuthError, match="Bad gateway"):
            client.sign_in("a@b.com", "pw")

    def test_network_failure(self):
        client, _ = _client([httpx.ConnectError("refused")])
        with pytest.raises(AuthUnavailableError) as exc:
            client.get_user("token")
        assert exc.value.status_code == 503


class TestSessionManager:
    def _manager(self):
        fake = FakeAuthClient()
        manager = SessionManager(client_factory=lambda: fake)
        return manager, fake

    def test_requires_initialize(self):
        manager, _ = self._manager()
        assert manager.state is SessionState.uninitialized
        with pytest.raises(RuntimeError, match="initialize"):
            manager.current_user("token")

    def test_initialize_is_idempotent(self):
        factory = MagicMock(return_value=FakeAuthClient())
        manager = SessionManager(client_factory=factory)
        manager.initialize()
        manager.initialize()
        assert factory.call_count == 1
        assert manager.state is SessionState.ready

    def test_teardown_closes_client(self):
        manager, fake = self._manager()
        manager.initialize()
        manager.teardown()
        assert fake.closed is True
        assert manager.state is SessionState.closed
        with pytest.raises(RuntimeError):
            manager.current_user("token")

    def test_sign_in_caches_identity(self):
        manager, fake = self._manager()
        manager.initialize()
        session = manager.sign_in("a@b.com", "pw")
        assert manager.current_user(session.access_token) == session.user
        assert fake.get_user_calls == 0

    def test_current_user_resolves_and_caches(self):
        manager, fake = self._manager()
        manager.initialize()
        session = fake.sign_in("a@b.com", "pw")
        assert manager.current_user(session.access_token) == session.user
        assert manager.current_user(session.access_token) == session.user
        assert fake.get_user_calls == 1

    def test_cache_is_bounded(self):
        manager, fake = self._manager()
        manager.initialize()
        tokens = [fake.sign_in(f"user{i}@b.com", "pw").access_token for i in range(50)]
        with patch("doctrack.services.auth._IDENTITY_CACHE_MAX_ENTRIES", 10):
            for token in tokens:
                manager.current_user(token)
        assert len(manager._cache) == 10
        assert set(manager._cache) == set(tokens[-10:])

    def test_expired_entries_dropped_on_write(self):
        manager, fake = self._manager()
        manager.initialize()
        first = fake.sign_in("first@b.com", "pw").access_token
        second = fake.sign_in("second@b.com", "pw").access_token
        with patch("doctrack.services.auth.monotonic", return_value=1000.0):
            manager.current_user(first)
        with patch("doctrack.services.auth.monotonic", return_value=1120.0):
            manager.current_user(second)
        assert list(manager._cache) == [second]

    def test_unknown_token(self):
        manager, _ = self._manager()
        manager.initialize()
        assert manager.current_user("nope") is None

    def test_sign_out_evicts_and_notifies(self):
        manager, fake = self._manager()
        manager.initialize()
        events = []
        manager.subscribe(lambda event, identity: events.append((event, identity)))
        session = manager.sign_in("a@b.com", "pw")
        manager.sign_out(session.access_token)
        assert events == [
            (SessionEvent.signed_in, session.user),
            (SessionEvent.signed_out, session.user),
        ]
        assert manager.current_user(session.access_token) is None

    def test_unsubscribe(self):
        manager, _ = self._manager()
        manager.initialize()
        events = []
        unsubscribe = manager.subscribe(lambda event, identity: events.append(event))
        unsubscribe()
        manager.sign_in("a@b.com", "pw")
        assert events == []

    def test_failing_listener_is_isolated(self):
        manager, _ = self._manager()
        manager.initialize()
        events = []

        def broken(event, identity):
            raise ValueError("listener bug")

        manager.subscribe(broken)
        manager.subscribe(lambda event, identity: events.append(event))
        manager.sign_in("a@b.com", "pw")
        assert events == [SessionEvent.signed_in]

    def test_delete_account(self):
        manager, fake = self._manager()
        manager.initialize()
        user_id = uuid.uuid4()
        manager.delete_account(user_id)
        assert fake.deleted == [str(user_id)]

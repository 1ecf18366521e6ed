"""Client for the external auth service and the session manager owning it.

The auth service is GoTrue compatible (``/signup``, ``/token``, ``/logout``,
``/user``, ``/admin/users``). Profiles, tenants and roles live in our own
database; the auth service only knows credentials and account ids.
"""

from __future__ import annotations

import enum
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from time import monotonic

import httpx

from doctrack.config import settings
from doctrack.errors import ConflictError, DocTrackError

logger = logging.getLogger(__name__)

_IDENTITY_CACHE_TTL_SECONDS = 60.0
_IDENTITY_CACHE_MAX_ENTRIES = 1000


class AuthError(DocTrackError):
    status_code = 401
    code = "auth_error"


class AuthUnavailableError(DocTrackError):
    status_code = 503
    code = "auth_unavailable"


@dataclass(frozen=True)
class AuthIdentity:
    id: uuid.UUID
    email: str


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str | None
    expires_in: int | None
    user: AuthIdentity


def _identity_from(data: dict) -> AuthIdentity:
    user = data.get("user") if isinstance(data.get("user"), dict) else data
    return AuthIdentity(id=uuid.UUID(str(user["id"])), email=user.get("email", ""))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    for key in ("msg", "message", "error_description", "error"):
        if body.get(key):
            return str(body[key])
    return f"HTTP {response.status_code}"


class AuthClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        service_role_key: str = "",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.service_role_key = service_role_key
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error("Auth service %s %s failed: %s", method, path, e)
            raise AuthUnavailableError("Auth service unavailable")

    def get_user(self, access_token: str) -> AuthIdentity | None:
        response = self._request("GET", "/user", headers=self._headers(access_token))
        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            raise AuthError(_error_message(response))
        return _identity_from(response.json())

    def sign_in(self, email: str, password: str) -> AuthSession:
        response = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            headers=self._headers(),
            json={"email": email, "password": password},
        )
        if response.status_code >= 400:
            raise AuthError(_error_message(response))
        data = response.json()
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=_identity_from(data),
        )

    def sign_up(self, email: str, password: str, metadata: dict) -> AuthIdentity:
        if self.service_role_key:
            # Admin creation skips the confirmation e-mail.
            response = self._request(
                "POST",
                "/admin/users",
                headers=self._headers(self.service_role_key),
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                },
            )
        else:
            response = self._request(
                "POST",
                "/signup",
                headers=self._headers(),
                json={"email": email, "password": password, "data": metadata},
            )
        if response.status_code >= 400:
            message = _error_message(response)
            if "already" in message.lower() and "registered" in message.lower():
                raise ConflictError("Email is already registered")
            raise AuthError(message)
        return _identity_from(response.json())

    def sign_out(self, access_token: str) -> None:
        response = self._request(
            "POST", "/logout", headers=self._headers(access_token)
        )
        if response.status_code >= 400 and response.status_code != 401:
            raise AuthError(_error_message(response))

    def delete_user(self, user_id: str | uuid.UUID) -> None:
        response = self._request(
            "DELETE",
            f"/admin/users/{user_id}",
            headers=self._headers(self.service_role_key),
        )
        if response.status_code >= 400 and response.status_code != 404:
            raise AuthError(_error_message(response))


def _default_client() -> AuthClient:
    return AuthClient(
        settings.auth_url,
        settings.auth_api_key,
        service_role_key=settings.auth_service_role_key,
        timeout=settings.auth_timeout_seconds,
    )


class SessionState(enum.Enum):
    uninitialized = "uninitialized"
    ready = "ready"
    closed = "closed"


class SessionEvent(enum.Enum):
    signed_in = "signed_in"
    signed_out = "signed_out"


Listener = Callable[[SessionEvent, AuthIdentity | None], None]


class SessionManager:
    """Owns the auth client, the identity cache and session listeners.

    ``initialize()`` must run before any auth operation and ``teardown()``
    releases the client; both are wired to the application lifespan.
    """

    def __init__(self, client_factory: Callable[[], AuthClient] = _default_client):
        self._client_factory = client_factory
        self._client: AuthClient | None = None
        self._state = SessionState.uninitialized
        self._cache: dict[str, tuple[AuthIdentity, float]] = {}
        self._listeners: list[Listener] = []
        self._lock = Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def client(self) -> AuthClient:
        if self._state is not SessionState.ready or self._client is None:
            raise RuntimeError(
                f"Session manager is {self._state.value}; call initialize() first"
            )
        return self._client

    def initialize(self) -> None:
        with self._lock:
            if self._state is SessionState.ready:
                return
            self._client = self._client_factory()
            self._cache.clear()
            self._state = SessionState.ready
        logger.info("Auth session manager initialized")

    def teardown(self) -> None:
        with self._lock:
            if self._state is not SessionState.ready:
                self._state = SessionState.closed
                return
            client, self._client = self._client, None
            self._cache.clear()
            self._state = SessionState.closed
        if client is not None:
            client.close()
        logger.info("Auth session manager closed")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent, identity: AuthIdentity | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, identity)
            except Exception as e:
                logger.exception("Session listener failed on %s: %s", event.value, e)

    def _remember(self, access_token: str, identity: AuthIdentity, now: float) -> None:
        """Cache an identity. Must hold the lock.

        Expired entries are dropped on every write and the oldest ones are
        evicted once the cache exceeds its size limit.
        """
        self._cache.pop(access_token, None)
        self._cache[access_token] = (identity, now)
        expired = [
            token
            for token, (_, stored_at) in self._cache.items()
            if now - stored_at >= _IDENTITY_CACHE_TTL_SECONDS
        ]
        for token in expired:
            del self._cache[token]
        overflow = len(self._cache) - _IDENTITY_CACHE_MAX_ENTRIES
        if overflow > 0:
            # Insertion order is write order, so the first keys are the oldest.
            for token in list(self._cache)[:overflow]:
                del self._cache[token]

    def current_user(self, access_token: str) -> AuthIdentity | None:
        now = monotonic()
        with self._lock:
            cached = self._cache.get(access_token)
            if cached and now - cached[1] < _IDENTITY_CACHE_TTL_SECONDS:
                return cached[0]
        identity = self.client.get_user(access_token)
        with self._lock:
            if identity is None:
                self._cache.pop(access_token, None)
            else:
                self._remember(access_token, identity, now)
        return identity

    def sign_in(self, email: str, password: str) -> AuthSession:
        session = self.client.sign_in(email, password)
        with self._lock:
            self._remember(session.access_token, session.user, monotonic())
        logger.info("User %s signed in", session.user.id)
        self._notify(SessionEvent.signed_in, session.user)
        return session

    def sign_up(self, email: str, password: str, metadata: dict) -> AuthIdentity:
        return self.client.sign_up(email, password, metadata)

    def sign_out(self, access_token: str) -> None:
        with self._lock:
            cached = self._cache.pop(access_token, None)
        identity = cached[0] if cached else None
        self.client.sign_out(access_token)
        logger.info("Session signed out for %s", identity.id if identity else "unknown")
        self._notify(SessionEvent.signed_out, identity)

    def delete_account(self, user_id: str | uuid.UUID) -> None:
        self.client.delete_user(user_id)


session_manager = SessionManager()

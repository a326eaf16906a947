import logging
from dataclasses import dataclass
from typing import Protocol

import bcrypt
import httpx

from ewaiter.services.document_store import DocumentStore
from ewaiter.services.errors import IdentityProviderUnavailable, InvalidCredentials
from ewaiter.utils.time import to_iso, utcnow

logger = logging.getLogger(__name__)

PRINCIPAL_COLLECTION = "Principals"


@dataclass(frozen=True)
class Principal:
    id: str
    email: str


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> Principal: ...

    async def sign_out(self) -> None: ...

    def current_principal_id(self) -> str | None: ...


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def principal_key(email: str) -> str:
    return email.strip().lower()


class LocalIdentityProvider:
    """Email/password principals kept in the document store with bcrypt hashes.

    One instance serves one authorization attempt; ``sign_out`` only forgets
    the principal signed in through this instance.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._principal: Principal | None = None

    async def sign_in(self, email: str, password: str) -> Principal:
        snapshot = await self.store.get(PRINCIPAL_COLLECTION, principal_key(email))
        hashed = snapshot.data.get("passwordHash") if snapshot else None
        if not hashed or not verify_password(password, hashed):
            raise InvalidCredentials("The email or password is incorrect.")
        if snapshot.data.get("disabled"):
            raise InvalidCredentials("This account has been disabled.")
        self._principal = Principal(id=snapshot.data["principalId"], email=snapshot.data.get("email", email))
        return self._principal

    async def sign_out(self) -> None:
        self._principal = None

    def current_principal_id(self) -> str | None:
        return self._principal.id if self._principal else None


async def create_principal(store: DocumentStore, principal_id: str, email: str, password: str) -> Principal:
    await store.set(
        PRINCIPAL_COLLECTION,
        principal_key(email),
        {
            "principalId": principal_id,
            "email": email.strip(),
            "passwordHash": hash_password(password),
            "disabled": False,
            "createdAt": to_iso(utcnow()),
        },
    )
    return Principal(id=principal_id, email=email.strip())


class HttpIdentityProvider:
    """Client for a remote identity service.

    ``POST {base_url}/signin`` with ``{"email", "password"}`` answers
    ``{"principal_id", "email", "token"}``; ``POST {base_url}/signout`` revokes
    the token.
    """

    def __init__(self, base_url: str, timeout_seconds: int, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout_seconds)
        self.transport = transport
        self._principal: Principal | None = None
        self._token: str | None = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def sign_in(self, email: str, password: str) -> Principal:
        try:
            async with self._client() as client:
                response = await client.post("/signin", json={"email": email, "password": password})
        except httpx.RequestError as exc:
            logger.error("Identity provider request failed: %s", exc)
            raise IdentityProviderUnavailable("Identity provider unavailable. Please try again.") from exc

        if response.status_code in (400, 401, 403):
            raise InvalidCredentials(self._error_message(response) or "The email or password is incorrect.")
        if response.status_code >= 400:
            logger.warning("Identity provider error %s on sign in", response.status_code)
            raise IdentityProviderUnavailable("Identity provider unavailable. Please try again.")

        payload = response.json()
        principal_id = payload.get("principal_id")
        if not principal_id:
            raise IdentityProviderUnavailable("Authentication failed")
        self._token = payload.get("token")
        self._principal = Principal(id=principal_id, email=payload.get("email") or email)
        return self._principal

    async def sign_out(self) -> None:
        token, self._token, self._principal = self._token, None, None
        if not token:
            return
        try:
            async with self._client() as client:
                response = await client.post("/signout", headers={"Authorization": f"Bearer {token}"})
            if response.status_code >= 400:
                logger.warning("Identity provider error %s on sign out", response.status_code)
        except httpx.RequestError as exc:
            logger.warning("Identity provider sign out failed: %s", exc)

    def current_principal_id(self) -> str | None:
        return self._principal.id if self._principal else None

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        try:
            detail = response.json().get("error")
        except ValueError:
            return None
        return detail if isinstance(detail, str) else None

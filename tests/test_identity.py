import json

import httpx
import pytest

from ewaiter.services.errors import IdentityProviderUnavailable, InvalidCredentials
from ewaiter.services.identity import (
    PRINCIPAL_COLLECTION,
    HttpIdentityProvider,
    LocalIdentityProvider,
    create_principal,
    hash_password,
    verify_password,
)
from tests.mocks.memory_store import InMemoryDocumentStore


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("s3cret-pass", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_local_sign_in_with_mixed_case_email():
    store = InMemoryDocumentStore()
    await create_principal(store, "uid-a", "A@B.com", "s3cret-pass")
    provider = LocalIdentityProvider(store)

    principal = await provider.sign_in(" a@b.COM ", "s3cret-pass")

    assert principal.id == "uid-a"
    assert provider.current_principal_id() == "uid-a"
    await provider.sign_out()
    assert provider.current_principal_id() is None


@pytest.mark.asyncio
async def test_local_sign_in_rejects_wrong_password_and_unknown_email():
    store = InMemoryDocumentStore()
    await create_principal(store, "uid-a", "a@b.com", "s3cret-pass")
    provider = LocalIdentityProvider(store)

    with pytest.raises(InvalidCredentials):
        await provider.sign_in("a@b.com", "wrong")
    with pytest.raises(InvalidCredentials):
        await provider.sign_in("nobody@b.com", "s3cret-pass")
    assert provider.current_principal_id() is None


@pytest.mark.asyncio
async def test_local_sign_in_rejects_disabled_principal():
    store = InMemoryDocumentStore()
    await create_principal(store, "uid-a", "a@b.com", "s3cret-pass")
    store.collections[PRINCIPAL_COLLECTION]["a@b.com"]["disabled"] = True
    provider = LocalIdentityProvider(store)

    with pytest.raises(InvalidCredentials):
        await provider.sign_in("a@b.com", "s3cret-pass")


def make_http_provider(handler) -> HttpIdentityProvider:
    return HttpIdentityProvider("https://identity.test/", 5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_sign_in_and_sign_out():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/signin":
            body = json.loads(request.content)
            assert body == {"email": "a@b.com", "password": "pw"}
            return httpx.Response(200, json={"principal_id": "uid-a", "email": "a@b.com", "token": "idp-token"})
        return httpx.Response(204)

    provider = make_http_provider(handler)

    principal = await provider.sign_in("a@b.com", "pw")
    await provider.sign_out()

    assert principal.id == "uid-a"
    assert provider.current_principal_id() is None
    assert requests[-1].url.path == "/signout"
    assert requests[-1].headers["Authorization"] == "Bearer idp-token"


@pytest.mark.asyncio
async def test_http_rejected_credentials():
    provider = make_http_provider(lambda request: httpx.Response(401, json={"error": "Wrong password"}))

    with pytest.raises(InvalidCredentials) as excinfo:
        await provider.sign_in("a@b.com", "pw")

    assert excinfo.value.message == "Wrong password"


@pytest.mark.asyncio
async def test_http_server_error_is_unavailable():
    provider = make_http_provider(lambda request: httpx.Response(502))

    with pytest.raises(IdentityProviderUnavailable):
        await provider.sign_in("a@b.com", "pw")


@pytest.mark.asyncio
async def test_http_connection_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_http_provider(handler)

    with pytest.raises(IdentityProviderUnavailable) as excinfo:
        await provider.sign_in("a@b.com", "pw")

    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_http_sign_out_failure_is_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/signin":
            return httpx.Response(200, json={"principal_id": "uid-a", "token": "idp-token"})
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_http_provider(handler)
    await provider.sign_in("a@b.com", "pw")

    await provider.sign_out()

    assert provider.current_principal_id() is None

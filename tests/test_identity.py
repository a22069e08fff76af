import aiohttp
import pytest

from fakes import FakeGitHub
from year_in_code.config import Settings
from year_in_code.errors import AuthError, UserNotFound
from year_in_code.identity import (
    fetch_public_user,
    resolve_identity,
    validate_token,
    verified_emails,
)
from year_in_code.queries import Queries


def test_verified_emails_filters_and_lowercases() -> None:
    data = [
        {"email": "A@Example.com", "verified": True},
        {"email": "b@example.com", "verified": False},
        {"email": None, "verified": True},
        "junk",
    ]
    assert verified_emails(data) == frozenset({"a@example.com"})
    assert verified_emails({"message": "nope"}) == frozenset()


@pytest.mark.asyncio
async def test_resolve_identity(github: FakeGitHub, queries: Queries) -> None:
    github.add_user("alice", token="tok-alice", emails=[{"email": "a@x.io", "verified": True}])
    user = await resolve_identity(queries)
    assert user.login == "alice"
    assert user.name == "Alice"
    assert user.emails == frozenset({"a@x.io"})


@pytest.mark.asyncio
async def test_resolve_identity_without_email_scope(
    github: FakeGitHub, queries: Queries
) -> None:
    github.add_user("alice", token="tok-alice")
    github.fail("/user/emails", 403, body={"message": "Resource not accessible by integration"})
    user = await resolve_identity(queries)
    assert user.emails == frozenset()


@pytest.mark.asyncio
async def test_resolve_identity_rejects_bad_tokens(
    github: FakeGitHub, session: aiohttp.ClientSession, settings: Settings
) -> None:
    with pytest.raises(AuthError):
        await resolve_identity(Queries(session, "wrong", settings))
    with pytest.raises(AuthError):
        await resolve_identity(Queries(session, None, settings))
    github.add_user("alice", token="tok-alice")
    github.fail("/user", 403)
    with pytest.raises(AuthError):
        await resolve_identity(Queries(session, "tok-alice", settings))


@pytest.mark.asyncio
async def test_fetch_public_user(github: FakeGitHub, public_queries: Queries) -> None:
    github.add_user("bob")
    user = await fetch_public_user(public_queries, "bob")
    assert user.login == "bob"
    assert user.followers == 3
    with pytest.raises(UserNotFound):
        await fetch_public_user(public_queries, "nobody")


@pytest.mark.asyncio
async def test_validate_token(
    github: FakeGitHub, session: aiohttp.ClientSession, settings: Settings
) -> None:
    github.add_user("alice", token="tok-alice")
    user = await validate_token(" tok-alice ", session=session, settings=settings)
    assert user.login == "alice"
    with pytest.raises(AuthError):
        await validate_token("", session=session, settings=settings)

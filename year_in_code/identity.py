"""
Who is asking: the account behind a token, or a public profile by name.
"""

import logging
from typing import Any, FrozenSet, Optional
from urllib.parse import quote

import aiohttp

from year_in_code.config import Settings
from year_in_code.errors import (
    AuthError,
    Forbidden,
    GitHubHTTPError,
    NotFound,
    TransientNetworkError,
    Unauthorized,
    UserNotFound,
)
from year_in_code.models import User
from year_in_code.queries import Queries

logger = logging.getLogger(__name__)


async def resolve_identity(queries: Queries) -> User:
    """
    Resolve the authenticated account and its verified email addresses.

    The email lookup needs the ``user:email`` scope, which many tokens lack;
    when it fails the user comes back with no emails and attribution falls
    back to login matching.
    """
    if not queries.authenticated:
        raise AuthError("An access token is required")
    try:
        page = await queries.query_rest("/user")
    except (Unauthorized, Forbidden) as e:
        raise AuthError(f"GitHub rejected the token ({e.status})") from e
    user = User.from_api(page.data)
    user.emails = await fetch_verified_emails(queries)
    logger.info(f"Authenticated as {user.login} with {len(user.emails)} verified emails")
    return user


async def fetch_verified_emails(queries: Queries) -> FrozenSet[str]:
    try:
        page = await queries.query_rest("/user/emails")
    except (GitHubHTTPError, TransientNetworkError) as e:
        logger.warning(f"Could not fetch user emails (this is optional): {e}")
        return frozenset()
    return verified_emails(page.data)


def verified_emails(data: Any) -> FrozenSet[str]:
    if not isinstance(data, list):
        return frozenset()
    emails = set()
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("verified"):
            continue
        email = entry.get("email")
        if isinstance(email, str) and email.strip():
            emails.add(email.strip().lower())
    return frozenset(emails)


async def fetch_public_user(queries: Queries, username: str) -> User:
    try:
        page = await queries.query_rest(f"/users/{quote(username, safe='')}")
    except NotFound as e:
        raise UserNotFound(f"User not found: {username}") from e
    return User.from_api(page.data)


async def validate_token(
    token: str,
    session: Optional[aiohttp.ClientSession] = None,
    settings: Optional[Settings] = None,
) -> User:
    """
    Check a pasted personal access token by resolving the account behind it.
    """
    if not token or not token.strip():
        raise AuthError("Token is required")
    if session is not None:
        return await resolve_identity(Queries(session, token.strip(), settings))
    async with aiohttp.ClientSession() as own_session:
        return await resolve_identity(Queries(own_session, token.strip(), settings))

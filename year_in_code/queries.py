"""
HTTP access to the GitHub REST (v3) and GraphQL (v4) APIs.

Every non-success status is turned into one of the ``GitHubHTTPError``
subclasses, and anything that goes wrong below HTTP (connection errors,
timeouts, bodies that are not JSON) into ``TransientNetworkError``. Callers
decide which of those are fatal.
"""

import asyncio
import dataclasses
import json
import logging
from typing import Any, Dict, Mapping, NoReturn, Optional

import aiohttp

from year_in_code.config import API_VERSION, Settings
from year_in_code.errors import (
    EmptyRepository,
    Forbidden,
    GitHubHTTPError,
    NotFound,
    RateLimited,
    TransientNetworkError,
    Unauthorized,
)
from year_in_code.rate_limit import RateLimitTracker

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Page:
    """
    One decoded REST response. ``has_link`` tells whether GitHub sent a
    ``Link`` header at all; without one the page size is the only hint that
    more pages exist.
    """

    data: Any
    status: int
    has_link: bool = False
    has_next: bool = False

    def is_last(self, per_page: int) -> bool:
        if not isinstance(self.data, list) or len(self.data) < per_page:
            return True
        if self.has_link:
            return not self.has_next
        return False


class Queries(object):
    """
    Class with functions to query the GitHub GraphQL (v4) API and the REST (v3)
    API. Also includes the GraphQL documents this package needs.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: Optional[str] = None,
        settings: Optional[Settings] = None,
        rate_limit: Optional[RateLimitTracker] = None,
    ):
        self.session = session
        self.access_token = access_token
        self.settings = settings if settings is not None else Settings()
        self.rate_limit = (
            rate_limit
            if rate_limit is not None
            else RateLimitTracker(
                reserve=self.settings.rate_limit_reserve,
                max_wait=self.settings.rate_limit_max_wait,
            )
        )
        self.semaphore = asyncio.Semaphore(self.settings.max_connections)
        self._timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)

    def headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.settings.user_agent,
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def query(
        self, generated_query: str, variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make a request to the GraphQL API and return its ``data`` member
        """
        url = self.settings.graphql_url
        payload: Dict[str, Any] = {"query": generated_query}
        if variables:
            payload["variables"] = variables
        try:
            async with self.semaphore:
                async with self.session.post(
                    url, headers=self.headers(), json=payload, timeout=self._timeout
                ) as response:
                    self.rate_limit.observe(response.headers)
                    if response.status >= 300:
                        await self._raise_for_status(response, url)
                    result = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransientNetworkError(f"GraphQL request failed: {e!r}") from e

        if not isinstance(result, dict):
            raise TransientNetworkError("GraphQL response is not a JSON object")
        errors = result.get("errors") or []
        data = result.get("data")
        if not isinstance(errors, list) or not (data is None or isinstance(data, dict)):
            raise TransientNetworkError("GraphQL response has an unexpected shape")
        if errors and not data:
            messages = [
                str(err.get("message", "")) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            if any("rate limit" in msg.lower() for msg in messages):
                raise RateLimited(200, url, "; ".join(messages))
            raise GitHubHTTPError(200, url, "; ".join(messages))
        return data or {}

    async def query_rest(self, path: str, params: Optional[Dict] = None) -> Page:
        """
        Make a GET request to the REST API
        """
        if params is None:
            params = dict()
        if path.startswith("/"):
            path = path[1:]
        url = f"{self.settings.api_base}/{path}"

        for attempt in range(self.settings.accepted_retries + 1):
            try:
                async with self.semaphore:
                    async with self.session.get(
                        url,
                        headers=self.headers(),
                        params=params,
                        timeout=self._timeout,
                    ) as response:
                        self.rate_limit.observe(response.headers)
                        if response.status == 202:
                            logger.info(f"{path} returned 202 (Processing)")
                        else:
                            if response.status >= 300:
                                await self._raise_for_status(response, url)
                            data = await response.json(content_type=None)
                            return Page(
                                data=data,
                                status=response.status,
                                has_link="Link" in response.headers,
                                has_next="next" in response.links,
                            )
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                raise TransientNetworkError(f"Request to {path} failed: {e!r}") from e

            if attempt < self.settings.accepted_retries:
                await asyncio.sleep(self.settings.accepted_retry_delay)

        raise TransientNetworkError(f"There were too many 202s for {path}")

    @staticmethod
    async def _raise_for_status(
        response: aiohttp.ClientResponse, url: str
    ) -> NoReturn:
        text = await response.text()
        message = _error_message(text)
        raise classify_status(response.status, response.headers, url, message)

    @staticmethod
    def pinned_repos() -> str:
        return """
query($login: String!, $first: Int!) {
  user(login: $login) {
    pinnedItems(first: $first, types: REPOSITORY) {
      nodes {
        ... on Repository {
          nameWithOwner
        }
      }
    }
  }
}
"""


def classify_status(
    status: int, headers: Mapping[str, str], url: str, message: str = ""
) -> GitHubHTTPError:
    if status == 401:
        return Unauthorized(status, url, message)
    if status == 429 or (
        status == 403
        and (
            headers.get("X-RateLimit-Remaining") == "0"
            or "rate limit" in message.lower()
        )
    ):
        reset = headers.get("X-RateLimit-Reset")
        return RateLimited(
            status, url, message, int(reset) if reset and reset.isdigit() else None
        )
    if status == 403:
        return Forbidden(status, url, message)
    if status == 404:
        return NotFound(status, url, message)
    if status == 409:
        return EmptyRepository(status, url, message)
    return GitHubHTTPError(status, url, message)


def _error_message(text: str) -> str:
    try:
        body = json.loads(text)
    except ValueError:
        return text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return text[:200]

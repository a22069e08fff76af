"""
Tunables for talking to GitHub and turning commits into yearly numbers.

Nothing here is persisted. ``Settings.from_env`` lets a deployment override
the defaults through ``YEAR_IN_CODE_*`` environment variables.
"""

import dataclasses
import logging
import os
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_BASE = "https://api.github.com"
GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "year-in-code/1.0"
API_VERSION = "2022-11-28"


@dataclasses.dataclass(frozen=True)
class BrowseProfile:
    """
    Knobs that differ between token-backed and anonymous browsing. Anonymous
    requests share a much smaller per-IP budget, so they go slower.
    """

    batch_size: int
    batch_delay: float
    pr_ratio: float
    issue_ratio: float
    timeline_sample: int


AUTHENTICATED = BrowseProfile(
    batch_size=10, batch_delay=0.1, pr_ratio=0.30, issue_ratio=0.20, timeline_sample=20
)
PUBLIC = BrowseProfile(
    batch_size=5, batch_delay=0.2, pr_ratio=0.25, issue_ratio=0.15, timeline_sample=10
)


@dataclasses.dataclass(frozen=True)
class Settings:
    api_base: str = API_BASE
    graphql_url: str = GRAPHQL_URL
    user_agent: str = USER_AGENT
    per_page: int = 100
    pinned_items: int = 6
    request_timeout: float = 30.0
    deadline: Optional[float] = 600.0
    max_pages: int = 100
    max_connections: int = 10
    accepted_retries: int = 5
    accepted_retry_delay: float = 2.0
    rate_limit_reserve: int = 50
    rate_limit_max_wait: float = 120.0
    authenticated: BrowseProfile = AUTHENTICATED
    public: BrowseProfile = PUBLIC

    def profile(self, authenticated: bool) -> BrowseProfile:
        return self.authenticated if authenticated else self.public

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the environment, keeping the defaults for anything
        unset. Malformed values are ignored with a warning.
        """
        defaults = cls()
        settings = dataclasses.replace(
            defaults,
            api_base=_env("API_BASE", str, defaults.api_base).rstrip("/"),
            graphql_url=_env("GRAPHQL_URL", str, defaults.graphql_url),
            request_timeout=_env("REQUEST_TIMEOUT", float, defaults.request_timeout),
            deadline=_env("DEADLINE", float, defaults.deadline),
            max_pages=_env("MAX_PAGES", int, defaults.max_pages),
            max_connections=_env("MAX_CONNECTIONS", int, defaults.max_connections),
            rate_limit_reserve=_env(
                "RATE_LIMIT_RESERVE", int, defaults.rate_limit_reserve
            ),
            rate_limit_max_wait=_env(
                "RATE_LIMIT_MAX_WAIT", float, defaults.rate_limit_max_wait
            ),
        )
        return dataclasses.replace(
            settings,
            authenticated=dataclasses.replace(
                settings.authenticated,
                batch_size=_env(
                    "BATCH_SIZE", int, settings.authenticated.batch_size
                ),
            ),
            public=dataclasses.replace(
                settings.public,
                batch_size=_env(
                    "PUBLIC_BATCH_SIZE", int, settings.public.batch_size
                ),
            ),
        )


def _env(name: str, cast: Callable[[str], T], default: T) -> T:
    key = f"YEAR_IN_CODE_{name}"
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring malformed {key}={raw!r}")
        return default

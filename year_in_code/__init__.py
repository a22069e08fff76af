"""
Year in Code: a year of GitHub activity, counted from the commits themselves.
"""

from year_in_code.errors import (
    AuthError,
    RepoFetchError,
    StatsError,
    UserNotFound,
    YearInCodeError,
)
from year_in_code.identity import fetch_public_user, resolve_identity, validate_token
from year_in_code.levels import TIERS, Tier, get_level, get_motivational_message
from year_in_code.models import ContributionWindow, Repository, StatsReport, User
from year_in_code.stats import (
    PublicIdentity,
    TokenIdentity,
    get_stats,
    public_identity,
    token_identity,
)

__all__ = [
    "AuthError",
    "ContributionWindow",
    "PublicIdentity",
    "RepoFetchError",
    "Repository",
    "StatsError",
    "StatsReport",
    "TIERS",
    "Tier",
    "TokenIdentity",
    "User",
    "UserNotFound",
    "YearInCodeError",
    "fetch_public_user",
    "get_level",
    "get_motivational_message",
    "get_stats",
    "public_identity",
    "resolve_identity",
    "token_identity",
    "validate_token",
]

"""
Turn a user's reachable repositories into a yearly statistics report.
"""

import asyncio
import dataclasses
import logging
import math
from collections import Counter
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

import aiohttp

from year_in_code.attribution import CommitMatcher
from year_in_code.commits import collect_commit_dates, count_commits
from year_in_code.config import BrowseProfile, Settings
from year_in_code.errors import (
    GitHubHTTPError,
    StatsError,
    TransientNetworkError,
    YearInCodeError,
)
from year_in_code.identity import fetch_public_user, resolve_identity
from year_in_code.models import (
    MONTH_NAMES,
    ContributionWindow,
    Repository,
    StatsReport,
    TimelineEntry,
    Traversal,
    User,
)
from year_in_code.queries import Queries
from year_in_code.repos import (
    RepoCatalog,
    discover_public_repositories,
    discover_repositories,
    fetch_pinned,
)

logger = logging.getLogger(__name__)

RepoWalk = Callable[
    [Queries, Repository, CommitMatcher, ContributionWindow], Awaitable[Traversal]
]


@dataclasses.dataclass(frozen=True)
class TokenIdentity:
    """Bearer token; unlocks private, collaborator and organization data."""

    token: str


@dataclasses.dataclass(frozen=True)
class PublicIdentity:
    """Bare username; public data only."""

    username: str


Identity = Union[TokenIdentity, PublicIdentity]


def token_identity(token: str) -> TokenIdentity:
    return TokenIdentity(token.strip())


def public_identity(username: str) -> PublicIdentity:
    return PublicIdentity(username.strip().lstrip("@"))


###############################################################################
# Main Classes
###############################################################################


class Stats(object):
    """
    Aggregate commit, star and language statistics for one user over one
    window. Each instance owns its own dedup state; build a new one per
    report.
    """

    def __init__(
        self,
        queries: Queries,
        user: User,
        repos: List[Repository],
        window: ContributionWindow,
        profile: Optional[BrowseProfile] = None,
        truncated_listings: Optional[List[str]] = None,
    ):
        self.queries = queries
        self.user = user
        self.repos = repos
        self.window = window
        self.profile = (
            profile
            if profile is not None
            else queries.settings.profile(queries.authenticated)
        )
        self.matcher = CommitMatcher.create(user.login, user.emails)
        self._truncated: Dict[str, str] = {}
        self.truncated_listings = list(truncated_listings or [])

    async def get_stats(self) -> StatsReport:
        logger.info(
            f"Processing {len(self.repos)} repositories for commit counts "
            f"({self.window.since} to {self.window.until})"
        )
        total_commits = await self.count_all()

        if self.queries.authenticated:
            pinned = await fetch_pinned(self.queries, self.user.login)
            for repo in self.repos:
                repo.is_pinned = repo.full_name in pinned

        timeline, scaled = await self.timeline(total_commits)

        logger.info(
            f"Summary: {len(self.repos)} repositories, "
            f"{sum(1 for r in self.repos if r.commits_count > 0)} with commits, "
            f"{total_commits} commits"
        )
        return StatsReport(
            total_commits=total_commits,
            total_prs=math.floor(total_commits * self.profile.pr_ratio),
            total_issues=math.floor(total_commits * self.profile.issue_ratio),
            total_stars=self.stargazers,
            languages=self.languages,
            timeline=timeline,
            repos=self.repos,
            window=self.window,
            user=self.user,
            complete=not self._truncated and not self.truncated_listings,
            truncated_repos=sorted(self._truncated),
            truncated_listings=list(self.truncated_listings),
            timeline_scaled=scaled,
        )

    @property
    def stargazers(self) -> int:
        return sum(repo.stargazers_count for repo in self.repos)

    @property
    def languages(self) -> Dict[str, int]:
        """
        Number of repositories per primary language.
        """
        return dict(Counter(repo.language for repo in self.repos if repo.language))

    async def count_all(self) -> int:
        results = await self._in_batches(self.repos, count_commits)
        total = 0
        for repo, result in zip(self.repos, results):
            repo.commits_count = result.count
            repo.prs_count = math.floor(result.count * self.profile.pr_ratio)
            total += result.count
            if result.count > 0:
                logger.debug(f"{repo.full_name}: {result.count} commits")
        return total

    async def timeline(self, total_commits: int) -> Tuple[List[TimelineEntry], bool]:
        """
        Monthly commit counts across the window.

        Only the busiest repositories are re-walked for dates. When that
        sample leaves out repositories with commits, the monthly counts are
        scaled by total / sampled so they approximate the full total; the
        second element of the result says whether that happened.
        """
        with_commits = sorted(
            (r for r in self.repos if r.commits_count > 0),
            key=lambda r: (-r.commits_count, r.full_name),
        )
        sample = with_commits[: self.profile.timeline_sample]
        logger.info(f"Fetching commit dates from {len(sample)} repos for timeline")
        if sample:
            await self.queries.rate_limit.pause(self.profile.batch_delay)

        results = await self._in_batches(sample, collect_commit_dates)
        dates = [
            moment
            for result in results
            for moment in result.dates
            if self.window.contains(moment)
        ]
        months = bucket_by_month(dates, self.window)

        scaled = False
        if len(sample) < len(with_commits) and total_commits > 0 and dates:
            factor = total_commits / len(dates)
            months = [
                TimelineEntry(e.month, e.label, _round_half_up(e.commits * factor))
                for e in months
            ]
            scaled = True
        return months, scaled

    async def _in_batches(
        self, repos: Sequence[Repository], walk: RepoWalk
    ) -> List[Traversal]:
        """
        Walk repositories in fixed-size concurrent batches, pausing between
        batches. A repository whose walk fails counts as zero.
        """
        results: List[Traversal] = []
        size = max(1, self.profile.batch_size)
        for i in range(0, len(repos), size):
            if i > 0:
                await self.queries.rate_limit.pause(self.profile.batch_delay)
            batch = repos[i : i + size]
            outcomes = await asyncio.gather(
                *[walk(self.queries, r, self.matcher, self.window) for r in batch],
                return_exceptions=True,
            )
            for repo, outcome in zip(batch, outcomes):
                if isinstance(outcome, YearInCodeError):
                    logger.warning(f"Error fetching commits for {repo.full_name}: {outcome}")
                    failed = Traversal()
                    failed.truncate(str(outcome))
                    outcome = failed
                elif isinstance(outcome, BaseException):
                    raise outcome
                if not outcome.complete:
                    self._truncated.setdefault(repo.full_name, outcome.reason or "")
                results.append(outcome)
        return results


def bucket_by_month(dates: Sequence, window: ContributionWindow) -> List[TimelineEntry]:
    """
    One entry per calendar month from the window's first month to its last,
    counting only dates inside the window.
    """
    counts: Counter = Counter(
        (d.year, d.month) for d in dates if window.contains(d)
    )
    return [
        TimelineEntry(f"{year:04d}-{month:02d}", MONTH_NAMES[month - 1], counts[(year, month)])
        for year, month in window.months()
    ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


###############################################################################
# Entry points
###############################################################################


async def get_stats(
    identity: Identity,
    window: Optional[ContributionWindow] = None,
    *,
    session: Optional[aiohttp.ClientSession] = None,
    settings: Optional[Settings] = None,
) -> StatsReport:
    """
    Build the yearly report for a token's owner or a public username.

    Raises AuthError for a rejected token, UserNotFound for an unknown public
    username, and StatsError when discovery fails or the deadline passes.
    """
    if settings is None:
        settings = Settings()
    if window is None:
        window = ContributionWindow.trailing_year()

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await _with_deadline(identity, window, own_session, settings)
    return await _with_deadline(identity, window, session, settings)


async def _with_deadline(
    identity: Identity,
    window: ContributionWindow,
    session: aiohttp.ClientSession,
    settings: Settings,
) -> StatsReport:
    if settings.deadline is None:
        return await _build(identity, window, session, settings)
    try:
        return await asyncio.wait_for(
            _build(identity, window, session, settings), timeout=settings.deadline
        )
    except asyncio.TimeoutError as e:
        raise StatsError(
            f"Statistics took longer than {settings.deadline:.0f}s"
        ) from e


async def _build(
    identity: Identity,
    window: ContributionWindow,
    session: aiohttp.ClientSession,
    settings: Settings,
) -> StatsReport:
    catalog = RepoCatalog()
    if isinstance(identity, TokenIdentity):
        queries = Queries(session, identity.token, settings)
        try:
            user = await resolve_identity(queries)
        except (GitHubHTTPError, TransientNetworkError) as e:
            raise StatsError(f"Failed to fetch GitHub user: {e}") from e
        repos = await discover_repositories(queries, catalog)
    elif isinstance(identity, PublicIdentity):
        queries = Queries(session, None, settings)
        try:
            user = await fetch_public_user(queries, identity.username)
        except (GitHubHTTPError, TransientNetworkError) as e:
            raise StatsError(f"Failed to fetch GitHub user: {e}") from e
        repos = await discover_public_repositories(queries, user.login, catalog)
    else:
        raise TypeError(f"Unsupported identity {identity!r}")

    return await Stats(
        queries, user, repos, window, truncated_listings=catalog.truncated
    ).get_stats()

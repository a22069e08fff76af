"""
Walk a repository's commit history and count what belongs to the user.

Every branch is walked separately and a commit SHA accepted on one branch is
skipped on the others, so a commit counts once per repository no matter how
many branches contain it. Forks contribute nothing, matching GitHub's own
contribution rules.
"""

import logging
from typing import Optional, Set

from year_in_code.attribution import CommitMatcher
from year_in_code.errors import (
    GitHubHTTPError,
    NotFound,
    TransientNetworkError,
)
from year_in_code.models import CommitRecord, ContributionWindow, Repository, Traversal
from year_in_code.queries import Queries
from year_in_code.repos import list_branches

logger = logging.getLogger(__name__)


async def walk_repository(
    queries: Queries,
    repo: Repository,
    matcher: CommitMatcher,
    window: ContributionWindow,
    collect_dates: bool = False,
) -> Traversal:
    """
    Count (and optionally date) the user's commits in ``repo`` within
    ``window``. Never raises for upstream trouble; a walk that had to stop
    early comes back with ``complete`` set to False.
    """
    result = Traversal()
    if repo.fork:
        return result

    listing = await list_branches(queries, repo.full_name)
    if not listing.complete:
        result.truncate(f"{repo.full_name}: {listing.reason}")
    seen: Set[str] = set()
    for branch in listing.names or [None]:
        await _walk_ref(
            queries, repo.full_name, branch, matcher, window, seen, result, collect_dates
        )
    if not result.complete:
        logger.info(f"{repo.full_name}: partial history ({result.reason})")
    return result


async def count_commits(
    queries: Queries,
    repo: Repository,
    matcher: CommitMatcher,
    window: ContributionWindow,
) -> Traversal:
    return await walk_repository(queries, repo, matcher, window)


async def collect_commit_dates(
    queries: Queries,
    repo: Repository,
    matcher: CommitMatcher,
    window: ContributionWindow,
) -> Traversal:
    return await walk_repository(queries, repo, matcher, window, collect_dates=True)


async def _walk_ref(
    queries: Queries,
    full_name: str,
    branch: Optional[str],
    matcher: CommitMatcher,
    window: ContributionWindow,
    seen: Set[str],
    result: Traversal,
    collect_dates: bool,
) -> None:
    per_page = queries.settings.per_page
    params = {"since": window.since, "until": window.until, "per_page": per_page}
    if branch is not None:
        params["sha"] = branch
    where = f"{full_name}@{branch}" if branch is not None else full_name

    page = 1
    while True:
        try:
            response = await queries.query_rest(
                f"/repos/{full_name}/commits", dict(params, page=page)
            )
        except NotFound:
            # Empty repository, or a branch that vanished; nothing more here.
            return
        except GitHubHTTPError as e:
            result.truncate(f"{where} page {page}: HTTP {e.status}")
            return
        except TransientNetworkError as e:
            result.truncate(f"{where} page {page}: {e}")
            return

        if not isinstance(response.data, list):
            result.truncate(f"{where} page {page}: unexpected payload")
            return
        if not response.data:
            return

        for item in response.data:
            try:
                commit = CommitRecord.from_api(item)
            except TransientNetworkError as e:
                result.truncate(f"{where} page {page}: {e}")
                continue
            if commit.sha in seen or not matcher.belongs(commit):
                continue
            seen.add(commit.sha)
            result.count += 1
            if collect_dates and commit.authored_at is not None:
                result.dates.append(commit.authored_at)

        if response.is_last(per_page):
            return
        if page >= queries.settings.max_pages:
            result.truncate(f"{where}: stopped after {page} pages")
            return
        page += 1

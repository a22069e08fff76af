"""
Repository discovery, branch listing and pinned-item lookup.
"""

import dataclasses
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Set
from urllib.parse import quote

from year_in_code.errors import (
    GitHubHTTPError,
    PageLimitReached,
    RepoFetchError,
    TransientNetworkError,
)
from year_in_code.models import Repository
from year_in_code.queries import Queries

logger = logging.getLogger(__name__)

AFFILIATIONS = "owner,collaborator,organization_member"


class RepoCatalog(object):
    """
    Repositories seen during one discovery run, keyed by full name. Each call
    to ``get_stats`` owns a fresh catalog. ``truncated`` names the listings
    that stopped at the page cap, so the catalog may be missing repositories.
    """

    def __init__(self) -> None:
        self.repos: List[Repository] = []
        self.truncated: List[str] = []
        self._seen: Set[str] = set()

    def add(self, repo: Repository) -> bool:
        if repo.full_name in self._seen:
            return False
        self._seen.add(repo.full_name)
        self.repos.append(repo)
        return True

    def cut_short(self, error: PageLimitReached) -> None:
        logger.warning(f"Repository listing incomplete: {error}")
        if error.path not in self.truncated:
            self.truncated.append(error.path)

    def __contains__(self, full_name: object) -> bool:
        return full_name in self._seen

    def __len__(self) -> int:
        return len(self.repos)


@dataclasses.dataclass
class BranchListing:
    """
    Branch names of one repository. ``complete`` is False when the listing
    failed after its first page or hit the page cap.
    """

    names: List[str] = dataclasses.field(default_factory=list)
    complete: bool = True
    reason: Optional[str] = None


async def paginate(
    queries: Queries, path: str, params: Optional[Dict[str, Any]] = None
) -> AsyncIterator[List[Any]]:
    """
    Yield the items of every page of a REST listing. The walk ends on a short
    page or a missing next link. Errors propagate to the caller, and a listing
    with pages left at the page cap raises PageLimitReached after yielding
    what it has.
    """
    per_page = queries.settings.per_page
    page = 1
    while True:
        result = await queries.query_rest(
            path, dict(params or {}, per_page=per_page, page=page)
        )
        if not isinstance(result.data, list):
            raise TransientNetworkError(f"Expected a JSON list from {path}")
        if not result.data:
            return
        yield result.data
        if result.is_last(per_page):
            return
        if page >= queries.settings.max_pages:
            raise PageLimitReached(path, page)
        page += 1


async def _collect(
    queries: Queries,
    catalog: RepoCatalog,
    path: str,
    params: Dict[str, Any],
) -> int:
    added = 0
    try:
        async for items in paginate(queries, path, params):
            for item in items:
                if catalog.add(Repository.from_api(item)):
                    added += 1
    except PageLimitReached as e:
        catalog.cut_short(e)
    return added


async def discover_repositories(
    queries: Queries, catalog: Optional[RepoCatalog] = None
) -> List[Repository]:
    """
    Every repository the token's owner can reach: owned, collaborator and
    organization-member affiliations, then each organization's own listing.
    """
    if catalog is None:
        catalog = RepoCatalog()
    try:
        await _collect(
            queries,
            catalog,
            "/user/repos",
            {"affiliation": AFFILIATIONS, "sort": "updated"},
        )
    except (GitHubHTTPError, TransientNetworkError) as e:
        raise RepoFetchError(f"Failed to fetch repositories: {e}") from e

    orgs: List[str] = []
    try:
        async for items in paginate(queries, "/user/orgs"):
            orgs.extend(
                org["login"]
                for org in items
                if isinstance(org, dict) and isinstance(org.get("login"), str)
            )
    except PageLimitReached as e:
        catalog.cut_short(e)
    except (GitHubHTTPError, TransientNetworkError) as e:
        logger.warning(f"Could not fetch organizations (this is optional): {e}")
    logger.info(f"Found {len(orgs)} organizations")

    for org in orgs:
        try:
            added = await _collect(
                queries, catalog, f"/orgs/{quote(org, safe='')}/repos", {"type": "all"}
            )
        except (GitHubHTTPError, TransientNetworkError) as e:
            logger.warning(f"Error fetching repos for org {org}: {e}")
            continue
        logger.debug(f"Organization {org} added {added} repositories")

    logger.info(f"Total repositories found (including orgs): {len(catalog)}")
    return catalog.repos


async def discover_public_repositories(
    queries: Queries, username: str, catalog: Optional[RepoCatalog] = None
) -> List[Repository]:
    """
    Public repositories owned by ``username``. No token, so no collaborator or
    organization access.
    """
    if catalog is None:
        catalog = RepoCatalog()
    try:
        await _collect(
            queries,
            catalog,
            f"/users/{quote(username, safe='')}/repos",
            {"type": "owner", "sort": "updated"},
        )
    except (GitHubHTTPError, TransientNetworkError) as e:
        raise RepoFetchError(f"Failed to fetch repositories: {e}") from e
    logger.info(f"Found {len(catalog)} public repositories for {username}")
    return catalog.repos


async def list_branches(queries: Queries, full_name: str) -> BranchListing:
    """
    Branch names of a repository. No names means "walk the default history",
    not "there are no branches": empty, private or rate-limited repositories
    fail the first request. A failure after some names arrived leaves the
    listing incomplete.
    """
    listing = BranchListing()
    try:
        async for items in paginate(queries, f"/repos/{full_name}/branches"):
            listing.names.extend(
                b["name"]
                for b in items
                if isinstance(b, dict) and isinstance(b.get("name"), str)
            )
    except PageLimitReached as e:
        listing.complete = False
        listing.reason = str(e)
    except (GitHubHTTPError, TransientNetworkError) as e:
        if listing.names:
            listing.complete = False
            listing.reason = f"branch listing cut short: {e}"
        else:
            logger.debug(f"No branch listing for {full_name}: {e}")
    if not listing.complete:
        logger.warning(f"{full_name}: {listing.reason}")
    return listing


def _field(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, dict) else None


async def fetch_pinned(queries: Queries, username: str) -> Set[str]:
    """
    Full names of the repositories pinned on the user's profile. Failure is
    logged and yields an empty set.
    """
    if not queries.authenticated:
        return set()
    try:
        data = await queries.query(
            Queries.pinned_repos(),
            {"login": username, "first": queries.settings.pinned_items},
        )
    except (GitHubHTTPError, TransientNetworkError) as e:
        logger.warning(f"Could not fetch pinned repos (this is optional): {e}")
        return set()
    nodes = _field(_field(_field(data, "user"), "pinnedItems"), "nodes")
    if not isinstance(nodes, list):
        if data.get("user") is not None:
            logger.warning("Unexpected pinned items payload; ignoring it")
        return set()
    return {
        node["nameWithOwner"]
        for node in nodes
        if isinstance(node, dict) and isinstance(node.get("nameWithOwner"), str)
    }

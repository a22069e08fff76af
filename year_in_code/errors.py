"""
Exception hierarchy for the statistics engine.

Identity and discovery failures propagate to the caller of ``get_stats``.
Everything raised below ``GitHubHTTPError`` is caught per repository or per
branch and only ends that unit's traversal.
"""

from typing import Optional


class YearInCodeError(Exception):
    """Base class for every error raised by this package."""


class AuthError(YearInCodeError):
    """The credential is missing, invalid or expired."""


class UserNotFound(YearInCodeError):
    """A public username lookup returned 404."""


class StatsError(YearInCodeError):
    """The statistics report could not be produced."""


class RepoFetchError(StatsError):
    """Repository discovery failed outright."""


class TransientNetworkError(YearInCodeError):
    """A request failed below HTTP, or its body could not be decoded."""


class GitHubHTTPError(YearInCodeError):
    """GitHub answered with a status we do not treat as success."""

    def __init__(self, status: int, url: str, message: str = ""):
        self.status = status
        self.url = url
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"GitHub API error {status} for {url}{detail}")


class Unauthorized(GitHubHTTPError):
    pass


class Forbidden(GitHubHTTPError):
    pass


class RateLimited(GitHubHTTPError):
    def __init__(
        self, status: int, url: str, message: str = "", reset_at: Optional[int] = None
    ):
        super().__init__(status, url, message)
        self.reset_at = reset_at


class NotFound(GitHubHTTPError):
    pass


class EmptyRepository(NotFound):
    """409 Conflict, which GitHub returns for commit listings of empty repos."""


class PageLimitReached(YearInCodeError):
    """A listing still had pages left when the page cap was hit."""

    def __init__(self, path: str, pages: int):
        self.path = path
        self.pages = pages
        super().__init__(f"Stopped paging {path} after {pages} pages")

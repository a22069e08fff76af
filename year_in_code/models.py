"""
Typed records decoded from GitHub responses, and the report we hand back.

Responses are decoded once, at the boundary. A payload that does not have the
shape we need is reported as ``TransientNetworkError`` so that callers treat it
like any other failed fetch.
"""

import dataclasses
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple

from year_in_code.errors import TransientNetworkError

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decoding(kind: str):
    """
    Turn the usual suspects of a malformed payload into TransientNetworkError.
    """

    def wrap(fn):
        def inner(cls, data: Any):
            if not isinstance(data, dict):
                raise TransientNetworkError(
                    f"Expected a JSON object for {kind}, got {type(data).__name__}"
                )
            try:
                return fn(cls, data)
            except (KeyError, TypeError, ValueError) as e:
                raise TransientNetworkError(f"Malformed {kind} payload: {e!r}") from e

        return classmethod(inner)

    return wrap


###############################################################################
# Upstream records
###############################################################################


@dataclasses.dataclass
class User:
    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    blog: Optional[str] = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    emails: FrozenSet[str] = frozenset()

    @_decoding("user")
    def from_api(cls, data: Dict[str, Any]) -> "User":
        login = data["login"]
        if not isinstance(login, str) or not login:
            raise ValueError("login must be a non-empty string")
        return cls(
            login=login,
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
            bio=data.get("bio"),
            location=data.get("location"),
            company=data.get("company"),
            blog=data.get("blog"),
            public_repos=int(data.get("public_repos") or 0),
            followers=int(data.get("followers") or 0),
            following=int(data.get("following") or 0),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.login

    def to_dict(self) -> Dict[str, Any]:
        return {
            "login": self.login,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "bio": self.bio,
            "location": self.location,
            "company": self.company,
            "blog": self.blog,
            "public_repos": self.public_repos,
            "followers": self.followers,
            "following": self.following,
        }


@dataclasses.dataclass
class Repository:
    id: int
    name: str
    full_name: str
    description: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    language: Optional[str] = None
    updated_at: Optional[str] = None
    html_url: Optional[str] = None
    fork: bool = False
    default_branch: Optional[str] = None
    # Filled in by the aggregator.
    commits_count: int = 0
    prs_count: int = 0
    is_pinned: bool = False

    @_decoding("repository")
    def from_api(cls, data: Dict[str, Any]) -> "Repository":
        full_name = data["full_name"]
        if not isinstance(full_name, str) or "/" not in full_name:
            raise ValueError(f"bad full_name {full_name!r}")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            full_name=full_name,
            description=data.get("description"),
            stargazers_count=int(data.get("stargazers_count") or 0),
            forks_count=int(data.get("forks_count") or 0),
            language=data.get("language"),
            updated_at=data.get("updated_at"),
            html_url=data.get("html_url"),
            fork=bool(data.get("fork", False)),
            default_branch=data.get("default_branch"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    """
    The handful of commit fields attribution looks at. ``author_login`` and
    ``committer_login`` are the linked GitHub accounts, which are absent when
    GitHub could not tie the git identity to a user.
    """

    sha: str
    author_login: Optional[str]
    committer_login: Optional[str]
    author_email: Optional[str]
    committer_email: Optional[str]
    message: str
    parent_count: int
    authored_at: Optional[datetime]

    @_decoding("commit")
    def from_api(cls, data: Dict[str, Any]) -> "CommitRecord":
        sha = data["sha"]
        if not isinstance(sha, str) or not sha:
            raise ValueError("sha must be a non-empty string")
        git = data.get("commit") or {}
        git_author = git.get("author") or {}
        git_committer = git.get("committer") or {}
        return cls(
            sha=sha,
            author_login=(data.get("author") or {}).get("login"),
            committer_login=(data.get("committer") or {}).get("login"),
            author_email=git_author.get("email"),
            committer_email=git_committer.get("email"),
            message=git.get("message") or "",
            parent_count=len(data.get("parents") or []),
            authored_at=parse_timestamp(git_author.get("date")),
        )

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1 or self.message.startswith("Merge")


###############################################################################
# Window and results
###############################################################################


@dataclasses.dataclass(frozen=True)
class ContributionWindow:
    """
    Inclusive [start, end] range of aware UTC datetimes.
    """

    start: datetime
    end: datetime

    @classmethod
    def trailing_year(cls, now: Optional[datetime] = None) -> "ContributionWindow":
        """
        End of today back to the start of the day 365 days earlier.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        else:
            now = now.astimezone(timezone.utc)
        end = datetime.combine(now.date(), time.max, tzinfo=timezone.utc)
        start_day = (end - timedelta(days=365)).date()
        start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
        return cls(start=start, end=end)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def since(self) -> str:
        return _iso(self.start)

    @property
    def until(self) -> str:
        return _iso(self.end)

    def months(self) -> Iterator[Tuple[int, int]]:
        year, month = self.start.year, self.start.month
        while (year, month) <= (self.end.year, self.end.month):
            yield year, month
            month += 1
            if month > 12:
                year, month = year + 1, 1


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclasses.dataclass
class Traversal:
    """
    What one repository (or one branch of it) contributed. ``complete`` is
    False when the walk stopped before GitHub said there was nothing left.
    """

    count: int = 0
    dates: List[datetime] = dataclasses.field(default_factory=list)
    complete: bool = True
    reason: Optional[str] = None

    def truncate(self, reason: str) -> None:
        self.complete = False
        if self.reason is None:
            self.reason = reason


@dataclasses.dataclass(frozen=True)
class TimelineEntry:
    month: str
    label: str
    commits: int

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.label, "key": self.month, "commits": self.commits}


@dataclasses.dataclass
class StatsReport:
    total_commits: int
    total_prs: int
    total_issues: int
    total_stars: int
    languages: Dict[str, int]
    timeline: List[TimelineEntry]
    repos: List[Repository]
    window: ContributionWindow
    user: Optional[User] = None
    complete: bool = True
    truncated_repos: List[str] = dataclasses.field(default_factory=list)
    truncated_listings: List[str] = dataclasses.field(default_factory=list)
    timeline_scaled: bool = False

    def summary(self) -> str:
        """
        :return: human readable summary of the report
        """
        languages = sorted(self.languages.items(), key=lambda kv: (-kv[1], kv[0]))
        formatted_languages = "\n  - ".join([f"{k}: {v}" for k, v in languages])
        timeline = "\n  - ".join(
            [f"{e.month}: {e.commits:,}" for e in self.timeline]
        )
        name = self.user.display_name if self.user is not None else "Unknown"
        scaled = " (scaled estimate)" if self.timeline_scaled else ""
        gaps = ", ".join(self.truncated_repos + self.truncated_listings)
        note = "" if self.complete else f"\nIncomplete data for: {gaps}"
        return f"""Name: {name}
Window: {self.window.since} .. {self.window.until}
Commits: {self.total_commits:,}
Pull requests (estimated): {self.total_prs:,}
Issues (estimated): {self.total_issues:,}
Stargazers: {self.total_stars:,}
Repositories: {len(self.repos)}
Timeline{scaled}:
  - {timeline}
Languages:
  - {formatted_languages}{note}"""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "totalPRs": self.total_prs,
            "totalIssues": self.total_issues,
            "totalStars": self.total_stars,
            "topRepos": [r.to_dict() for r in self.repos],
            "languages": dict(self.languages),
            "commitTimeline": [e.to_dict() for e in self.timeline],
            "timelineScaled": self.timeline_scaled,
            "complete": self.complete,
            "truncatedRepos": list(self.truncated_repos),
            "truncatedListings": list(self.truncated_listings),
            "window": {"since": self.window.since, "until": self.window.until},
        }

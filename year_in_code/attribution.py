"""
Decide whether a commit belongs to a user.

Signals, in order: linked GitHub login, verified email (including the
account's ``users.noreply.github.com`` address), and ``Co-authored-by``
trailers. Merge commits only count when the user is on the author side.
"""

import dataclasses
import re
from typing import FrozenSet, Iterable, List, Optional

from year_in_code.models import CommitRecord

NOREPLY_DOMAIN = "@users.noreply.github.com"

CO_AUTHOR_RE = re.compile(
    r"^\s*co-authored-by:\s*(?P<name>[^<\n]*?)\s*<(?P<email>[^>\n]+)>",
    re.IGNORECASE | re.MULTILINE,
)

AUTHOR_LOGIN = "author_login"
AUTHOR_EMAIL = "author_email"
CO_AUTHOR = "co_author"
COMMITTER_LOGIN = "committer_login"
COMMITTER_EMAIL = "committer_email"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_login(login: Optional[str]) -> str:
    return (login or "").strip().lstrip("@").casefold()


def github_username_from_email(email: str) -> str:
    """
    Extract GitHub username from GitHub noreply patterns:
      - username@users.noreply.github.com
      - 123456+username@users.noreply.github.com
    Returns normalized username or "".
    """
    e = normalize_email(email)
    if not e.endswith(NOREPLY_DOMAIN):
        return ""
    local = e.split("@", 1)[0]
    if "+" in local:
        local = local.rsplit("+", 1)[-1]
    return normalize_login(local)


def co_author_emails(message: str) -> List[str]:
    return [normalize_email(m.group("email")) for m in CO_AUTHOR_RE.finditer(message)]


@dataclasses.dataclass(frozen=True)
class CommitMatcher:
    login: str
    emails: FrozenSet[str] = frozenset()

    @classmethod
    def create(cls, login: str, emails: Iterable[str] = ()) -> "CommitMatcher":
        return cls(
            login=normalize_login(login),
            emails=frozenset(normalize_email(e) for e in emails if normalize_email(e)),
        )

    def owns_email(self, email: Optional[str]) -> bool:
        e = normalize_email(email)
        if not e:
            return False
        if e in self.emails:
            return True
        return bool(self.login) and github_username_from_email(e) == self.login

    def signals(self, commit: CommitRecord) -> List[str]:
        """
        Every signal tying the commit to the user, author side first.
        """
        found = []
        if self.login and normalize_login(commit.author_login) == self.login:
            found.append(AUTHOR_LOGIN)
        if self.owns_email(commit.author_email):
            found.append(AUTHOR_EMAIL)
        if any(self.owns_email(e) for e in co_author_emails(commit.message)):
            found.append(CO_AUTHOR)
        if self.login and normalize_login(commit.committer_login) == self.login:
            found.append(COMMITTER_LOGIN)
        if self.owns_email(commit.committer_email):
            found.append(COMMITTER_EMAIL)
        return found

    def belongs(self, commit: CommitRecord) -> bool:
        found = self.signals(commit)
        if not found:
            return False
        author_side = any(s in (AUTHOR_LOGIN, AUTHOR_EMAIL, CO_AUTHOR) for s in found)
        # Merging someone else's branch is not authorship.
        if commit.is_merge and not author_side:
            return False
        return True

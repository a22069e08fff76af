from datetime import datetime, timezone

from year_in_code.attribution import (
    CommitMatcher,
    co_author_emails,
    github_username_from_email,
)
from year_in_code.models import CommitRecord


def commit(
    author_login=None,
    committer_login=None,
    author_email=None,
    committer_email=None,
    message="Fix things",
    parents=1,
) -> CommitRecord:
    return CommitRecord(
        sha="abc",
        author_login=author_login,
        committer_login=committer_login,
        author_email=author_email,
        committer_email=committer_email,
        message=message,
        parent_count=parents,
        authored_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


MATCHER = CommitMatcher.create("Alice", ["Alice@Example.com"])


def test_author_login_is_case_insensitive() -> None:
    assert MATCHER.belongs(commit(author_login="ALICE"))


def test_committer_login_counts_for_regular_commits() -> None:
    assert MATCHER.belongs(commit(author_login="bob", committer_login="alice"))


def test_verified_email_matches() -> None:
    assert MATCHER.belongs(commit(author_email="alice@example.com"))
    assert MATCHER.belongs(commit(committer_email="ALICE@example.com"))


def test_noreply_address_matches_login() -> None:
    assert github_username_from_email("12345+Alice@users.noreply.github.com") == "alice"
    assert MATCHER.belongs(commit(author_email="12345+alice@users.noreply.github.com"))


def test_co_author_trailer_matches() -> None:
    message = "Pair on parser\n\nCo-authored-by: Alice Smith <alice@example.com>\n"
    assert co_author_emails(message) == ["alice@example.com"]
    assert MATCHER.belongs(commit(author_login="bob", message=message))


def test_co_author_with_unverified_email_does_not_match() -> None:
    message = "Pair\n\nCo-authored-by: Alice <alice@elsewhere.org>"
    assert not MATCHER.belongs(commit(author_login="bob", message=message))


def test_unrelated_commit_does_not_match() -> None:
    assert not MATCHER.belongs(
        commit(author_login="bob", committer_login="web-flow", author_email="bob@x.io")
    )


def test_merge_committed_by_user_is_rejected() -> None:
    c = commit(
        author_login="bob",
        committer_login="alice",
        author_email="bob@x.io",
        message="Merge branch 'feature'",
        parents=2,
    )
    assert not MATCHER.belongs(c)


def test_merge_detected_by_message_alone() -> None:
    c = commit(author_login="bob", committer_login="alice", message="Merge pull request #4")
    assert not MATCHER.belongs(c)


def test_merge_authored_by_user_counts() -> None:
    c = commit(author_login="alice", committer_login="alice", parents=2, message="Merge x")
    assert MATCHER.belongs(c)


def test_merge_with_author_email_counts() -> None:
    c = commit(
        author_login=None,
        committer_login="alice",
        author_email="alice@example.com",
        parents=2,
    )
    assert MATCHER.belongs(c)


def test_matcher_without_emails_ignores_empty_addresses() -> None:
    matcher = CommitMatcher.create("alice")
    assert not matcher.belongs(commit(author_login="bob", author_email=""))

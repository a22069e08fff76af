import json

import pytest

from year_in_code import __main__ as cli
from year_in_code.errors import AuthError
from year_in_code.models import ContributionWindow, StatsReport, User


def fake_report() -> StatsReport:
    return StatsReport(
        total_commits=1500,
        total_prs=450,
        total_issues=300,
        total_stars=9,
        languages={"Rust": 1},
        timeline=[],
        repos=[],
        window=ContributionWindow.trailing_year(),
        user=User(login="alice"),
    )


def test_requires_token_or_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)
    assert cli.main([]) == 2


def test_json_output(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    seen = {}

    async def fake_get_stats(identity, settings=None):
        seen["identity"] = identity
        return fake_report()

    monkeypatch.setattr(cli, "get_stats", fake_get_stats)
    assert cli.main(["--user", "alice", "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["totalCommits"] == 1500
    assert payload["level"]["name"] == "Code Samurai"
    assert payload["user"]["login"] == "alice"
    assert seen["identity"].username == "alice"


def test_auth_failure_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get_stats(identity, settings=None):
        raise AuthError("bad")

    monkeypatch.setattr(cli, "get_stats", fake_get_stats)
    assert cli.main(["--token", "x"]) == 1

import pytest

from year_in_code.levels import TIERS, get_level, get_motivational_message, tier_index


@pytest.mark.parametrize(
    "commits,name",
    [
        (0, "Code Ninja"),
        (1000, "Code Ninja"),
        (1001, "Code Samurai"),
        (5000, "Code Samurai"),
        (5001, "Open Source Master"),
        (10000, "Open Source Master"),
        (10001, "Legendary Developer"),
        (250000, "Legendary Developer"),
    ],
)
def test_get_level_boundaries(commits: int, name: str) -> None:
    assert get_level(commits).name == name


def test_get_level_is_monotonic() -> None:
    previous = 0
    for commits in range(0, 12001, 7):
        index = tier_index(get_level(commits))
        assert index >= previous
        previous = index


def test_negative_count_defaults_to_lowest_tier() -> None:
    assert get_level(-5) is TIERS[0]


def test_motivational_message() -> None:
    assert get_motivational_message(get_level(10001)) == "Your commits echo through the cosmos!"
    assert get_motivational_message(TIERS[0]) == "Keep slashing bugs, Ninja!"


def test_tiers_cover_the_number_line() -> None:
    for lower, upper in zip(TIERS, TIERS[1:]):
        assert lower.max_commits is not None
        assert upper.min_commits == lower.max_commits + 1
    assert TIERS[-1].max_commits is None

"""
Leaderboard tiers by yearly commit count.
"""

import dataclasses
from typing import Optional, Tuple


@dataclasses.dataclass(frozen=True)
class Tier:
    name: str
    emoji: str
    badge_color: str
    description: str
    message: str
    min_commits: int
    max_commits: Optional[int]

    def contains(self, commits: int) -> bool:
        if commits < self.min_commits:
            return False
        return self.max_commits is None or commits <= self.max_commits


TIERS: Tuple[Tier, ...] = (
    Tier(
        name="Code Ninja",
        emoji="🥷",
        badge_color="blue",
        description="Silent but deadly coder",
        message="Keep slashing bugs, Ninja!",
        min_commits=0,
        max_commits=1000,
    ),
    Tier(
        name="Code Samurai",
        emoji="⚔️",
        badge_color="purple",
        description="Master of repositories",
        message="Your code cuts through complexity like a blade!",
        min_commits=1001,
        max_commits=5000,
    ),
    Tier(
        name="Open Source Master",
        emoji="🧠",
        badge_color="gold",
        description="Inspires through code",
        message="You're inspiring the next generation of developers!",
        min_commits=5001,
        max_commits=10000,
    ),
    Tier(
        name="Legendary Developer",
        emoji="🚀",
        badge_color="platinum",
        description="Leaves commits in the stars",
        message="Your commits echo through the cosmos!",
        min_commits=10001,
        max_commits=None,
    ),
)


def get_level(total_commits: int) -> Tier:
    for tier in TIERS:
        if tier.contains(total_commits):
            return tier
    return TIERS[0]


def get_motivational_message(tier: Tier) -> str:
    return tier.message or "Keep coding!"


def tier_index(tier: Tier) -> int:
    return TIERS.index(tier)

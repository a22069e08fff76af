#!/usr/bin/python3

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from year_in_code.config import Settings
from year_in_code.errors import AuthError, YearInCodeError
from year_in_code.levels import get_level, get_motivational_message
from year_in_code.stats import Identity, get_stats, public_identity, token_identity


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="year_in_code",
        description="Summarise the last 365 days of GitHub commits.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--token",
        help="GitHub access token (default: $GITHUB_TOKEN)",
    )
    source.add_argument(
        "--user",
        help="Public username; only public repositories are counted",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    identity: Identity
    if args.user:
        identity = public_identity(args.user)
    else:
        token = args.token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
        if not token:
            print("A token (--token or GITHUB_TOKEN) or --user is required", file=sys.stderr)
            return 2
        identity = token_identity(token)

    try:
        report = asyncio.run(get_stats(identity, settings=Settings.from_env()))
    except AuthError as e:
        print(f"Not authenticated: {e}", file=sys.stderr)
        return 1
    except YearInCodeError as e:
        print(f"Failed to fetch GitHub data: {e}", file=sys.stderr)
        return 2

    level = get_level(report.total_commits)
    if args.json:
        payload = report.to_dict()
        payload["user"] = report.user.to_dict() if report.user else None
        payload["level"] = {
            "name": level.name,
            "emoji": level.emoji,
            "badgeColor": level.badge_color,
            "description": level.description,
            "message": get_motivational_message(level),
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(report.summary())
        print(f"Level: {level.emoji} {level.name} - {get_motivational_message(level)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

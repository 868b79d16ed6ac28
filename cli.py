#!/usr/bin/env python3
"""
FightBook - Command Line Interface

Run matches between fighter skill files without a server or database.

Usage:
    python cli.py init "Iron Mike"
    python cli.py fight ./red.md ./blue.md --seed 42
    python cli.py fight ./red.md ./blue.md --json
    python cli.py validate ./red.md
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import config
from simulation.fight_engine import InvalidMatchError, MatchResult, simulate_match
from simulation.log_classifier import LineKind, classify_line, competitor_names, round_number
from simulation.profiles import (
    POINT_BUDGET, ProfileError, parse_profile_text, points_spent,
    render_profile_template, to_skill_profile, validate_stats,
)

BANNER_WIDTH = 52

ANSI = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "yellow": "\x1b[33m",
    "red": "\x1b[31m",
}


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def _paint(text: str, *styles: str, color: bool = False) -> str:
    if not color:
        return text
    return "".join(ANSI[s] for s in styles) + text + ANSI["reset"]


def format_banner(label: str, char: str = "-") -> str:
    border = char * BANNER_WIDTH
    return f"{border}\n{label.center(BANNER_WIDTH)}\n{border}"


def format_winner(result: MatchResult) -> str:
    if result.is_draw:
        return format_banner("DRAW", "=")
    return format_banner(f"WINNER: {result.winner}  by {result.method}", "=")


def render_log(result: MatchResult, out: TextIO, color: bool = False) -> None:
    """Print the play-by-play, decorating lines by their category."""
    names = competitor_names(result.log)
    for line in result.log:
        kind = classify_line(line, names)
        if kind is LineKind.ROUND_HEADER:
            print(_paint(format_banner(f"ROUND {round_number(line)}"), "dim", color=color), file=out)
        elif kind is LineKind.CRITICAL:
            print(_paint(line, "bold", "yellow", color=color), file=out)
            print(_paint("  *** CRITICAL HIT ***", "yellow", color=color), file=out)
        elif kind in (LineKind.STOPPAGE, LineKind.SUBMISSION_FINISH):
            print(_paint(line, "bold", "red", color=color), file=out)
            print(_paint("  *** FIGHT OVER ***", "red", color=color), file=out)
        elif kind in (LineKind.END_OF_ROUND, LineKind.DECISION_MARKER):
            print(_paint(line, "dim", color=color), file=out)
        else:
            print(line, file=out)
    print(file=out)
    print(_paint(format_winner(result), "bold", "yellow", color=color), file=out)


# =============================================================================
# PROFILE LOADING
# =============================================================================

def load_profile_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ProfileError(f"{path}: expected a JSON object")
        stats = data.get("stats", data)
        return {**stats, "name": data.get("name")}
    return parse_profile_text(text)


def _profile_from_file(path: Path, fighter_id: str):
    skills = load_profile_file(path)
    name = skills.pop("name", None)
    if not name:
        raise ProfileError(f"{path}: no name set")
    skills.pop("nickname", None)
    return to_skill_profile(fighter_id, name, skills)


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_init(args: argparse.Namespace) -> int:
    filename = Path(f"{args.name.strip().lower().replace(' ', '-')}.md")
    if filename.exists() and not args.force:
        print(f"{filename} already exists (use --force to overwrite)", file=sys.stderr)
        return 1
    filename.write_text(render_profile_template(args.name.strip()), encoding="utf-8")
    print(f"Created {filename}")
    print("Edit the file to customize your fighter, then run:")
    print(f"  python cli.py fight {filename} <opponent.md>")
    return 0


def cmd_fight(args: argparse.Namespace) -> int:
    for path in (args.file_a, args.file_b):
        if not path.exists():
            print(f"File not found: {path}", file=sys.stderr)
            return 1

    try:
        a = _profile_from_file(args.file_a, "agent_1")
        b = _profile_from_file(args.file_b, "agent_2")
        result = simulate_match(a, b, seed=args.seed)
    except (ProfileError, InvalidMatchError, json.JSONDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_log(result, sys.stdout, color=sys.stdout.isatty())
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    if not args.file.exists():
        print(f"File not found: {args.file}", file=sys.stderr)
        return 1
    try:
        skills = load_profile_file(args.file)
    except (ProfileError, json.JSONDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    name = skills.pop("name", None)
    skills.pop("nickname", None)
    print(f"  Name: {name or 'Not set'}")
    for stat in ("striking", "wrestling", "submissions", "cardio"):
        print(f"  {stat.capitalize()}: {skills.get(stat, 'default')}")
    print(f"  Budget: {points_spent(skills):g} / {POINT_BUDGET} points used")

    errors = validate_stats(skills)
    if not name:
        errors.insert(0, "name: required")
    for err in errors:
        print(f"  Error: {err}", file=sys.stderr)
    if errors:
        return 1
    print("Valid skills file")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    print(f"fightbook v{config.VERSION}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fightbook", description="FightBook - AI Combat Arena")
    sub = parser.add_subparsers(dest="command")

    p_init = sub.add_parser("init", help="Create a new fighter template")
    p_init.add_argument("name")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    p_init.set_defaults(func=cmd_init)

    p_fight = sub.add_parser("fight", help="Run a fight between two skill files")
    p_fight.add_argument("file_a", type=Path)
    p_fight.add_argument("file_b", type=Path)
    p_fight.add_argument("--seed", type=int, default=None, help="Seed for a reproducible fight")
    p_fight.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_fight.set_defaults(func=cmd_fight)

    p_validate = sub.add_parser("validate", help="Validate a skills file")
    p_validate.add_argument("file", type=Path)
    p_validate.set_defaults(func=cmd_validate)

    p_version = sub.add_parser("version", help="Show version")
    p_version.set_defaults(func=cmd_version)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

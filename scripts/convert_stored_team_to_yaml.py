#!/usr/bin/env python3
"""
Convert a saved browser team state (JSON) into a team YAML file.

This script:
1. Reads the camelCase team state saved by the web calculator
2. Maps members, enemy and ability target overrides to the team file fields
3. Uses bond slots when the saved member has them, else the legacy bond type

Usage:
    python scripts/convert_stored_team_to_yaml.py saved_team.json --dry-run
    python scripts/convert_stored_team_to_yaml.py saved_team.json -o data/teams/my_team.yaml
"""

import argparse
import json
import sys
from pathlib import Path

import yaml

MEMBER_FIELDS = {
    "cardId": "card_id",
    "assistCardId": "assist_card_id",
    "limitBreak": "limit_break",
    "levelBonus": "level_bonus",
    "skillActive": "skill_active",
}

ENEMY_FIELDS = {
    "baseShield": "base_shield",
    "baseDefense": "base_defense",
    "isFinalWave": "is_final_wave",
    "waveCount": "wave_count",
    "attribute": "attribute",
    "ignoreShieldCap": "ignore_shield_cap",
    "worldBossBonus": "world_boss_bonus",
    "healersDontAttack": "healers_dont_attack",
}


def convert_member(stored: dict) -> dict:
    """Convert one saved member."""
    member = {
        new_key: stored[old_key]
        for old_key, new_key in MEMBER_FIELDS.items()
        if stored.get(old_key) is not None
    }

    bonds = [stored.get(key) for key in ("bond1", "bond2", "bond3")]
    if any(bond is not None for bond in bonds):
        member["bonds"] = [bond or "none" for bond in bonds]
    elif stored.get("bondType"):
        # Older saves only have the single bond type
        member["bond_mode"] = "legacy"
        member["bond_type"] = stored["bondType"]

    return member


def convert_state(state: dict, name: str) -> dict:
    """Convert a whole saved team state into the team file layout."""
    team = {
        "name": name,
        "members": [convert_member(m) for m in state.get("members", [])],
    }

    enemy = state.get("enemy") or {}
    team["enemy"] = {
        new_key: enemy[old_key]
        for old_key, new_key in ENEMY_FIELDS.items()
        if enemy.get(old_key) is not None
    }

    overrides = state.get("abilityTargetOverrides")
    if overrides:
        team["ability_target_overrides"] = {str(k): list(v) for k, v in overrides.items()}

    # Drop trailing empty slots
    while team["members"] and not team["members"][-1].get("card_id"):
        team["members"].pop()

    return team


def main():
    parser = argparse.ArgumentParser(description="Convert a saved team state to a team YAML file")
    parser.add_argument("input", type=Path, help="Saved team state (JSON)")
    parser.add_argument("-o", "--output", type=Path, help="Output YAML file (default: input with .yaml)")
    parser.add_argument("--name", help="Team name (default: input file stem)")
    parser.add_argument("--dry-run", action="store_true", help="Print the YAML instead of writing it")
    args = parser.parse_args()

    if not args.input.exists():
        print(f"Error: File not found: {args.input}")
        sys.exit(1)

    with open(args.input, encoding="utf-8") as f:
        try:
            state = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error: Invalid JSON in {args.input}: {e}")
            sys.exit(1)

    team = convert_state(state, args.name or args.input.stem)
    content = yaml.safe_dump(team, sort_keys=False, allow_unicode=True)

    if args.dry_run:
        print(content)
        return

    output = args.output or args.input.with_suffix(".yaml")
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        f.write(content)

    print(f"Converted {len(team['members'])} members")
    print(f"  Written: {output}")


if __name__ == "__main__":
    main()

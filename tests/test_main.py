from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from otogi_calc.main import app

runner = CliRunner()


@pytest.fixture
def cards_file(tmp_path: Path) -> Path:
    cards = {
        "1000": {
            "name": "Striker",
            "stats": {"attribute_name": "Divina", "max_level": 80, "speed": 150, "base_atk": 1000, "max_atk": 3000},
        },
    }
    path = tmp_path / "cards.json"
    path.write_text(json.dumps(cards), encoding="utf-8")
    return path


@pytest.fixture
def team_file(tmp_path: Path) -> Path:
    path = tmp_path / "team.yaml"
    path.write_text(yaml.safe_dump({"name": "Solo", "members": [{"card_id": "1000"}]}), encoding="utf-8")
    return path


def test_calc_prints_totals(cards_file: Path, team_file: Path) -> None:
    result = runner.invoke(app, ["calc", str(team_file), "--cards", str(cards_file)])

    assert result.exit_code == 0
    assert "Total DPS (expected): 300" in result.output


def test_compare_command(cards_file: Path, team_file: Path) -> None:
    result = runner.invoke(app, ["compare", str(team_file), "--cards", str(cards_file)])
    assert result.exit_code == 0
    assert "+10% DMG" in result.output


def test_compare_rejects_empty_slot(cards_file: Path, team_file: Path) -> None:
    result = runner.invoke(app, ["compare", str(team_file), "--slot", "3", "--cards", str(cards_file)])
    assert result.exit_code == 1


def test_fight_command(cards_file: Path, team_file: Path) -> None:
    result = runner.invoke(app, ["fight", str(team_file), "--duration", "100", "--cards", str(cards_file)])

    assert result.exit_code == 0
    assert "30,000" in result.output


def test_missing_cards_file_exits_with_error(tmp_path: Path, team_file: Path) -> None:
    result = runner.invoke(app, ["calc", str(team_file), "--cards", str(tmp_path / "nope.json")])
    assert result.exit_code == 1


def test_missing_team_file_exits_with_error(cards_file: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, ["calc", str(tmp_path / "nope.yaml"), "--cards", str(cards_file)])
    assert result.exit_code == 1


def test_list_cards(cards_file: Path) -> None:
    result = runner.invoke(app, ["list-cards", "--cards", str(cards_file)])
    assert result.exit_code == 0
    assert "Striker" in result.output


def test_list_cards_with_undecodable_file(tmp_path: Path) -> None:
    path = tmp_path / "cards.json"
    path.write_bytes(b"\xff\xfe")

    result = runner.invoke(app, ["list-cards", "--cards", str(path)])

    assert result.exit_code == 1
    assert "Cannot parse cards file" in result.output
    assert not isinstance(result.exception, UnicodeDecodeError)

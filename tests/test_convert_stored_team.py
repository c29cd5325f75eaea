from __future__ import annotations

from otogi_calc.models import BondMode, BondSlotType, TeamConfig
from scripts.convert_stored_team_to_yaml import convert_member, convert_state


def test_convert_member_with_bond_slots() -> None:
    member = convert_member(
        {"cardId": "1000", "limitBreak": 3, "bond1": "atk7", "bond2": None, "bond3": "skill5", "bondType": "atk15"}
    )

    assert member == {
        "card_id": "1000",
        "limit_break": 3,
        "bonds": ["atk7", "none", "skill5"],
    }


def test_convert_member_with_legacy_bond_type() -> None:
    member = convert_member({"cardId": "1000", "assistCardId": "2000", "bondType": "split7"})

    assert member["bond_mode"] == "legacy"
    assert member["bond_type"] == "split7"
    assert member["assist_card_id"] == "2000"


def test_converted_state_is_a_valid_team() -> None:
    state = {
        "members": [
            {"cardId": "1000", "skillActive": True, "bond1": "atk5"},
            {"cardId": None},
            {"cardId": "1001", "bondType": "atk10"},
            {"cardId": None},
            {},
        ],
        "enemy": {"baseShield": 0.3, "attribute": "Anima", "waveCount": 3, "isFinalWave": None},
        "abilityTargetOverrides": {"a1": [2, 0]},
    }
    team_data = convert_state(state, "Saved")

    assert len(team_data["members"]) == 3
    assert team_data["enemy"] == {"base_shield": 0.3, "wave_count": 3, "attribute": "Anima"}

    team = TeamConfig.model_validate(team_data)
    assert team.name == "Saved"
    assert team.members[0].bonds == [BondSlotType.ATK5, BondSlotType.NONE, BondSlotType.NONE]
    assert team.members[1].card_id is None
    assert team.members[2].bond_mode == BondMode.LEGACY
    assert team.enemy.wave_count == 3
    assert team.ability_target_overrides == {"a1": [2, 0]}

"""
Data loader for card data and team files.

Cards come from the upstream card export (JSON, or YAML for hand-made
fixtures). Team files are human-edited YAML. Both are parsed into Pydantic
models; invalid card entries are logged and skipped.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .constants import TOTAL_SLOTS
from .models import BondSlotType, Card, TeamConfig, TeamMemberConfig, TeamMemberState
from .skills import parse_skill_effect
from .stats import get_effective_level

logger = logging.getLogger(__name__)


class DataLoadError(Exception):
    """A data file exists but cannot be parsed."""


def _read_data_file(file_path: Path) -> Any:
    """Load a JSON or YAML file based on its suffix."""
    with open(file_path, encoding="utf-8") as f:
        if file_path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


class DataLoader:
    """
    Loads cards and team files.

    The loader only reads what the card export and the user provide; it
    never invents card data.
    """

    def __init__(self, cards_file: str | Path):
        """
        Initialize the data loader.

        Args:
            cards_file: Path to the card export (.json, .yaml or .yml).
        """
        self.cards_file = Path(cards_file)
        self._validate_cards_file()
        self._cards: dict[str, Card] | None = None

    def _validate_cards_file(self) -> None:
        """Validate that the cards file exists."""
        if not self.cards_file.exists():
            raise FileNotFoundError(f"Cards file not found: {self.cards_file}")

    def _load_card(self, card_id: str, data: Any) -> Card | None:
        """
        Parse a single card entry.

        Args:
            card_id: Key of the entry, used when the entry has no id.
            data: Raw card mapping.

        Returns:
            Parsed Card, or None if validation fails.
        """
        if not isinstance(data, dict):
            logger.error(f"Card entry {card_id} is not a mapping, skipping")
            return None

        try:
            return Card.model_validate({"id": card_id, **data})
        except ValidationError as e:
            logger.error(f"Validation error in card {card_id}:\n{e}")
            return None

    def load_cards(self) -> dict[str, Card]:
        """
        Load all cards, keyed by id.

        Accepts {"cards": {id: card}}, a plain {id: card} mapping, or a list
        of cards with ids.

        Returns:
            Mapping of card id to Card.

        Raises:
            DataLoadError: If the file cannot be parsed at all.
        """
        if self._cards is not None:
            return self._cards

        try:
            raw = _read_data_file(self.cards_file)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            logger.error(f"Parse error in {self.cards_file}:\n{e}")
            raise DataLoadError(f"Cannot parse cards file {self.cards_file}: {e}") from e

        if isinstance(raw, dict) and "cards" in raw:
            raw = raw["cards"]

        if isinstance(raw, dict):
            entries = [(str(key), value) for key, value in raw.items()]
        elif isinstance(raw, list):
            entries = [
                (str(item.get("id", index)) if isinstance(item, dict) else str(index), item)
                for index, item in enumerate(raw)
            ]
        else:
            raise DataLoadError(f"Unexpected cards file layout in {self.cards_file}")

        cards = {}
        for card_id, data in entries:
            card = self._load_card(card_id, data)
            if card:
                cards[card.id] = card
                logger.debug(f"Loaded card: {card.id}")

        logger.info(f"Loaded {len(cards)} cards from {self.cards_file}")
        self._cards = cards
        return cards

    def get_card(self, card_id: str) -> Card | None:
        """
        Look up a card by id.

        Args:
            card_id: The card's id.

        Returns:
            Card if found, None otherwise.
        """
        return self.load_cards().get(str(card_id))

    def load_team(self, team_file: str | Path) -> TeamConfig:
        """
        Load a team file.

        Args:
            team_file: Path to the team YAML file.

        Returns:
            Parsed TeamConfig.

        Raises:
            FileNotFoundError: If the file does not exist.
            DataLoadError: If the file is not valid YAML or not a valid team.
        """
        team_path = Path(team_file)
        if not team_path.exists():
            raise FileNotFoundError(f"Team file not found: {team_path}")

        try:
            data = _read_data_file(team_path) or {}
            team = TeamConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"Validation error in {team_path}:\n{e}")
            raise DataLoadError(f"Invalid team file {team_path}") from e
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            logger.error(f"Parse error in {team_path}:\n{e}")
            raise DataLoadError(f"Cannot parse team file {team_path}: {e}") from e

        logger.info(f"Loaded team '{team.name}' with {len(team.members)} members")
        return team

    def _lookup(self, card_id: str | None, slot: int, role: str) -> Card | None:
        if not card_id:
            return None
        card = self.get_card(card_id)
        if card is None:
            logger.warning(f"Unknown {role} card {card_id} in slot {slot}, leaving it empty")
        return card

    def build_member(self, config: TeamMemberConfig, slot: int) -> TeamMemberState:
        """
        Build a team member from its config entry.

        Bond slot 3 is locked to none when an assist is set. The skill effect
        is parsed at the member's effective level; the pipeline re-parses it
        once ability level bonuses are known.

        Args:
            config: Member entry from the team file.
            slot: Slot index, for log messages.

        Returns:
            TeamMemberState (empty if the card id is unknown).
        """
        card = self._lookup(config.card_id, slot, "main")
        if card is None:
            return TeamMemberState()

        assist = self._lookup(config.assist_card_id, slot, "assist")
        if assist is not None and not assist.is_assist:
            logger.warning(f"Card {assist.id} in slot {slot} is not an assist card")

        bonds = list(config.bonds) + [BondSlotType.NONE] * (3 - len(config.bonds))
        if assist is not None:
            bonds[2] = BondSlotType.NONE

        effective_level = get_effective_level(
            card.stats.max_level, config.limit_break, config.level_bonus
        )

        return TeamMemberState(
            card=card,
            assist_card=assist,
            limit_break=config.limit_break,
            level_bonus=config.level_bonus,
            bond_mode=config.bond_mode,
            bond1=bonds[0],
            bond2=bonds[1],
            bond3=bonds[2],
            bond_type=config.bond_type,
            skill_active=config.skill_active,
            skill_effect=parse_skill_effect(card, effective_level, assist),
        )

    def build_team_members(self, team: TeamConfig) -> list[TeamMemberState]:
        """
        Build all 7 team slots from a team config.

        Args:
            team: Parsed team file.

        Returns:
            List of 7 TeamMemberState, padded with empty slots.
        """
        members = [self.build_member(config, slot) for slot, config in enumerate(team.members)]
        members += [TeamMemberState() for _ in range(TOTAL_SLOTS - len(members))]
        return members

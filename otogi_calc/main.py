"""
CLI Entry Point for the Otogi team calculator.

Provides commands for:
- Calculating team damage from a team file
- Comparing stat increments for one member
- Simulating damage over a fight
- Inspecting card data
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .analysis import compare_stat_increments
from .data_loader import DataLoader, DataLoadError
from .fight import calculate_fight_damage, create_snapshot
from .models import RandomTargetMode, TeamCalculationResult, TeamConfig, TeamMemberState
from .pipeline import calculate_team_damage

# Setup rich console
console = Console()

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="otogi-calc",
    help="Team damage calculator for Otogi",
    add_completion=False,
)


def get_data_dir() -> Path:
    """Get the data directory path."""
    # Check environment variable first
    if env_path := os.environ.get("OTOGI_DATA_DIR"):
        return Path(env_path)

    # Default to ./data relative to project root
    return Path(__file__).parent.parent / "data"


def get_cards_file() -> Path:
    """Get the card export path."""
    if env_path := os.environ.get("OTOGI_CARDS_FILE"):
        return Path(env_path)

    return get_data_dir() / "cards.json"


def create_loader(cards_file: Optional[Path] = None) -> DataLoader:
    """Create a data loader, exiting with an error if the cards file is missing."""
    try:
        return DataLoader(cards_file or get_cards_file())
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


def load_team(loader: DataLoader, team_file: Path) -> tuple[TeamConfig, list[TeamMemberState]]:
    """Load a team file and build its members."""
    try:
        team = loader.load_team(team_file)
        members = loader.build_team_members(team)
    except (FileNotFoundError, DataLoadError) as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)
    return team, members


def print_result(team: TeamConfig, members: list[TeamMemberState], result: TeamCalculationResult) -> None:
    """Pretty print a team result."""
    table = Table(title=team.name)
    table.add_column("Slot", style="cyan", width=4)
    table.add_column("Card", style="green")
    table.add_column("Lv", justify="right")
    table.add_column("ATK", justify="right")
    table.add_column("Crit", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Hit (exp)", justify="right")
    table.add_column("DPS", justify="right", style="bold")
    table.add_column("Skill (exp)", justify="right")

    for member_result, member in zip(result.members, members):
        if member.card is None:
            continue
        stats = member_result.computed_stats
        damage = member_result.damage_result
        slot = str(member_result.member_index)
        if damage is None:
            slot += " (R)"

        hit = "-"
        dps = "-"
        skill = "-"
        if damage is not None:
            hit = f"{damage.normal_damage_expected:,}" + (" [red]cap[/]" if damage.normal_damage_capped else "")
            dps = f"{damage.normal_dps:,}"
            skill = f"{damage.skill_damage_expected:,}" + (" [red]cap[/]" if damage.skill_damage_capped else "")

        table.add_row(
            slot,
            member.card.name or member.card.id,
            f"{stats.effective_level:g}",
            f"{stats.display_atk:,.0f}",
            f"{stats.effective_crit_rate:.1%}",
            f"{stats.attack_interval:.2f}s",
            hit,
            dps,
            skill,
        )

    console.print(table)
    console.print(Panel(
        f"Total DPS (expected): [bold]{result.total_normal_dps_expected:,}[/]\n"
        f"Total skill damage (expected): [bold]{result.total_skill_damage_expected:,}[/]\n"
        f"Enemy shield: {result.effective_enemy_shield:.1%} "
        f"(ability debuffs {result.ability_debuff_total:.1%}, skill debuffs {result.skill_debuff_total:.1%})\n"
        f"Enemy defense: {result.effective_enemy_defense:.1%} "
        f"(debuffs {result.defense_debuff_total:.1%})\n"
        f"Race bonus: {result.race_bonus:+.0%}",
        title="Team Totals",
    ))


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def calc(
    team_file: Path = typer.Argument(..., help="Team YAML file"),
    cards: Optional[Path] = typer.Option(None, "--cards", "-c", help="Cards file (overrides OTOGI_CARDS_FILE)"),
    mode: Optional[RandomTargetMode] = typer.Option(None, "--mode", "-m", help="Random target mode (overrides the team file)"),
    output_json: bool = typer.Option(False, "--json", help="Output raw JSON"),
):
    """Calculate damage for a team file."""
    loader = create_loader(cards)
    team, members = load_team(loader, team_file)

    result = calculate_team_damage(
        members,
        team.enemy,
        team.ability_target_overrides,
        mode or team.random_target_mode,
    )

    if output_json:
        console.print(result.model_dump_json(indent=2))
        return

    print_result(team, members, result)


@app.command()
def compare(
    team_file: Path = typer.Argument(..., help="Team YAML file"),
    slot: int = typer.Option(0, "--slot", "-s", help="Member slot (0-4)"),
    cards: Optional[Path] = typer.Option(None, "--cards", "-c", help="Cards file"),
):
    """Compare the value of stat increments for one member."""
    loader = create_loader(cards)
    team, members = load_team(loader, team_file)

    try:
        comparisons = compare_stat_increments(
            members,
            team.enemy,
            slot,
            team.ability_target_overrides,
            team.random_target_mode,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    card = members[slot].card
    table = Table(title=f"Stat increments: {card.name or card.id}")
    table.add_column("Increment", style="cyan")
    table.add_column("New DPS", justify="right")
    table.add_column("DPS gain", justify="right", style="green")
    table.add_column("New skill", justify="right")
    table.add_column("Skill gain", justify="right", style="green")

    for c in comparisons:
        table.add_row(
            c.increment.label,
            f"{c.new_dps:,}",
            f"{c.dps_gain:+,} ({c.dps_gain_percent:+.1f}%)",
            f"{c.new_skill_damage:,}",
            f"{c.skill_gain:+,} ({c.skill_gain_percent:+.1f}%)",
        )

    console.print(table)


@app.command()
def fight(
    team_file: Path = typer.Argument(..., help="Team YAML file"),
    duration: float = typer.Option(180.0, "--duration", "-d", help="Fight length in seconds"),
    burst: float = typer.Option(60.0, "--burst", "-b", help="Seconds with the configured skills active"),
    cards: Optional[Path] = typer.Option(None, "--cards", "-c", help="Cards file"),
):
    """Simulate damage over a fight: base team plus a burst window."""
    loader = create_loader(cards)
    team, members = load_team(loader, team_file)
    overrides = team.ability_target_overrides
    mode = team.random_target_mode

    base_members = [m.model_copy(update={"skill_active": False}) for m in members]
    base = create_snapshot(
        calculate_team_damage(base_members, team.enemy, overrides, mode),
        base_members,
        "Base",
        is_base=True,
    )
    burst_snapshot = create_snapshot(
        calculate_team_damage(members, team.enemy, overrides, mode),
        members,
        "Burst",
    )
    burst_snapshot.duration_seconds = min(burst, duration)

    result = calculate_fight_damage([burst_snapshot, base], duration)

    table = Table(title=f"Fight: {team.name} ({duration:g}s)")
    table.add_column("Phase", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("DPS damage", justify="right")
    table.add_column("Skill damage", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for snapshot, snapshot_result in zip([burst_snapshot, base], result.snapshot_results):
        table.add_row(
            snapshot.name,
            f"{snapshot_result.duration:g}s",
            f"{snapshot_result.dps_damage:,.0f}",
            f"{snapshot_result.skill_damage:,.0f}",
            f"{snapshot_result.total_damage:,.0f}",
        )

    console.print(table)
    console.print(Panel(
        f"Total damage: [bold]{result.total_damage:,.0f}[/]\n"
        f"Range: {result.total_damage_min:,.0f} - {result.total_damage_max:,.0f}",
        title="Fight Totals",
    ))


@app.command()
def card(
    card_id: str = typer.Argument(..., help="Card ID"),
    cards: Optional[Path] = typer.Option(None, "--cards", "-c", help="Cards file"),
):
    """Show a card's data."""
    loader = create_loader(cards)

    try:
        data = loader.get_card(card_id)
    except DataLoadError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if data is None:
        console.print(f"[yellow]Not found: card '{card_id}'[/]")
        return

    console.print(json.dumps(data.model_dump(mode="json"), indent=2, default=str))


@app.command()
def list_cards(
    cards: Optional[Path] = typer.Option(None, "--cards", "-c", help="Cards file"),
):
    """List all loaded cards."""
    loader = create_loader(cards)

    try:
        all_cards = loader.load_cards()
    except DataLoadError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if not all_cards:
        console.print("[yellow]No cards loaded.[/]")
        return

    table = Table(title="Cards")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Attribute")
    table.add_column("Type")
    table.add_column("Max ATK", justify="right")

    for card_id in sorted(all_cards):
        meta = all_cards[card_id].get_metadata()
        table.add_row(
            meta["id"],
            meta["name"] or "",
            meta["attribute"],
            meta["type"],
            f"{meta['max_atk']:,.0f}",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()

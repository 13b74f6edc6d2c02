"""CLI entry point for weldy."""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

import weldy

app = typer.Typer(
    name="weldy",
    help="Guided MIG weld troubleshooting wizard.",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[str] = None, **overrides):
    from weldy.config import load_config

    try:
        return load_config(config_file, **overrides)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


def _load_knowledge_base(cfg):
    from weldy.data.knowledge import load_knowledge_base

    try:
        return load_knowledge_base(cfg.data_file, cfg.things_tried_file)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def start(
    tree: bool = typer.Option(
        False, "--tree", help="Use the decision-tree flow instead of defect combinations"
    ),
    thickness: Optional[str] = typer.Option(
        None, "--thickness", "-t", help='Metal thickness preset (e.g. 1/8)'
    ),
    voltage: Optional[float] = typer.Option(
        None, "--voltage", "-v", help="Starting voltage"
    ),
    wire_speed: Optional[float] = typer.Option(
        None, "--wire-speed", "-w", help="Starting wire speed (IPM)"
    ),
    wire_step: Optional[float] = typer.Option(
        None, "--wire-step", help="Wire speed adjustment step (IPM)"
    ),
    accept_target: Optional[str] = typer.Option(
        None, "--accept-target", help="Where to go after accepting: start or setup"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML config file"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Show debug logging"
    ),
) -> None:
    """Run the interactive troubleshooting wizard."""
    from weldy.console import ConsoleWizard
    from weldy.core.engine import WizardEngine
    from weldy.core.flows import DecisionTreeFlow, KnowledgeBaseFlow
    from weldy.core.parameters import (
        DEFAULT_THICKNESS,
        parameters_from_preset,
        set_parameter,
    )
    from weldy.data.tree import load_tree

    _setup_logging(verbose)
    cfg = _load_config(
        config_file, wire_speed_step=wire_step, accept_target=accept_target
    )
    kb = _load_knowledge_base(cfg)

    if tree:
        try:
            flow = DecisionTreeFlow(load_tree(cfg.tree_file))
        except ValueError as e:
            console.print(f"[red]Error: {e}[/]")
            raise typer.Exit(1)
    else:
        flow = KnowledgeBaseFlow(kb)

    engine = WizardEngine(flow, kb, config=cfg)

    # Any settings flag skips the setup screen
    if thickness or voltage is not None or wire_speed is not None:
        try:
            params = parameters_from_preset(
                kb.thickness_presets, thickness or DEFAULT_THICKNESS
            )
        except ValueError as e:
            console.print(f"[red]{e}[/]")
            raise typer.Exit(1)
        if voltage is not None:
            params = set_parameter(params, "voltage", voltage)
        if wire_speed is not None:
            params = set_parameter(params, "wire_speed", wire_speed)
        engine.complete_setup(params)

    ConsoleWizard(engine, console=console).run()
    console.print("[dim]Goodbye.[/]")


@app.command()
def presets(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML config file"
    ),
) -> None:
    """List metal thickness presets."""
    from weldy.core.recommendations import format_number

    kb = _load_knowledge_base(_load_config(config_file))

    table = Table(title="Thickness Presets")
    table.add_column("Thickness", style="cyan")
    table.add_column("Voltage", style="green")
    table.add_column("Wire Speed", style="green")
    for preset in kb.thickness_presets:
        table.add_row(
            f'{preset.thickness}"',
            f"{format_number(preset.voltage)}V",
            f"{format_number(preset.wire_speed)} IPM",
        )
    console.print(table)


@app.command()
def combinations(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML config file"
    ),
) -> None:
    """List the defect combinations offered on the first screen."""
    from weldy.core.navigation import causes_for_combination, combinations_from_causes

    kb = _load_knowledge_base(_load_config(config_file))

    table = Table(title="Defect Combinations")
    table.add_column("Key", style="cyan")
    table.add_column("Label", style="green")
    table.add_column("Causes")
    for combo in combinations_from_causes(kb.causes, kb.defects):
        causes = causes_for_combination(kb.causes, combo.defect_ids) if combo.defect_ids else []
        table.add_row(
            combo.key,
            combo.label,
            ", ".join(c.name for c in causes) or "-",
        )
    console.print(table)


@app.command()
def recommend(
    parameter: str = typer.Argument(
        ..., help="Parameter (voltage, wire_feed_speed, stick_out, ...)"
    ),
    adjustment: str = typer.Argument(
        ..., help="Adjustment text, e.g. 'Increase voltage'"
    ),
    voltage: float = typer.Option(18.0, "--voltage", "-v", help="Current voltage"),
    wire_speed: float = typer.Option(
        200.0, "--wire-speed", "-w", help="Current wire speed (IPM)"
    ),
    thickness: str = typer.Option("1/8", "--thickness", "-t", help="Metal thickness"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML config file"
    ),
) -> None:
    """Print the concrete setting change for a recommendation."""
    from weldy.core.models import Parameters
    from weldy.core.recommendations import AdjustmentRules, specific_recommendation

    rules = AdjustmentRules.from_config(_load_config(config_file))
    params = Parameters(
        metal_thickness=thickness, voltage=voltage, wire_speed=wire_speed
    )
    console.print(specific_recommendation(parameter, adjustment, params, rules))


@app.command()
def validate(
    tree_file: Optional[str] = typer.Option(
        None, "--tree-file", help="Decision tree JSON to check"
    ),
    data_file: Optional[str] = typer.Option(
        None, "--data-file", help="Knowledge base JSON to check"
    ),
) -> None:
    """Check the knowledge base and decision tree for broken references."""
    from weldy.data.knowledge import integrity_problems, load_knowledge_base
    from weldy.data.tree import load_tree, validate_tree

    problems: list[str] = []
    try:
        kb = load_knowledge_base(data_file)
        problems.extend(integrity_problems(kb))
        tree = load_tree(tree_file, strict=False)
        problems.extend(validate_tree(tree))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if problems:
        console.print(f"[red]Found {len(problems)} problem(s):[/]")
        for problem in problems:
            console.print(f"  [red]-[/] {problem}")
        raise typer.Exit(1)

    console.print(
        f"[green]OK:[/] {len(kb.defects)} defects, {len(kb.causes)} causes, "
        f"{len(kb.mistakes)} fixes, {len(tree.nodes)} tree nodes"
    )


@app.command()
def config(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML config file"
    ),
) -> None:
    """Show the resolved configuration."""
    cfg = _load_config(config_file)
    for f in fields(cfg):
        value = getattr(cfg, f.name)
        console.print(f"{f.name} = {'(default)' if value is None else value}")


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"weldy {weldy.__version__}")


if __name__ == "__main__":
    app()

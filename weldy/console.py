"""Console wizard — renders engine screens with rich and reads commands."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from weldy.core.engine import WizardEngine
from weldy.core.models import NextAction, Parameters, Screen, ScreenKind
from weldy.core.parameters import (
    DEFAULT_THICKNESS,
    parameters_from_preset,
    set_parameter,
)
from weldy.core.recommendations import format_number

logger = logging.getLogger(__name__)

QUIT = "q"
COMMAND_HELP = {
    "b": "back",
    "r": "start over",
    "a": "accept suggestion",
    "n": "next suggestion",
    "p": "edit a setting",
    "t": "toggle a thing tried",
    QUIT: "quit",
}
NEXT_ACTION_LABELS = {
    NextAction.TRY_ANOTHER: "Try Another Suggestion",
    NextAction.START_OVER: "Start Over",
}


def settings_line(parameters: Optional[Parameters]) -> str:
    if parameters is None:
        return "[dim]No settings yet[/]"
    return (
        f'{parameters.metal_thickness}" | '
        f"{format_number(parameters.voltage)}V | "
        f"{format_number(parameters.wire_speed)} IPM"
    )


class ConsoleWizard:
    """Interactive loop around a WizardEngine."""

    def __init__(
        self,
        engine: WizardEngine,
        console: Optional[Console] = None,
        ask: Optional[Callable[[str], str]] = None,
    ):
        self.engine = engine
        self.console = console or Console()
        self.ask = ask or self._interactive_ask

    def run(self) -> Optional[Parameters]:
        """Loop until the user quits; returns the last settings."""
        while True:
            screen = self.engine.screen()
            if screen.kind is ScreenKind.SETUP:
                if not self._run_setup(screen):
                    break
                continue
            self.render(screen)
            if not self.handle(screen, self.ask("Choice")):
                break
        return self.engine.parameters

    # -- rendering -----------------------------------------------------------

    def render(self, screen: Screen) -> None:
        self.console.print()
        if screen.kind is ScreenKind.SETUP:
            self._display_setup(screen)
        elif screen.kind is ScreenKind.ERROR:
            self.console.print(
                Panel(
                    f"[bold red]{screen.error}[/]\n"
                    "Press [bold]r[/] to start over.",
                    title=screen.title,
                    border_style="red",
                )
            )
        elif screen.kind is ScreenKind.SUCCESS:
            self.console.print(
                Panel(
                    f"[bold green]{screen.prompt}[/]",
                    title=screen.title,
                    border_style="green",
                )
            )
        elif screen.kind in (ScreenKind.RECOMMENDATION, ScreenKind.DIAGNOSIS):
            self._display_recommendation(screen)
        else:
            self._display_choices(screen)

        self.console.print(f"[dim]Settings: {settings_line(screen.parameters)}[/]")
        self.console.print(
            "[dim]" + "  ".join(f"{k}={v}" for k, v in COMMAND_HELP.items()) + "[/]"
        )

    def _display_setup(self, screen: Screen) -> None:
        table = Table(title=screen.title)
        table.add_column("#", style="cyan")
        table.add_column("Thickness", style="green")
        table.add_column("Voltage")
        table.add_column("Wire Speed")
        for i, preset in enumerate(screen.presets, 1):
            table.add_row(
                str(i),
                f'{preset.thickness}"',
                f"{format_number(preset.voltage)}V",
                f"{format_number(preset.wire_speed)} IPM",
            )
        self.console.print(table)

    def _display_choices(self, screen: Screen) -> None:
        if screen.title:
            self.console.print(f"[bold]{screen.title}[/]")
        self.console.print(f"[bold yellow]{screen.prompt}[/]")
        for i, choice in enumerate(screen.choices, 1):
            self.console.print(f"  [cyan]{i}.[/] {choice.text}")
            for line in choice.descriptions:
                self.console.print(f"     [dim]{line}[/]")

    def _display_recommendation(self, screen: Screen) -> None:
        rec = screen.recommendation
        lines = []
        if screen.prompt:
            lines.append(screen.prompt)
        if screen.mistake is not None:
            lines.append(f"[dim]{screen.mistake.question_to_ask}[/]")
        if rec is not None:
            lines.append("")
            lines.append(f"[bold]{screen.counter_label}[/]")
            lines.append(f"[bold green]{rec.text}[/]")
            if rec.details and rec.details != rec.text:
                lines.append(rec.details)
            lines.append(f"[dim]Parameter: {rec.parameter_label}[/]")
            lines.append("")
            lines.append(f"[cyan]a[/] {rec.button_label}")
        if screen.next_action is not None:
            lines.append(f"[cyan]n[/] {NEXT_ACTION_LABELS[screen.next_action]}")
        self.console.print(
            Panel("\n".join(lines), title=screen.title, border_style="blue")
        )

    # -- input ---------------------------------------------------------------

    def handle(self, screen: Screen, command: str) -> bool:
        """Apply one command; returns False when the user quits."""
        command = command.strip().lower()
        if command == QUIT:
            return False
        try:
            if command.isdigit():
                index = int(command)
                if not 1 <= index <= len(screen.choices):
                    raise ValueError(f"Choose a number from 1 to {len(screen.choices)}")
                self.engine.select(screen.choices[index - 1].id)
            elif command == "b":
                self.engine.go_back()
            elif command == "r":
                self.engine.restart()
            elif command == "a":
                self.engine.accept()
            elif command == "n":
                if screen.next_action is None:
                    raise ValueError("No suggestion is shown")
                self.engine.try_another()
            elif command == "p":
                key = self.ask("Setting (thickness, voltage, wire_speed)")
                self.engine.update_parameter(key.strip(), self.ask("New value"))
            elif command == "t":
                self._toggle_tried()
            else:
                self.console.print(f"[red]Unknown command: {command!r}[/]")
        except ValueError as e:
            self.console.print(f"[red]{e}[/]")
        return True

    def _toggle_tried(self) -> None:
        catalog = self.engine.kb.things_tried
        parameters = self.engine.parameters
        checked = parameters.things_tried if parameters else {}
        for i, thing in enumerate(catalog, 1):
            mark = "✓" if checked.get(thing.id) else "·"
            self.console.print(f"  [cyan]{i}.[/] {mark} {thing.name}")
        answer = self.ask("Thing tried (number or id)").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(catalog):
            answer = catalog[int(answer) - 1].id
        self.engine.toggle_tried(answer)

    def _run_setup(self, screen: Screen) -> bool:
        """Collect thickness, voltage and wire speed; False when the user quits."""
        self.render(screen)
        presets = screen.presets
        current = screen.parameters
        default = current.metal_thickness if current else DEFAULT_THICKNESS

        answer = self.ask(f"Metal thickness (number, default {default})").strip()
        if answer.lower() == QUIT:
            return False
        if answer.isdigit() and 1 <= int(answer) <= len(presets):
            thickness = presets[int(answer) - 1].thickness
        else:
            thickness = answer or default

        try:
            parameters = parameters_from_preset(presets, thickness)
        except ValueError as e:
            self.console.print(f"[red]{e}[/]")
            return True
        if current is not None and thickness == current.metal_thickness:
            parameters = current

        voltage = self.ask(
            f"Voltage (default {format_number(parameters.voltage)})"
        )
        parameters = set_parameter(parameters, "voltage", voltage)
        wire_speed = self.ask(
            f"Wire speed IPM (default {format_number(parameters.wire_speed)})"
        )
        parameters = set_parameter(parameters, "wire_speed", wire_speed)

        self.engine.complete_setup(parameters)
        return True

    def _interactive_ask(self, prompt: str) -> str:
        from rich.prompt import Prompt

        return Prompt.ask(prompt, default="", show_default=False, console=self.console)

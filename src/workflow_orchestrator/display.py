# display.py
# All terminal output for the workflow orchestrator.
#
# This module owns presentation entirely. The engine and the bridge never
# format strings; they call named functions here. Swap this file to change
# the entire UI.
#
# Colour language:
#   cyan: pipeline / scaffolding events
#   blue: agent calls and replies
#   yellow: skipped steps and warnings
#   green: success / confirmed
#   red: failures and aborted turns
#   magenta: function calls requested by the agent

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from workflow_orchestrator.models import CallResult, FunctionCall, LogEntry, RunState, Step

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _json(value) -> str:
    return json.dumps(value, default=str)


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------


def banner(agent_model: str, tool_count: int) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Workflow Orchestrator[/bold cyan]\n"
            "[dim]Sequential tool pipelines with a function-calling assistant[/dim]\n\n"
            f"[dim]Agent model :[/dim] [white]{escape(agent_model)}[/white]\n"
            f"[dim]Tools       :[/dim] [white]{tool_count} registered[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def pipeline_table(steps: list[Step], names: dict[str, str]) -> None:
    """Render the current pipeline. `names` maps tool id → display name."""
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Tool", style="bold white", width=16)
    table.add_column("Name", style="white")
    table.add_column("Instance", style="dim white")

    for index, step in enumerate(steps, start=1):
        name = escape(names[step.tool_id]) if step.tool_id in names else "[yellow]unknown tool[/yellow]"
        table.add_row(str(index), escape(step.tool_id), name, escape(step.instance_id[:8]))

    console.print(
        Panel(
            table,
            title=_label("PIPELINE", "cyan"),
            subtitle=f"[dim]{len(steps)} step(s)[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def run_start(total: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]RUN: {total} step(s)[/cyan]", style="cyan"))


def step_logged(entry: LogEntry) -> None:
    if entry.status == "success":
        mark = "[bold green]✓[/bold green]"
    else:
        mark = "[bold red]✗[/bold red]"
    console.print(
        f"  {mark} [bold cyan]STEP {entry.step_index}[/bold cyan]  "
        f"[white]{escape(entry.step_name)}[/white] [dim]({escape(entry.tool_id)})[/dim]  "
        f"[dim]{escape(_mono(_json(entry.response), 80))}[/dim]"
    )


def step_skipped(index: int, step: Step) -> None:
    console.print(
        f"  [yellow]↷ STEP {index}[/yellow]  [dim]tool {escape(repr(step.tool_id))} is not registered, skipped[/dim]"
    )


def run_finished(state: RunState, log: list[LogEntry]) -> None:
    failed = sum(1 for entry in log if entry.status == "error")
    color = "green" if state == RunState.COMPLETED and not failed else "yellow"
    if state == RunState.CANCELLED:
        color = "red"
    console.print(
        f"  [{color}]Run {state.value}: {len(log)} entr{'y' if len(log) == 1 else 'ies'}, "
        f"{failed} error(s).[/{color}]"
    )


def execution_summary(log: list[LogEntry]) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Step", justify="center", width=6)
    table.add_column("Tool", width=16)
    table.add_column("Status", justify="center", width=8)
    table.add_column("Response", style="dim white")

    for entry in log:
        status = "[bold green]✓[/bold green]" if entry.status == "success" else "[bold red]✗[/bold red]"
        table.add_row(str(entry.step_index), escape(entry.tool_id), status, escape(_mono(_json(entry.response), 60)))

    console.print(
        Panel(
            table,
            title="[dim]EXECUTION SUMMARY[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


def utterance_received(utterance: str) -> None:
    console.print()
    console.print(Rule("[blue]NEW MESSAGE[/blue]", style="blue"))
    console.print(
        Panel(
            f"[white]{escape(utterance)}[/white]",
            title=_label("USER", "blue"),
            border_style="blue",
            padding=(0, 2),
        )
    )


def calling_agent(round_: int) -> None:
    what = "conversation" if round_ == 0 else f"call results (round {round_})"
    console.print(_label("BRIDGE", "blue"), f"[blue] → Sending {what} to agent…[/blue]")


def tool_call_applied(call: FunctionCall, result: CallResult) -> None:
    mark = "[bold green]ok[/bold green]" if result.ok else "[bold red]rejected[/bold red]"
    console.print(
        f"  [magenta]Call[/magenta]  [bold white]{escape(call.name)}[/bold white]"
        f"  [dim]{escape(_mono(_json(call.args), 80))}[/dim]  {mark}  [white]{escape(result.message)}[/white]"
    )


def assistant_reply(text: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(text)}[/white]",
            title=_label("ASSISTANT", "green"),
            border_style="green",
            padding=(0, 2),
        )
    )


def turn_failed(kind: str, detail: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold red]Turn aborted ({kind}).[/bold red]\n[dim]{escape(detail)}[/dim]",
            title=_label("BRIDGE ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )

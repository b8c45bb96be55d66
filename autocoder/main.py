"""Main entry point for Autocoder."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from autocoder.config import CREDENTIAL_ENV_VAR, Config, set_config
from autocoder.controller import FeedbackController, RunReport, RunStatus
from autocoder.conversation import ConversationState
from autocoder.dispatcher import ToolDispatcher
from autocoder.exceptions import ConfigurationError
from autocoder.llm import create_provider
from autocoder.logging import configure_logging, get_logger
from autocoder.tools.catalog import build_registry

log = get_logger(__name__)

console = Console(stderr=True)

cli = typer.Typer(
    help="Autocoder - turn a task description into file edits and shell runs until the tests pass.",
    add_completion=False,
)

_STATUS_STYLES = {
    RunStatus.DONE: "green",
    RunStatus.EXHAUSTED: "yellow",
    RunStatus.ABORTED: "red",
}


def build_controller(cfg: Config, workspace: Path) -> FeedbackController:
    """Wire provider, tools, conversation and loops from configuration."""
    provider = create_provider(
        provider=cfg.model.provider,
        model=cfg.model.model,
        api_key=cfg.resolved_api_key(),
        base_url=cfg.model.base_url or None,
        temperature=cfg.model.temperature,
        max_tokens=cfg.model.max_tokens,
        timeout=cfg.model.timeout,
    )
    registry = build_registry(workspace, cfg.tools.shell)
    conversation = ConversationState(
        system_prompt=cfg.agent.system_prompt,
        max_messages=cfg.agent.max_history_messages,
    )
    dispatcher = ToolDispatcher(
        provider=provider,
        registry=registry,
        conversation=conversation,
        max_hops=cfg.agent.max_tool_hops,
        temperature=cfg.model.temperature,
    )
    return FeedbackController(
        dispatcher=dispatcher,
        root=workspace,
        tests_dir=cfg.workspace.tests_dir,
        test_command=cfg.workspace.test_command,
        max_turns=cfg.agent.max_turns,
        retry_pause=cfg.agent.retry_pause_seconds,
        test_timeout=cfg.workspace.test_timeout,
        max_output_chars=cfg.tools.shell.max_output_chars,
    )


async def run_task(controller: FeedbackController, task: str) -> RunReport:
    """Run the feedback loop and release the provider afterwards."""
    try:
        return await controller.run(task)
    finally:
        await controller.dispatcher.provider.close()


def render_report(report: RunReport, workspace: Path) -> None:
    """Print a summary of the run."""
    style = _STATUS_STYLES.get(report.status, "white")
    table = Table(show_header=False, box=None)
    table.add_row("Status", f"[{style}]{report.status.value}[/{style}]")
    table.add_row("Turns", str(report.turns))
    table.add_row("Workspace", Text(str(workspace)))
    if report.last_outcome is not None:
        table.add_row("Tests", report.last_outcome.classification.value)
    if report.usage:
        table.add_row("Tokens", str(report.usage.get("total_tokens", 0)))
    if report.error:
        table.add_row("Error", Text(report.error))
    console.print(Panel(table, title="Autocoder", border_style=style))
    if report.final_answer:
        console.print(report.final_answer, markup=False, highlight=False)


@cli.command()
def run(
    task: str = typer.Argument("", help="Natural-language description of the coding task"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    workspace: str = typer.Option("", "-w", "--workspace", help="Override sandbox directory"),
    max_turns: int = typer.Option(0, "--max-turns", help="Override feedback turn budget"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    show_version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """Run a coding task until its tests pass or the turn budget is spent."""
    if show_version:
        from autocoder import __version__

        console.print(f"Autocoder v{__version__}")
        raise typer.Exit()

    if not task.strip():
        console.print('Usage: autocoder "Describe your coding task"')
        raise typer.Exit(code=2)

    try:
        cfg = Config.from_yaml(Path(config)) if config else Config.load()
    except ConfigurationError as e:
        console.print(Text.assemble(("Configuration error: ", "red"), str(e)))
        raise typer.Exit(code=1)
    if model:
        cfg.model.model = model
    if workspace:
        cfg.workspace.path = workspace
    if max_turns > 0:
        cfg.agent.max_turns = max_turns
    set_config(cfg)

    configure_logging("DEBUG" if verbose else None)

    if not cfg.resolved_api_key():
        console.print(f"[red]Error:[/red] please set the {CREDENTIAL_ENV_VAR} environment variable.")
        raise typer.Exit(code=1)

    workspace_path = cfg.resolved_workspace_path(Path.cwd())
    try:
        workspace_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        console.print(f"[red]Error creating project directory {workspace_path}:[/red] {e}")
        raise typer.Exit(code=1)

    controller = build_controller(cfg, workspace_path)
    try:
        report = asyncio.run(run_task(controller, task))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
        raise typer.Exit(code=130)

    render_report(report, workspace_path)


def main() -> None:
    """Console-script entry point."""
    cli()


if __name__ == "__main__":
    main()

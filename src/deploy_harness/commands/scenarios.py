import asyncio
import json as json_lib
from pathlib import Path

from rich.console import Console
from rich.table import Table
import typer

from deploy_harness.config import HarnessSettings, get_settings
from deploy_harness.logging import setup_logging
from deploy_harness.models import Scenario, ScenarioOutcome
from deploy_harness.scenario import ScenarioRunner, load_scenarios

console = Console()

RESULT_STYLES = {"pass": "green", "fail": "red", "error": "yellow"}


async def run_scenarios_command(
    settings: HarnessSettings, scenarios: list[Scenario]
) -> list[ScenarioOutcome]:
    """Async implementation shared by `run` and `suite`."""
    async with ScenarioRunner(settings) as runner:
        if len(scenarios) == 1:
            return [await runner.run(scenarios[0])]
        return await runner.run_suite(scenarios)


def _report(outcomes: list[ScenarioOutcome], json_output: bool) -> None:
    if json_output:
        typer.echo(json_lib.dumps([o.model_dump(mode="json") for o in outcomes], indent=2))
    else:
        table = Table(title="Scenarios")
        table.add_column("Scenario", style="cyan")
        table.add_column("Result")
        table.add_column("Stage")
        table.add_column("Detail")

        for outcome in outcomes:
            style = RESULT_STYLES[outcome.result]
            detail = outcome.message
            if outcome.teardown_error:
                detail += f"\n[yellow]teardown:[/yellow] {outcome.teardown_error}"
            table.add_row(
                outcome.scenario,
                f"[{style}]{outcome.result.upper()}[/{style}]",
                outcome.stage.value if outcome.stage else "-",
                detail,
            )
        console.print(table)

    if not all(o.passed for o in outcomes):
        raise typer.Exit(code=1)


def _execute(scenarios: list[Scenario], json_output: bool) -> None:
    settings = get_settings()
    setup_logging(log_format=settings.log_format, log_level=settings.log_level)
    outcomes = asyncio.run(run_scenarios_command(settings, scenarios))
    _report(outcomes, json_output)


def run(
    fixture: str = typer.Argument(..., help="Fixture directory or name under fixtures_dir"),
    expected_body: str = typer.Option(..., "--expected-body", "-b", help="Expected body"),
    path: str = typer.Option("/", "--path", "-p", help="Request path"),
    expected_status: int = typer.Option(200, "--expected-status", "-s"),
    any_status: bool = typer.Option(
        False, "--any-status", help="Skip the status check, compare the body only"
    ),
    timeout: float | None = typer.Option(None, "--timeout", help="Readiness timeout (s)"),
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds"),
    name: str | None = typer.Option(None, "--name", "-n", help="Scenario name"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Deploy one fixture and check its response."""
    try:
        scenario = Scenario(
            name=name or fixture,
            fixture=fixture,
            path=path,
            expected_body=expected_body,
            expected_status=None if any_status else expected_status,
            timeout=timeout,
            poll_interval=poll_interval,
        )
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=2) from e
    _execute([scenario], json_output)


def suite(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON scenario list"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Run every scenario declared in a JSON file."""
    try:
        scenarios = load_scenarios(file)
    except ValueError as e:  # malformed JSON or ValidationError
        console.print(f"[red]Error:[/red] invalid scenario file {file}: {e}")
        raise typer.Exit(code=2) from e

    if not scenarios:
        console.print(f"[yellow]No scenarios in {file}[/yellow]")
        return
    _execute(scenarios, json_output)

"""Command-line interface for tapharness."""

import importlib
import json
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tapharness import __version__
from tapharness.config import HarnessConfig, create_example_config
from tapharness.core.harness import Harness
from tapharness.core.models import Verdict
from tapharness.core.registry import HarnessError

# stdout carries TAP only
console = Console(stderr=True)

REGISTER_HOOK = "register_tests"


def load_target(target: str) -> ModuleType:
    """Import a test program from a file path or a dotted module name."""
    path = Path(target)
    if path.suffix == ".py":
        if not path.exists():
            raise FileNotFoundError(f"Test program not found: {path}")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load test program: {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(target)


@click.group()
@click.version_option(version=__version__, prog_name="tapharness")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """tapharness - run registered tests and report them as TAP."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@main.command()
@click.argument("target")
@click.option("--seed", type=int, default=None, help="Random order seed (<= 0 picks one from the clock)")
@click.option("--level", type=int, default=None, help="TAP nesting depth of this program")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    help="Path to a JSON configuration file",
)
@click.option("--name", default=None, help="Program name used in the TAP plan")
@click.option("--summary", is_flag=True, help="Print a verdict table on stderr")
@click.option(
    "--json",
    "json_path",
    type=click.Path(),
    default=None,
    help="Write the verdicts to a JSON file",
)
@click.pass_context
def run(
    ctx: click.Context,
    target: str,
    seed: Optional[int],
    level: Optional[int],
    config_path: Optional[str],
    name: Optional[str],
    summary: bool,
    json_path: Optional[str],
) -> None:
    """Run the tests registered by TARGET's register_tests(harness)."""
    try:
        config = HarnessConfig.from_environment()
        if config_path:
            config = config.with_file(config_path)
        config = config.merged(seed=seed, level=level)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(2)

    try:
        module = load_target(target)
    except (ImportError, FileNotFoundError) as e:
        console.print(f"[red]Error loading {target}:[/red] {e}")
        sys.exit(2)

    register = getattr(module, REGISTER_HOOK, None)
    if not callable(register):
        console.print(f"[red]Error:[/red] {target} does not define {REGISTER_HOOK}(harness)")
        sys.exit(2)

    harness = Harness(config=config)
    try:
        register(harness)
    except HarnessError as e:
        console.print(f"[red]Registration failed:[/red] {e}")
        sys.exit(2)

    program_name = name or module.__name__.rpartition(".")[2]
    harness.setup()
    status = harness.run_tests(program_name)

    if summary:
        _display_summary(harness.runner.results)

    if json_path:
        _write_results(Path(json_path), program_name, status, harness.runner.results)

    sys.exit(harness.finish(status))


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="tapharness.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Write an example configuration file."""
    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {output_path}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    create_example_config(output_path)
    console.print(f"[green]Created configuration file:[/green] {output_path}")


def _write_results(path: Path, program_name: str, status: int, results: list[Verdict]) -> None:
    """Save the verdicts of a run as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "program": program_name,
        "exit_status": int(status),
        "failed": sum(1 for v in results if not v.passed),
        "results": [v.to_dict() for v in results],
    }
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _display_summary(results: list[Verdict]) -> None:
    """Display a table of top-level verdicts."""
    table = Table(title="Test Summary")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Test")
    table.add_column("Cases", justify="right")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Result")

    for verdict in results:
        result = "[green]ok[/green]" if verdict.passed else "[red]not ok[/red]"
        table.add_row(
            str(verdict.seq),
            verdict.name,
            str(verdict.subcases),
            str(verdict.failed_subcases),
            result,
        )

    console.print(table)

    failed = sum(1 for v in results if not v.passed)
    if failed:
        console.print(f"[red]{failed} of {len(results)} tests failed[/red]")
    else:
        console.print("[green]All tests passed![/green]")


if __name__ == "__main__":
    main()

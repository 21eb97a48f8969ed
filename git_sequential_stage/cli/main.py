"""
CLI entry point for git-sequential-stage: stage selected hunks of a patch.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

try:
    from importlib.metadata import version as pkg_version

    _version = pkg_version("git-sequential-stage")
except Exception:
    _version = "0.1.0"

from git_sequential_stage.core.config import StagerSettings
from git_sequential_stage.core.count_hunks import count_hunks, format_hunk_counts
from git_sequential_stage.core.errors import ErrorKind, SafetyError, StagerError
from git_sequential_stage.core.runner import GitRunner
from git_sequential_stage.core.stager import SequentialStager
from git_sequential_stage.core.validator import Validator

console = Console()
console_err = Console(stderr=True)

# Shown after failures that are not about the state of the index.
TROUBLESHOOTING_TIPS = (
    "Check that the patch file exists and is readable",
    "Verify that the hunks have not already been staged",
    "Make sure the patch was generated from the current working tree",
    "Run 'git status' to check the current state",
    "Use 'git-sequential-stage show-hunks' to list hunks and their patch IDs",
)


def _report_error(title: str, error: StagerError) -> None:
    """Print a StagerError with its advice and remediation sections."""
    console_err.print(f"[red]{escape(title)}:[/red] {escape(error.message)}")
    for heading, body in error.sections():
        console_err.print(f"[bold]{escape(heading)}:[/bold] {escape(body)}")
    if not isinstance(error, SafetyError) and error.kind is not ErrorKind.INVALID_ARGUMENT:
        console_err.print("\n[yellow]Troubleshooting tips:[/yellow]")
        for number, tip in enumerate(TROUBLESHOOTING_TIPS, start=1):
            console_err.print(f"  {number}. {escape(tip)}")


# =============================================================================
# Root CLI Group
# =============================================================================


@click.group()
@click.version_option(version=_version, prog_name="git-sequential-stage")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--repo",
    "-C",
    "repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Run as if started in this directory",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, repo: Path | None):
    """
    Stage selected hunks of a patch, one hunk at a time.

    \b
        git diff HEAD > changes.patch
        git-sequential-stage stage --patch changes.patch --hunk src/app.py:1,3
        git-sequential-stage count-hunks
    """
    import logging

    try:
        settings = StagerSettings.from_env()
    except StagerError as e:
        _report_error("Invalid configuration", e)
        sys.exit(1)
    if debug:
        settings.verbose = True

    logging.basicConfig(
        level=logging.DEBUG if settings.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["runner"] = GitRunner.from_settings(settings, repo_dir=repo)


# =============================================================================
# Staging
# =============================================================================


@cli.command()
@click.option(
    "--patch",
    "-patch",
    "patch_file",
    required=True,
    type=click.Path(path_type=Path),
    help="Patch file produced by 'git diff HEAD'",
)
@click.option(
    "--hunk",
    "-hunk",
    "hunk_specs",
    multiple=True,
    required=True,
    help=(
        "Hunks to stage as PATH:N[,N...]; repeat for more files. "
        "A hunk named more than once is staged once"
    ),
)
@click.pass_context
def stage(ctx: click.Context, patch_file: Path, hunk_specs: tuple[str, ...]):
    """
    Stage the selected hunks of PATCH into the index.

    Hunks are numbered per file as they appear in PATCH, starting at 1.
    Naming the same hunk twice, in one selector or across several, stages it
    once.

    \b
    Examples:
        git-sequential-stage stage --patch changes.patch --hunk main.py:1
        git-sequential-stage stage -patch changes.patch -hunk a.py:1,3 -hunk b.py:2
    """
    settings: StagerSettings = ctx.obj["settings"]
    runner: GitRunner = ctx.obj["runner"]
    validator = Validator(runner)

    try:
        validator.validate_args(hunk_specs, str(patch_file))
        validator.check_dependencies()
        validator.validate_git_state()
        SequentialStager(runner, settings).stage_hunks(hunk_specs, patch_file)
    except StagerError as e:
        _report_error("Failed to stage hunks", e)
        sys.exit(1)

    console.print(
        f"[green]Successfully staged hunks:[/green] {escape(', '.join(hunk_specs))}",
        soft_wrap=True,
    )


@cli.command("count-hunks")
@click.pass_context
def count_hunks_command(ctx: click.Context):
    """
    Print the number of hunks per changed file.

    Binary files are shown as '*'. Prints nothing when there are no changes.
    """
    runner: GitRunner = ctx.obj["runner"]
    try:
        counts = count_hunks(runner)
    except StagerError as e:
        _report_error("Failed to count hunks", e)
        sys.exit(1)

    for line in format_hunk_counts(counts):
        console.print(line, markup=False, highlight=False, soft_wrap=True)


@cli.command("show-hunks")
@click.option(
    "--patch",
    "-patch",
    "patch_file",
    required=True,
    type=click.Path(path_type=Path),
    help="Patch file to inspect",
)
@click.pass_context
def show_hunks(ctx: click.Context, patch_file: Path):
    """List every hunk of PATCH with its patch ID."""
    settings: StagerSettings = ctx.obj["settings"]
    runner: GitRunner = ctx.obj["runner"]
    try:
        hunks = SequentialStager(runner, settings).inspect_patch(patch_file)
    except StagerError as e:
        _report_error("Failed to read hunks", e)
        sys.exit(1)

    if not hunks:
        console.print("[dim]No hunks found.[/dim]")
        return

    table = Table(title=f"Found {len(hunks)} hunks in {escape(str(patch_file))}")
    table.add_column("#", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Hunk", justify="right")
    table.add_column("Operation")
    table.add_column("Patch ID", style="green")
    table.add_column("Header", style="dim")

    for hunk in hunks:
        file_label = hunk.path if not hunk.old_path else f"{hunk.old_path} -> {hunk.path}"
        table.add_row(
            str(hunk.global_index),
            escape(file_label),
            str(hunk.index_in_file),
            hunk.operation.value,
            hunk.patch_id or "",
            escape(hunk.fragment_header),
        )

    console.print(table)


if __name__ == "__main__":
    cli()

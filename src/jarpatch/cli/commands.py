"""jarpatch subcommands."""

import json

import click
from rich.table import Table

from jarpatch.cli.utils import console, prompt_resolution, run_stages
from jarpatch.config import JarPatchConfig
from jarpatch.core.errors import JarPatchError
from jarpatch.core.progress import pluralize, status
from jarpatch.git import WorkTreeState
from jarpatch.pipeline import (
    ApplyMappings,
    ApplyPatches,
    DecompileModule,
    ExtractResources,
    FetchMappings,
    FetchModule,
    GeneratePatches,
    InitializeRepository,
    PipelineContext,
    Safeguard,
    build_stages,
)

pass_config = click.make_pass_decorator(dict)


def _config(obj: dict) -> JarPatchConfig:
    return obj["config"]


@click.command()
@pass_config
def fetch_command(obj: dict) -> None:
    """Download the game module and its mapping archives."""
    run_stages(_config(obj), [FetchModule(), FetchMappings()])


@click.command()
@pass_config
def remap_command(obj: dict) -> None:
    """Apply the SRG and MCP mappings to the game module."""
    run_stages(_config(obj), [ApplyMappings()])


@click.command()
@pass_config
def decompile_command(obj: dict) -> None:
    """Decompile and format the mapped module."""
    run_stages(_config(obj), [DecompileModule()])


@click.command()
@pass_config
def extract_resources_command(obj: dict) -> None:
    """Copy non-source entries of the decompiled module into the resource directory."""
    run_stages(_config(obj), [ExtractResources()])


@click.command()
@pass_config
def init_repo_command(obj: dict) -> None:
    """Create the source repository and its baseline branch."""
    run_stages(_config(obj), [InitializeRepository()])


@click.command()
@pass_config
def safeguard_command(obj: dict) -> None:
    """Fail when the source repository holds uncommitted changes."""
    run_stages(_config(obj), [Safeguard()])


@click.command()
@click.option("--interactive", "-i", is_flag=True, help="Ask how to resolve failing patches")
@click.option("--continue", "resume", is_flag=True, help="Continue after resolving a conflict")
@click.option("--skip", is_flag=True, help="Skip the patch that failed to apply")
@click.option("--abort", is_flag=True, help="Abort the patch application in progress")
@pass_config
def apply_patches_command(
    obj: dict, interactive: bool, resume: bool, skip: bool, abort: bool
) -> None:
    """Reset the source tree to the baseline and apply the patch set.

    A patch that fails to apply leaves the tree mid-application; resolve it
    and rerun with --continue, drop it with --skip, or give up with --abort.
    """
    if sum((resume, skip, abort)) > 1:
        raise click.UsageError("--continue, --skip and --abort are mutually exclusive")

    config = _config(obj)
    if not (resume or skip or abort):
        run_stages(
            config,
            [ApplyPatches()],
            on_conflict=prompt_resolution if interactive else None,
        )
        return

    try:
        with PipelineContext(config) as context:
            workflow = context.workflow(patches=True)
            if abort:
                if not workflow.abort_apply():
                    status("No patch application in progress", style="warning")
                return
            if resume:
                workflow.continue_apply()
            else:
                workflow.skip_patch()
    except JarPatchError as e:
        raise click.ClickException(e.message) from e
    status("Patch application resumed", style="success")


@click.command()
@pass_config
def generate_patches_command(obj: dict) -> None:
    """Turn every commit on top of the baseline into a patch file."""
    run_stages(_config(obj), [GeneratePatches()])


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_config
def status_command(obj: dict, as_json: bool) -> None:
    """Show cached artifacts and the state of the source tree."""
    config = _config(obj)
    try:
        with PipelineContext(config) as context:
            artifacts = {
                str(coordinate): context.cache.find(coordinate)
                for coordinate in (
                    context.vanilla,
                    context.srg,
                    context.mcp,
                    context.mapped,
                    context.source,
                )
            }
            state: WorkTreeState | None = None
            patches = 0
            if config.project.source_dir is not None:
                workflow = context.workflow()
                state = workflow.state()
                patches = len(workflow.patch_set())
    except JarPatchError as e:
        raise click.ClickException(e.message) from e

    if as_json:
        click.echo(
            json.dumps(
                {
                    "artifacts": {k: str(v) if v else None for k, v in artifacts.items()},
                    "state": state.value if state else None,
                    "patches": patches,
                }
            )
        )
        return

    table = Table(title="Artifacts")
    table.add_column("Coordinate")
    table.add_column("Cached")
    for coordinate, path in artifacts.items():
        table.add_row(coordinate, "[green]yes[/green]" if path else "[dim]no[/dim]")
    console.print(table)

    if state is None:
        console.print("Source tree: [dim]not configured[/dim]")
    else:
        console.print(f"Source tree: [bold]{state.value}[/bold]")
        console.print(f"Patch set: {pluralize(patches, 'patch', 'patches')}")


@click.command()
@pass_config
def build_command(obj: dict) -> None:
    """Run the full pipeline from download to the patched source tree."""
    config = _config(obj)
    run_stages(config, build_stages(config.project))
    status("Build complete", style="success")

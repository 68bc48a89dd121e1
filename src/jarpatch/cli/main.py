"""jarpatch CLI."""

from pathlib import Path

import click

from jarpatch.cli.commands import (
    apply_patches_command,
    build_command,
    decompile_command,
    extract_resources_command,
    fetch_command,
    generate_patches_command,
    init_repo_command,
    remap_command,
    safeguard_command,
    status_command,
)
from jarpatch.cli.utils import project_overrides
from jarpatch.config import load_config
from jarpatch.core.errors import JarPatchError
from jarpatch.core.logging import configure_logging, set_run_id


@click.group()
@click.version_option(version="0.1.0", prog_name="jarpatch")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-C",
    "--project",
    "project_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding jarpatch.yaml (default: current directory)",
)
@click.option("--module", type=click.Choice(["client", "server"]), default=None)
@click.option("--game-version", default=None)
@click.option("--mapping-version", default=None, help="<channel>-<date> or 'live'")
@click.option(
    "--force",
    is_flag=True,
    help="Skip the dirty working tree safeguard. May lose uncommitted changes.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    project_root: Path | None,
    module: str | None,
    game_version: str | None,
    mapping_version: str | None,
    force: bool,
) -> None:
    """jarpatch - remap, decompile and patch game archives."""
    overrides = project_overrides(
        module=module,
        game_version=game_version,
        mapping_version=mapping_version,
        force=force or None,
    )
    try:
        config = load_config(project_root, **overrides)
    except JarPatchError as e:
        raise click.ClickException(e.message) from e

    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    set_run_id()

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config


cli.add_command(fetch_command, name="fetch")
cli.add_command(remap_command, name="remap")
cli.add_command(decompile_command, name="decompile")
cli.add_command(extract_resources_command, name="extract-resources")
cli.add_command(init_repo_command, name="init-repo")
cli.add_command(safeguard_command, name="safeguard")
cli.add_command(apply_patches_command, name="apply-patches")
cli.add_command(generate_patches_command, name="generate-patches")
cli.add_command(status_command, name="status")
cli.add_command(build_command, name="build")


if __name__ == "__main__":
    cli()

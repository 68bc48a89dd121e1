"""CLI utilities."""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import click
import questionary

from jarpatch.cache import StageResult
from jarpatch.config import JarPatchConfig
from jarpatch.core.errors import JarPatchError
from jarpatch.core.logging import get_log_file_path
from jarpatch.core.progress import get_console, status
from jarpatch.git import PatchConflictError, Resolution
from jarpatch.git.workflow import ConflictHandler
from jarpatch.pipeline import Pipeline, PipelineContext, Stage

console = get_console()


def project_overrides(**options: Any) -> dict[str, Any]:
    """Keyword overrides for ``load_config`` from the options actually given."""
    project = {key: value for key, value in options.items() if value is not None}
    return {"project": project} if project else {}


def prompt_resolution(patch: Path, conflict: PatchConflictError) -> Resolution:
    """Ask how to go on after ``patch`` failed to apply."""
    console.print(f"\n[red]✗[/red] Failed to apply [bold]{patch.name}[/bold]")
    stderr = conflict.details.get("stderr", "").strip()
    if stderr:
        console.print(f"[dim]{stderr}[/dim]")
    console.print(
        "Resolve the conflicts in the source directory and stage your changes "
        "before continuing.\n"
    )
    answer = questionary.select(
        "How do you want to proceed?",
        choices=[
            questionary.Choice("Continue, the conflict is resolved", value=Resolution.CONTINUE),
            questionary.Choice("Skip this patch", value=Resolution.SKIP),
            questionary.Choice("Abort the patch application", value=Resolution.ABORT),
        ],
    ).ask()
    return answer or Resolution.ABORT


def run_stages(
    config: JarPatchConfig,
    stages: Iterable[Stage],
    *,
    on_conflict: ConflictHandler | None = None,
) -> list[StageResult]:
    """Run ``stages`` in order, turning any failure into a ClickException."""
    try:
        with PipelineContext(config, on_conflict=on_conflict) as context:
            results = Pipeline(stages).run(context)
    except JarPatchError as e:
        message = e.message
        if (log_file := get_log_file_path()) is not None:
            message = f"{message}. See {log_file} for details."
        raise click.ClickException(message) from e

    for result in results:
        marker = "[dim]cached[/dim]" if result.cached else "done"
        target = f" -> {result.path}" if result.path else ""
        status(f"{result.stage}: {marker}{target}", style="success")
    return results

"""The build stages, from vanilla download to patch generation.

Artifact-producing stages go through :func:`cached_stage`; their inputs are
looked up in the cache by coordinate, so each one fails with
``ArtifactNotFoundError`` when an earlier stage has not run.
"""

from __future__ import annotations

import time
import zipfile
from collections.abc import Callable
from pathlib import Path

from jarpatch.access import AccessTransformer
from jarpatch.cache import (
    MCP_LICENSE,
    MCP_TEAM,
    MOJANG,
    MOJANG_EULA,
    StageResult,
    cached_stage,
)
from jarpatch.config.loader import require_directories
from jarpatch.config.models import DecompilerConfig, ProjectConfig
from jarpatch.core.tempfiles import temporary_directory
from jarpatch.decompiler import Decompiler, Formatter
from jarpatch.git import GitCommandError
from jarpatch.launcher import VersionIndex, fetch_mcp_mappings, fetch_srg_mappings
from jarpatch.mapping import read_mapping_bundle, resolver_for, transform_archive
from jarpatch.pipeline.base import Stage
from jarpatch.pipeline.context import PipelineContext

SOURCE_SUFFIX = ".java"
XML_SUFFIX = ".xml"


class FetchModule:
    """Download the vanilla game archive of the configured module."""

    name = "fetch-module"
    requires: tuple[str, ...] = ()

    def run(self, context: PipelineContext) -> StageResult:
        project = context.config.project

        def produce(artifact: Path) -> None:
            downloader = context.downloader
            index = VersionIndex.fetch(downloader)
            metadata = index.fetch_metadata(project.game_version, downloader)
            metadata.download_for(project.module).fetch(downloader, artifact)

        return cached_stage(
            context.cache,
            context.vanilla,
            produce,
            stage=self.name,
            organization=MOJANG,
            license=MOJANG_EULA,
            logger=context.logger,
        )


class FetchMappings:
    """Download the SRG and MCP mapping archives."""

    name = "fetch-mappings"
    requires: tuple[str, ...] = ()

    def run(self, context: PipelineContext) -> StageResult:
        project = context.config.project

        srg = cached_stage(
            context.cache,
            context.srg,
            lambda artifact: fetch_srg_mappings(
                context.downloader, project.effective_srg_version, artifact
            ),
            stage=self.name,
            organization=MCP_TEAM,
            license=MCP_LICENSE,
            logger=context.logger,
        )
        mcp = cached_stage(
            context.cache,
            context.mcp,
            lambda artifact: fetch_mcp_mappings(
                context.downloader,
                project.mapping_version,
                project.game_version,
                artifact,
                context.logger,
            ),
            stage=self.name,
            organization=MCP_TEAM,
            license=MCP_LICENSE,
            logger=context.logger,
        )
        return StageResult(self.name, mcp.coordinate, mcp.path, cached=srg.cached and mcp.cached)


class ApplyMappings:
    """Rename every class of the vanilla archive with the composed mappings."""

    name = "apply-mappings"
    requires: tuple[str, ...] = ()

    def run(self, context: PipelineContext) -> StageResult:
        project = context.config.project

        def produce(artifact: Path) -> None:
            vanilla = context.cache.fetch(context.vanilla)
            bundle = read_mapping_bundle(
                context.cache.fetch(context.srg),
                context.cache.fetch(context.mcp),
                project.module,
            )
            transform_archive(vanilla, artifact, resolver_for(bundle), context.logger)

        return cached_stage(
            context.cache,
            context.mapped,
            produce,
            stage=self.name,
            organization=MOJANG,
            license=MOJANG_EULA,
            logger=context.logger,
        )


def is_decompiled_entry(name: str, config: DecompilerConfig) -> bool:
    """Whether an entry of the mapped archive is handed to the decompiler."""
    if name in config.included_files:
        return True
    return any(name.startswith(prefix) for prefix in config.included_prefixes)


def strip_archive(source: Path, target: Path, config: DecompilerConfig) -> int:
    """Copy only the decompiled entries of ``source``; return how many were kept."""
    kept = 0
    with zipfile.ZipFile(source) as zin, zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zout:
        for info in zin.infolist():
            if not is_decompiled_entry(info.filename, config):
                continue
            zout.writestr(info.filename, b"" if info.is_dir() else zin.read(info))
            kept += 1
    return kept


def postprocess_sources(source: Path, target: Path, formatter: Formatter) -> None:
    """Format Java sources and drop carriage returns from XML documents."""
    with zipfile.ZipFile(source) as zin, zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zout:
        for info in zin.infolist():
            name = info.filename
            data = b"" if info.is_dir() else zin.read(info)
            if name.endswith(SOURCE_SUFFIX):
                data = formatter.format_source(data.decode("utf-8")).encode("utf-8")
            elif name.endswith(XML_SUFFIX):
                data = data.decode("utf-8").replace("\r", "").encode("utf-8")
            zout.writestr(name, data)


class DecompileModule:
    """Decompile the mapped archive and format the resulting sources."""

    name = "decompile-module"
    requires: tuple[str, ...] = ()

    def run(self, context: PipelineContext) -> StageResult:
        config = context.config.decompiler

        def produce(artifact: Path) -> None:
            mapped = context.cache.fetch(context.mapped)
            decompiler: Decompiler = context.decompiler
            with temporary_directory(logger=context.logger) as work:
                stripped = work / "stripped.jar"
                output_dir = work / "ff"
                output_dir.mkdir()

                context.logger.info("stripping dependencies from module")
                kept = strip_archive(mapped, stripped, config)
                context.logger.info("decompiling module", entries=kept)
                decompiled = decompiler.decompile(stripped, output_dir)

                context.logger.info("reformatting code")
                postprocess_sources(decompiled, artifact, context.formatter)

        return cached_stage(
            context.cache,
            context.source,
            produce,
            stage=self.name,
            organization=MOJANG,
            license=MOJANG_EULA,
            logger=context.logger,
        )


def _entry_timestamp(info: zipfile.ZipInfo) -> float:
    return time.mktime((*info.date_time, 0, 0, -1))


class ExtractResources:
    """Copy the non-source entries of the source archive into the resource directory."""

    name = "extract-resources"
    requires = ("resource_dir",)

    def run(self, context: PipelineContext) -> StageResult:
        project = context.config.project
        resource_dir = require_directories(project, "resource_dir")["resource_dir"]
        excluded = set(project.excluded_resources)
        log = context.logger.bind(stage=self.name)

        source = context.cache.fetch(context.source)
        extracted = 0
        with zipfile.ZipFile(source) as archive:
            for info in archive.infolist():
                name = info.filename
                if info.is_dir() or name.endswith(SOURCE_SUFFIX):
                    continue
                if name in excluded:
                    log.info("skipping resource, excluded by build configuration", resource=name)
                    continue

                target = resource_dir / name
                target.parent.mkdir(parents=True, exist_ok=True)
                if target.exists() and _entry_timestamp(info) <= target.stat().st_mtime:
                    log.info(
                        "skipping resource, local file is newer or of equal age", resource=name
                    )
                    continue
                target.write_bytes(archive.read(info))
                extracted += 1

        log.info("resources extracted", count=extracted, directory=str(resource_dir))
        return StageResult(self.name, context.source, resource_dir, cached=extracted == 0)


def _access_rewriter(transformer: AccessTransformer) -> Callable[[str, bytes], bytes]:
    def rewrite(name: str, data: bytes) -> bytes:
        return transformer.apply(data.decode("utf-8"), name).encode("utf-8")

    return rewrite


class InitializeRepository:
    """Create the source working tree and its baseline from the source archive.

    Configured access transformations are applied to each compilation unit
    as it is written, so the cached source archive stays untouched. This
    runs after the formatter stage rather than straight after decompiling:
    the formatted archive stays keyed by its coordinate alone, and the
    transformer works on formatted text, which it parses the same way.
    """

    name = "initialize-repository"
    requires = ("source_dir",)

    def run(self, context: PipelineContext) -> StageResult:
        workflow = context.workflow()
        if workflow.is_initialized():
            context.logger.info("skipping repository initialization, already present")
            return StageResult(self.name, path=workflow.source_dir, cached=True)

        source = context.cache.fetch(context.source)
        transformer = context.access_transformer()
        rewrite = _access_rewriter(transformer) if transformer is not None else None
        workflow.initialize(source, rewrite)
        return StageResult(self.name, context.source, workflow.source_dir)


class Safeguard:
    """Refuse to continue while the source tree holds uncommitted changes."""

    name = "safeguard"
    requires = ("source_dir",)

    def run(self, context: PipelineContext) -> StageResult:
        workflow = context.workflow()
        workflow.safeguard(context.config.project.force, self.name)
        return StageResult(self.name, path=workflow.source_dir)


def _require_git(context: PipelineContext) -> None:
    runner = context.workflow().runner
    try:
        runner.version()
    except GitCommandError:
        context.logger.error(
            "git is required for this operation",
            hint="install git and make sure it is on the PATH",
        )
        raise


class ApplyPatches:
    """Rebuild the patched tree from the baseline and the patch set."""

    name = "apply-patches"
    requires = ("source_dir", "patch_dir")

    def run(self, context: PipelineContext) -> StageResult:
        workflow = context.workflow(patches=True)
        _require_git(context)
        patches = workflow.apply_patches(context.config.project.force, context.on_conflict)
        context.logger.info("patches applied", count=len(patches))
        return StageResult(self.name, path=workflow.source_dir, cached=len(patches) == 0)


class GeneratePatches:
    """Export every commit on top of the baseline as a patch file."""

    name = "generate-patches"
    requires = ("source_dir", "patch_dir")

    def run(self, context: PipelineContext) -> StageResult:
        workflow = context.workflow(patches=True)
        _require_git(context)
        workflow.generate_patches()
        return StageResult(self.name, path=workflow.patch_dir)


def build_stages(project: ProjectConfig) -> list[Stage]:
    """The full build: download, remap, decompile, then the patched working tree.

    Resource extraction runs only when a resource directory is configured.
    """
    stages: list[Stage] = [FetchModule(), FetchMappings(), ApplyMappings(), DecompileModule()]
    if project.resource_dir is not None:
        stages.append(ExtractResources())
    stages.extend([InitializeRepository(), ApplyPatches()])
    return stages

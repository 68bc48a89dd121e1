"""The cache-or-compute protocol every artifact-producing stage follows."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from jarpatch.cache.coordinates import ArtifactCoordinate
from jarpatch.cache.descriptor import License, Organization, write_descriptor
from jarpatch.cache.repository import ArtifactCache
from jarpatch.core.logging import get_logger
from jarpatch.core.tempfiles import temporary_paths

Producer = Callable[[Path], None]


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one stage.

    ``cached`` is True when the stage found its output already present and
    did no work. Stages that produce no artifact leave ``coordinate`` and
    ``path`` unset.
    """

    stage: str
    coordinate: ArtifactCoordinate | None = None
    path: Path | None = None
    cached: bool = False


def cached_stage(
    cache: ArtifactCache,
    coordinate: ArtifactCoordinate,
    produce: Producer,
    *,
    stage: str,
    organization: Organization | None = None,
    license: License | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> StageResult:
    """Return the cached artifact for ``coordinate``, producing it if absent.

    ``produce`` writes the artifact into the temporary path it is given. The
    artifact is stored together with a generated descriptor; the temporary
    paths are removed whether or not production succeeds.
    """
    log = (logger or get_logger(__name__)).bind(stage=stage, coordinate=str(coordinate))

    found = cache.find(coordinate)
    if found is not None:
        log.info("located cached artifact, skipping")
        return StageResult(stage, coordinate, found, cached=True)

    with temporary_paths(2, logger=log) as (artifact, descriptor):
        produce(artifact)
        write_descriptor(descriptor, coordinate, organization, license)
        log.info("storing artifact")
        path = cache.store(coordinate, artifact, descriptor)

    return StageResult(stage, coordinate, path, cached=False)

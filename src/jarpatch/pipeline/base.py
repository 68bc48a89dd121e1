"""Stage protocol, stage-level error and the sequential runner."""

from __future__ import annotations

import zipfile
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from jarpatch.cache.stage import StageResult
from jarpatch.config.loader import require_directories
from jarpatch.core.errors import ErrorCode, InternalError, JarPatchError
from jarpatch.core.logging import stage_context

if TYPE_CHECKING:
    from jarpatch.pipeline.context import PipelineContext


class StageError(JarPatchError):
    """A pipeline stage failed; ``__cause__`` carries the root error."""

    @classmethod
    def failed(cls, stage: str, cause: BaseException) -> StageError:
        if isinstance(cause, JarPatchError):
            reason, retryable, root = cause.message, cause.retryable, cause.to_dict()
        else:
            reason, retryable, root = str(cause), False, {"error": type(cause).__name__}
        return cls(
            code=ErrorCode.STAGE_FAILED,
            message=f"Stage {stage} failed: {reason}",
            retryable=retryable,
            details={"stage": stage, "cause": root},
        )


class Stage(Protocol):
    name: str
    requires: tuple[str, ...]

    def run(self, context: PipelineContext) -> StageResult: ...


class Pipeline:
    """Runs stages strictly in order, halting at the first failure.

    Artifacts stored by earlier stages stay in the cache, so a rerun resumes
    where the failed one stopped.
    """

    def __init__(self, stages: Iterable[Stage]) -> None:
        self.stages = list(stages)

    def run(self, context: PipelineContext) -> list[StageResult]:
        """Run every stage.

        Raises:
            ConfigError: If a directory some stage requires is unset; checked
                before any stage runs.
            StageError: Naming the failed stage, chained to the root cause.
                Anything other than a typed, I/O or archive error is reported
                as an ``InternalError`` cause.
        """
        for stage in self.stages:
            require_directories(context.config.project, *stage.requires)

        results: list[StageResult] = []
        for stage in self.stages:
            log = context.logger.bind(stage=stage.name)
            log.info("stage starting")
            try:
                with stage_context(stage.name):
                    result = stage.run(context)
            except StageError:
                raise
            except (JarPatchError, OSError, zipfile.BadZipFile) as e:
                error = StageError.failed(stage.name, e)
                log.error("stage failed", cause=error.details["cause"])
                raise error from e
            except Exception as e:
                internal = InternalError.unexpected(str(e), error=type(e).__name__)
                error = StageError.failed(stage.name, internal)
                log.exception("stage crashed", cause=error.details["cause"])
                raise error from e
            log.info("stage finished", cached=result.cached)
            results.append(result)
        return results

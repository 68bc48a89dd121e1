"""Patch-based working tree over a decompiled baseline.

The working tree lives in its own repository. The root commit holds the
decompiled sources and is marked by the baseline branch; every intentional
change is a commit on top of it, exported as one ``*.patch`` file. Applying
the patch set rebuilds the modified tree from a fresh baseline.
"""

from __future__ import annotations

import shutil
import zipfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import pygit2
import structlog

from jarpatch.config.models import GitConfig
from jarpatch.core.errors import ConfigError
from jarpatch.core.logging import get_logger
from jarpatch.git.errors import (
    DirtyWorkingTreeError,
    GitCommandError,
    PatchConflictError,
    RepositoryError,
    guard,
)
from jarpatch.git.runner import GitRunner

PATCH_SUFFIX = ".patch"
SOURCE_SUFFIX = ".java"

STATUS_IGNORED = pygit2.GIT_STATUS_IGNORED
STATUS_CURRENT = pygit2.GIT_STATUS_CURRENT
RESET_HARD = pygit2.GIT_RESET_HARD

FORCE_BANNER = (
    "+--------------------------------------+",
    "|                                      |",
    "|    THIS MAY CAUSE LOSS OF CHANGES    |",
    "|         USE AT YOUR OWN RISK         |",
    "|                                      |",
    "+--------------------------------------+",
)


class WorkTreeState(Enum):
    UNINITIALIZED = "uninitialized"
    BASELINE = "baseline"
    PATCHED = "patched"
    DIRTY = "dirty"
    APPLYING = "applying"


class Resolution(Enum):
    """What to do with a patch that failed to apply."""

    CONTINUE = "continue"
    SKIP = "skip"
    ABORT = "abort"


ConflictHandler = Callable[[Path, PatchConflictError], Resolution]
SourceRewriter = Callable[[str, bytes], bytes]


@dataclass(frozen=True)
class PatchSet:
    """The ``*.patch`` files of a directory in application order."""

    directory: Path | None
    patches: tuple[Path, ...] = ()

    @classmethod
    def scan(cls, directory: Path | None) -> PatchSet:
        if directory is None or not directory.is_dir():
            return cls(directory)
        return cls(
            directory,
            tuple(sorted(p for p in directory.rglob(f"*{PATCH_SUFFIX}") if p.is_file())),
        )

    def __len__(self) -> int:
        return len(self.patches)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.patches)


class PatchWorkflow:
    """State machine over the source working tree.

    Transitions that discard work (reset, reinitialize, apply) refuse a
    ``DIRTY`` tree unless forced; a forced override is logged as a warning.
    """

    def __init__(
        self,
        source_dir: Path,
        patch_dir: Path | None = None,
        config: GitConfig | None = None,
        runner: GitRunner | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.source_dir = source_dir
        self.patch_dir = patch_dir
        self.config = config or GitConfig()
        self._log = logger or get_logger(__name__)
        self.runner = runner or GitRunner(
            self.config.executable, self.config.timeout_sec, self._log
        )

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def git_dir(self) -> Path:
        return self.source_dir / ".git"

    def is_initialized(self) -> bool:
        return self.git_dir.exists()

    def _open(self) -> pygit2.Repository:
        with guard("open repository"):
            return pygit2.Repository(str(self.source_dir))

    def is_applying(self) -> bool:
        return (self.git_dir / "rebase-apply").exists()

    def is_dirty(self) -> bool:
        """Whether any tracked change or untracked file exists."""
        if not self.is_initialized():
            return False
        repo = self._open()
        with guard("status"):
            status = repo.status()
        return any(flags not in (STATUS_CURRENT, STATUS_IGNORED) for flags in status.values())

    def _baseline_target(self, repo: pygit2.Repository) -> pygit2.Oid:
        branch = repo.branches.local.get(self.config.baseline_branch)
        if branch is None:
            raise RepositoryError.operation_failed(
                "locate baseline", f"branch {self.config.baseline_branch!r} does not exist"
            )
        return branch.target

    def state(self) -> WorkTreeState:
        if not self.is_initialized():
            return WorkTreeState.UNINITIALIZED
        if self.is_applying():
            return WorkTreeState.APPLYING
        if self.is_dirty():
            return WorkTreeState.DIRTY
        repo = self._open()
        with guard("resolve HEAD"):
            head = repo.head.target
        if head == self._baseline_target(repo):
            return WorkTreeState.BASELINE
        return WorkTreeState.PATCHED

    def patch_set(self) -> PatchSet:
        return PatchSet.scan(self.patch_dir)

    def _require_patch_dir(self) -> Path:
        if self.patch_dir is None:
            raise ConfigError.missing_required("project.patch_dir")
        return self.patch_dir

    # =========================================================================
    # Transitions
    # =========================================================================

    def safeguard(self, force: bool = False, operation: str = "continue") -> None:
        """Refuse to go on while uncommitted changes exist.

        Raises:
            DirtyWorkingTreeError: If the tree is dirty and ``force`` is unset.
        """
        if force:
            self._log.warning("skipping safeguard, override is enabled", operation=operation)
            for line in FORCE_BANNER:
                self._log.warning(line)
            return
        if not self.is_initialized():
            self._log.info("skipping safeguard, no repository in source path")
            return
        if self.is_dirty():
            self._log.error(
                "repository is not in a clean state",
                path=str(self.source_dir),
                hint="commit the changes you wish to retain and generate patches, or pass force",
            )
            raise DirtyWorkingTreeError.for_operation(operation, str(self.source_dir))

    def initialize(self, source_archive: Path, rewrite: SourceRewriter | None = None) -> bool:
        """Create the repository from the ``.java`` entries of ``source_archive``.

        ``rewrite`` receives each entry name and its bytes before the file is
        written. Returns False when a repository already exists.
        """
        if self.is_initialized():
            self._log.info("skipping repository initialization, already present")
            return False

        self._log.info("initializing repository", path=str(self.source_dir))
        self.source_dir.mkdir(parents=True, exist_ok=True)
        root = self.source_dir.resolve()
        with guard("initialize repository"):
            repo = pygit2.init_repository(str(self.source_dir))
            index = repo.index
            with zipfile.ZipFile(source_archive) as archive:
                for info in archive.infolist():
                    if info.is_dir() or not info.filename.endswith(SOURCE_SUFFIX):
                        continue
                    target = (root / info.filename).resolve()
                    if not target.is_relative_to(root):
                        self._log.warning("skipping entry outside source tree", entry=info.filename)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    data = archive.read(info)
                    if rewrite is not None:
                        data = rewrite(info.filename, data)
                    target.write_bytes(data)
                    index.add(target.relative_to(root).as_posix())
            index.write()

            signature = pygit2.Signature(self.config.author_name, self.config.author_email)
            commit = repo.create_commit(
                "HEAD",
                signature,
                signature,
                self.config.baseline_message,
                index.write_tree(),
                [],
            )
            repo.branches.local.create(self.config.baseline_branch, repo[commit])
        return True

    def reset(self, force: bool = False) -> None:
        """Discard every commit and change on top of the baseline."""
        self.safeguard(force, "reset")
        if self.is_applying():
            self.abort_apply()
        repo = self._open()
        with guard("reset to baseline"):
            repo.reset(self._baseline_target(repo), RESET_HARD)
        self._log.info("working tree reset to baseline", branch=self.config.baseline_branch)

    def reinitialize(
        self, source_archive: Path, force: bool = False, rewrite: SourceRewriter | None = None
    ) -> None:
        """Throw the repository away and build a new baseline."""
        self.safeguard(force, "reinitialize")
        if self.is_initialized():
            shutil.rmtree(self.git_dir)
            for child in self.source_dir.iterdir():
                if child.is_dir():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        self.initialize(source_archive, rewrite)

    def abort_apply(self) -> bool:
        """``git am --abort``; returns whether an application was in progress."""
        result = self.runner.run(["am", "--abort"], self.source_dir, check=False)
        if result.returncode != 0:
            self._log.info("no previous patch application in progress")
            return False
        self._log.warning("aborted previous patch application")
        return True

    def continue_apply(self) -> None:
        self.runner.run(["am", "--continue"], self.source_dir)

    def skip_patch(self) -> None:
        self.runner.run(["am", "--skip"], self.source_dir)

    def apply_patches(
        self, force: bool = False, on_conflict: ConflictHandler | None = None
    ) -> PatchSet:
        """Reset to the baseline and apply the patch set in order.

        Without ``on_conflict`` the first failing patch raises and the tree
        stays in ``APPLYING`` for manual resolution. A handler answering
        ``Resolution.ABORT`` rolls the application back before the error is
        raised.

        Raises:
            DirtyWorkingTreeError: If the tree is dirty and ``force`` is unset.
            PatchConflictError: If a patch fails and is not resolved.
        """
        patch_dir = self._require_patch_dir()
        patches = self.patch_set()
        if not patch_dir.is_dir():
            self._log.warning("skipping patching, patch directory does not exist")
            return patches

        self.safeguard(force, "apply patches")
        self.abort_apply()
        repo = self._open()
        with guard("reset to baseline"):
            repo.reset(self._baseline_target(repo), RESET_HARD)

        for patch in patches:
            self._log.info("applying patch", patch=patch.name)
            result = self.runner.run(
                ["am", "--ignore-whitespace", "--3way", str(patch.absolute())],
                self.source_dir,
                check=False,
            )
            if result.returncode == 0:
                continue

            conflict = PatchConflictError.for_patch(str(patch), result.stderr)
            self._log.error("could not apply patch", patch=str(patch), stderr=result.stderr.strip())
            if on_conflict is None:
                raise conflict
            self._resolve(patch, conflict, on_conflict)
        return patches

    def _resolve(
        self, patch: Path, conflict: PatchConflictError, on_conflict: ConflictHandler
    ) -> None:
        while True:
            resolution = on_conflict(patch, conflict)
            try:
                if resolution is Resolution.CONTINUE:
                    self.continue_apply()
                elif resolution is Resolution.SKIP:
                    self.skip_patch()
                else:
                    self.abort_apply()
                    raise conflict
                return
            except GitCommandError as e:
                # still conflicted, ask again
                self._log.error("patch still does not apply", patch=str(patch), error=e.message)

    def generate_patches(self) -> PatchSet:
        """Replace the patch set with one patch per commit on top of the baseline.

        Only committed changes are exported.
        """
        patch_dir = self._require_patch_dir()
        self._log.info("purging previous patch files", directory=str(patch_dir))
        patch_dir.mkdir(parents=True, exist_ok=True)
        for patch in PatchSet.scan(patch_dir):
            patch.unlink()

        if self.is_dirty():
            self._log.warning(
                "uncommitted changes present in source directory",
                hint="only committed changes are considered in patch generation",
            )

        self.runner.run(
            [
                "format-patch",
                "--minimal",
                "--no-stat",
                "-N",
                "-o",
                str(patch_dir.absolute()),
                self.config.baseline_branch,
            ],
            self.source_dir,
        )
        patches = self.patch_set()
        self._log.info("patches generated", count=len(patches))
        return patches

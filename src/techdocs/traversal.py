from __future__ import annotations

import os
import time
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from techdocs.config import EntryKind, TraversalEntry, describe_bytes
from techdocs.exceptions import TraversalTimeoutError
from techdocs.file_manipulation import decode_text, format_file_content
from techdocs.logging import logger
from techdocs.output_construction import SkipReason

if TYPE_CHECKING:
    from pathlib import Path

    from techdocs.exclusion import ExclusionPolicy, IgnoreScope
    from techdocs.output_construction import BundleWriter


class TraversalMode(StrEnum):
    LISTING = auto()
    CONTENT = auto()


class TraversalState(StrEnum):
    """States of the walk; per-entry outcomes are ADMITTED, REJECTED and PRUNED."""

    START = auto()
    VISITING = auto()
    ADMITTED = auto()
    REJECTED = auto()
    PRUNED = auto()
    DONE = auto()
    TRUNCATED = auto()


class TraversalReport(BaseModel):
    """Summary of one traversal, logged when the walk ends."""

    model_config = ConfigDict(frozen=True)

    state: TraversalState
    included: int
    skipped: int
    consumed_bytes: int

    @property
    def truncated(self) -> bool:
        return self.state is TraversalState.TRUNCATED


class BoundedTraversal:
    """Depth-first walk of ``root`` under an exclusion policy and a size budget.

    Entries of each directory are visited sorted by name so that two runs on
    an unchanged tree produce identical output. Symbolic links are not
    followed. In listing mode admitted files are written as bare paths; in
    content mode each one is size-checked, read, decoded and formatted before
    the next entry is visited.

    Args:
        root: the validated directory to walk.
        policy: decides which entries are visited.
        writer: receives paths, blocks and markers; owns the byte counter.
        mode: listing or content.
        timeout_seconds: optional deadline for the whole walk.
    """

    def __init__(
        self,
        root: Path,
        policy: ExclusionPolicy,
        writer: BundleWriter,
        *,
        mode: TraversalMode = TraversalMode.CONTENT,
        timeout_seconds: float | None = None,
    ) -> None:
        self.root = root
        self.policy = policy
        self.writer = writer
        self.mode = mode
        self.timeout_seconds = timeout_seconds
        self.state = TraversalState.START
        self.included = 0
        self.skipped = 0
        self._deadline: float | None = None

    def run(self) -> TraversalReport:
        """Walk the tree once and return the report.

        Raises:
            TraversalTimeoutError: if the deadline passes before the walk ends.
        """
        if self.state is not TraversalState.START:
            msg = "a traversal can only run once"
            raise RuntimeError(msg)
        if self.timeout_seconds is not None:
            self._deadline = time.monotonic() + self.timeout_seconds
        logger.info("traversal_started", root=str(self.root), mode=str(self.mode))
        if self.mode is TraversalMode.CONTENT:
            self.writer.write_directory_header(self.root)

        self.state = self._walk_directory(self.root, "", self.policy.root_scope())
        if self.state is not TraversalState.TRUNCATED:
            self.state = TraversalState.DONE

        report = TraversalReport(
            state=self.state,
            included=self.included,
            skipped=self.skipped,
            consumed_bytes=self.writer.consumed_bytes,
        )
        logger.info(
            "traversal_finished",
            root=str(self.root),
            state=str(report.state),
            processed=report.included + report.skipped,
            included=report.included,
            skipped=report.skipped,
            total_kb=report.consumed_bytes // 1024,
        )
        return report

    def _check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            logger.error("traversal_timeout", root=str(self.root), timeout_seconds=self.timeout_seconds)
            raise TraversalTimeoutError(
                root=self.root,
                timeout_seconds=float(self.timeout_seconds or 0),
                message=f"walk of {self.root} exceeded {self.timeout_seconds}s",
            )

    def _scan(self, directory: Path) -> list[os.DirEntry[str]] | None:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("directory_unreadable", path=str(directory), error=str(e))
            return None

    def _walk_directory(self, directory: Path, rel: str, scope: IgnoreScope) -> TraversalState:
        entries = self._scan(directory)
        if entries is None:
            return TraversalState.PRUNED

        for dirent in entries:
            self._check_deadline()
            self.state = TraversalState.VISITING
            child_rel = f"{rel}/{dirent.name}" if rel else dirent.name
            try:
                if dirent.is_dir(follow_symlinks=False):
                    kind = EntryKind.DIRECTORY
                elif dirent.is_file(follow_symlinks=False):
                    kind = EntryKind.FILE
                else:
                    continue
            except OSError as e:
                logger.warning("entry_unreadable", path=str(directory / dirent.name), error=str(e))
                continue

            entry = TraversalEntry(path=directory / dirent.name, rel=child_rel, kind=kind)
            decision = self.policy.decide(entry, scope)
            if not decision.admitted:
                logger.debug(
                    "entry_excluded",
                    path=child_rel,
                    tier=decision.tier.name if decision.tier else None,
                    reason=decision.reason,
                )
                continue

            if entry.is_dir:
                outcome = self._walk_directory(entry.path, child_rel, self.policy.enter(entry, scope))
                if outcome is TraversalState.TRUNCATED:
                    return outcome
                continue

            if self._visit_file(entry, dirent) is TraversalState.TRUNCATED:
                return TraversalState.TRUNCATED

        return TraversalState.DONE

    def _visit_file(self, entry: TraversalEntry, dirent: os.DirEntry[str]) -> TraversalState:
        if self.mode is TraversalMode.LISTING:
            self.writer.write_plain_path(entry.path)
            self.included += 1
            return TraversalState.ADMITTED

        try:
            size = dirent.stat(follow_symlinks=False).st_size
        except OSError as e:
            return self._read_failed(entry, e)

        entry = entry.model_copy(update={"size": size})
        refused = self._check_limits(entry)
        if refused is not None:
            return refused

        try:
            data = entry.path.read_bytes()
        except OSError as e:
            return self._read_failed(entry, e)

        if len(data) != entry.size:
            # file changed between stat and read
            entry = entry.model_copy(update={"size": len(data)})
            refused = self._check_limits(entry)
            if refused is not None:
                return refused

        try:
            text = decode_text(data)
        except UnicodeDecodeError:
            logger.debug("file_not_text", path=str(entry.path))
            self.writer.write_skip(entry.path, SkipReason.NOT_TEXT)
            self.skipped += 1
            return TraversalState.REJECTED

        self.writer.write_block(format_file_content(entry.path, text, size=entry.size))
        self.included += 1
        logger.debug("file_included", path=str(entry.path), size_kb=len(data) // 1024)
        return TraversalState.ADMITTED

    def _check_limits(self, entry: TraversalEntry) -> TraversalState | None:
        budget = self.writer.budget
        size = entry.size or 0
        if budget.exceeds_file_limit(size):
            logger.debug("file_too_large", path=str(entry.path), size_kb=size // 1024)
            self.writer.write_skip(entry.path, SkipReason.TOO_LARGE)
            self.skipped += 1
            return TraversalState.REJECTED

        if budget.would_overflow(size):
            limit = describe_bytes(budget.max_total_bytes)
            logger.info("total_size_limit_reached", limit=limit, path=str(entry.path))
            self.writer.write_truncation_notice(limit)
            return TraversalState.TRUNCATED
        return None

    def _read_failed(self, entry: TraversalEntry, error: OSError) -> TraversalState:
        logger.warning("file_read_error", path=str(entry.path), error=str(error))
        self.writer.write_read_error(entry.path, error)
        self.skipped += 1
        return TraversalState.REJECTED

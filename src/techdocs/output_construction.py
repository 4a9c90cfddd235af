from __future__ import annotations

from enum import StrEnum
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from techdocs.config import FormattedBlock, SizeBudget


class SkipReason(StrEnum):
    """Why an admitted file did not make it into the bundle."""

    TOO_LARGE = "too large"
    NOT_TEXT = "not UTF-8"


class BundleWriter:
    """Append-only writer of listings and content bundles.

    The writer owns the budget's byte counter: :meth:`write_block` is the
    only place where ``consumed_bytes`` grows. Everything is written once,
    in call order, encoded as UTF-8.

    Args:
        sink: any binary destination (``sys.stdout.buffer``, ``io.BytesIO``, a file).
        budget: the size budget of this traversal.
    """

    def __init__(self, sink: IO[bytes], budget: SizeBudget) -> None:
        self.sink = sink
        self.budget = budget
        self.truncated = False

    @property
    def consumed_bytes(self) -> int:
        return self.budget.consumed_bytes

    def _write(self, text: str) -> None:
        self.sink.write(text.encode("utf-8"))

    def write_directory_header(self, directory: Path) -> None:
        self._write(f"Directory: {directory}\n\n")

    def write_plain_path(self, path: Path) -> None:
        self._write(f"{path}\n")

    def write_block(self, block: FormattedBlock) -> None:
        """Write a formatted file and account for its source size.

        Raises:
            ValueError: if the block does not fit in the remaining budget.
        """
        self.budget.consume(block.size)
        self._write(block.text)

    def write_skip(self, path: Path, reason: SkipReason) -> None:
        self._write(f"Skipped ({reason}): {path}\n\n")

    def write_read_error(self, path: Path, error: OSError) -> None:
        self._write(f"Error reading {path}: {error}\n\n")

    def write_truncation_notice(self, limit_description: str) -> None:
        """Write the terminal notice; only one is allowed per bundle.

        Raises:
            RuntimeError: if a notice was already written.
        """
        if self.truncated:
            msg = "truncation notice already written"
            raise RuntimeError(msg)
        self.truncated = True
        self._write(f"Reached total size limit of {limit_description}\n\n")

    def flush(self) -> None:
        self.sink.flush()

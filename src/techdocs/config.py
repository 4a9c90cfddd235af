from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_LANGUAGE_TAG = "txt"
KIB = 1024
MIB = 1024 * 1024


class EntryKind(StrEnum):
    """Kind of filesystem object met during the walk."""

    FILE = auto()
    DIRECTORY = auto()


class DenyEntry(BaseModel):
    """One name on the build-artifact deny-list.

    Default entries match exact names only. Substring matching is opt-in per
    entry since ``bin`` would otherwise reject ``binary.py`` and ``out`` would
    reject ``output.py``.

    Attributes:
        name: The file or directory name to reject.
        substring: Match ``name`` anywhere in the entry name instead of exactly.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    substring: bool = False

    def matches(self, entry_name: str) -> bool:
        """Check whether an entry name is hit by this deny-list entry."""
        if self.substring:
            return self.name in entry_name
        return entry_name == self.name


BUILD_EXECUTABLES: tuple[str, ...] = (
    "mvnw",
    "mvnw.cmd",
    "gradlew",
    "gradlew.bat",
    "npm",
    "yarn",
    "pnpm",
    "cargo",
)

BUILD_DIRECTORIES: tuple[str, ...] = (
    "target",
    "node_modules",
    "build",
    "dist",
    "out",
    "bin",
    "Debug",
    "Release",
    ".git",
    ".idea",
    ".vscode",
)

DEFAULT_DENY_LIST: tuple[DenyEntry, ...] = tuple(
    DenyEntry(name=name) for name in (*BUILD_EXECUTABLES, *BUILD_DIRECTORIES)
)

IGNORE_FILE_NAMES: tuple[str, ...] = (".gitignore", ".ignore")


class ExclusionConfig(BaseModel):
    """Immutable configuration injected into the exclusion policy.

    Attributes:
        deny_list: Names that are never visited, whatever the other rules say.
        hidden: Reject dotfiles and dot-directories.
        git_ignore: Honor ignore files found in the tree and ``.git/info/exclude``.
        git_global: Honor the global git ignore file.
        ignore_file_names: Per-directory ignore file names, read in this order.
        global_ignore_file: Explicit global ignore file; the XDG location is used when None.
    """

    model_config = ConfigDict(frozen=True)

    deny_list: tuple[DenyEntry, ...] = DEFAULT_DENY_LIST
    hidden: bool = True
    git_ignore: bool = True
    git_global: bool = True
    ignore_file_names: tuple[str, ...] = IGNORE_FILE_NAMES
    global_ignore_file: Path | None = None


class TraversalEntry(BaseModel):
    """One filesystem object visited during the walk.

    Attributes:
        path: Path of the entry as displayed in the output (root joined with ``rel``).
        rel: POSIX path relative to the traversal root.
        kind: File or directory.
        size: Byte length, files only.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    rel: str
    kind: EntryKind
    size: int | None = Field(default=None, ge=0)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


class FormattedBlock(BaseModel):
    """A single file rendered for inclusion in the bundle.

    Attributes:
        path: Source path shown in the header line.
        language: Fence tag derived from the file extension.
        content: Decoded file text, verbatim.
        size: Byte length of the source file, used for budget accounting.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    language: str = DEFAULT_LANGUAGE_TAG
    content: str
    size: int = Field(..., ge=0)

    @computed_field
    @property
    def text(self) -> str:
        """Render the header, fenced content and blank separator line."""
        body = self.content if not self.content or self.content.endswith("\n") else self.content + "\n"
        return f"File: {self.path}\n```{self.language}\n{body}```\n\n"


class SizeBudget(BaseModel):
    """Per-file and cumulative size ceilings plus the running byte counter.

    ``consumed_bytes`` is only advanced through :meth:`consume`, which the
    bundle writer calls once per written block.
    """

    model_config = ConfigDict(validate_assignment=True)

    max_file_bytes: int = Field(..., ge=0)
    max_total_bytes: int = Field(..., ge=0)
    consumed_bytes: int = Field(default=0, ge=0)

    def exceeds_file_limit(self, size: int) -> bool:
        return size > self.max_file_bytes

    def would_overflow(self, size: int) -> bool:
        return self.consumed_bytes + size > self.max_total_bytes

    def consume(self, size: int) -> None:
        if self.would_overflow(size):
            msg = f"consuming {size} bytes would exceed the {self.max_total_bytes} byte ceiling"
            raise ValueError(msg)
        self.consumed_bytes += size

    @classmethod
    def from_units(cls, max_file_size_kb: int, max_total_size_mb: int) -> SizeBudget:
        """Build a budget from the KB/MB limits used on the command line."""
        return cls(max_file_bytes=max_file_size_kb * KIB, max_total_bytes=max_total_size_mb * MIB)


def describe_bytes(size: int) -> str:
    """Describe a byte count in the largest whole unit (``10 MB``, ``100 KB``).

    Args:
        size (int): a byte count

    Returns:
        str: the human-readable size
    """
    if size >= MIB and size % MIB == 0:
        return f"{size // MIB} MB"
    if size >= KIB and size % KIB == 0:
        return f"{size // KIB} KB"
    return f"{size} bytes"

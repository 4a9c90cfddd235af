from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(eq=False)
class TechDocsError(Exception):
    """Base exception for errors in the techdocs package."""

    phase: ClassVar[str] = "operation"

    def __str__(self) -> str:
        message = getattr(self, "message", "") or self.__class__.__name__
        return f"{self.phase} failed: {message}"


@dataclass(eq=False)
class LocationResolutionError(TechDocsError):
    """Raised when a location string cannot be turned into a local directory."""

    phase: ClassVar[str] = "resolution"

    location: str
    message: str = "The location could not be resolved."


@dataclass(eq=False)
class UnsupportedLocationError(LocationResolutionError):
    """Raised when a URL does not point to a supported remote host."""

    message: str = "Only GitHub URLs are supported."


@dataclass(eq=False)
class CloneError(LocationResolutionError):
    """Raised when cloning a remote repository fails."""

    message: str = "Cloning the repository failed."
    returncode: int = -1
    stderr: str = ""


@dataclass(eq=False)
class DirectoryValidationError(TechDocsError):
    """Raised when a resolved path is not a usable directory."""

    phase: ClassVar[str] = "validation"

    path: Path
    message: str = "The path is not a usable directory."


@dataclass(eq=False)
class DirectoryNotFoundError(DirectoryValidationError):
    """Raised when the path does not exist."""

    message: str = "Path does not exist."


@dataclass(eq=False)
class PathNotADirectoryError(DirectoryValidationError):
    """Raised when the path exists but is not a directory."""

    message: str = "Path is not a directory."


@dataclass(eq=False)
class DirectoryPermissionError(DirectoryValidationError):
    """Raised when the directory contents cannot be enumerated."""

    message: str = "Directory is not readable."


@dataclass(eq=False)
class PatternError(TechDocsError):
    """Raised when a user-supplied exclusion pattern cannot be compiled."""

    phase: ClassVar[str] = "pattern compilation"

    pattern: str
    message: str = "Invalid exclude pattern."


@dataclass(eq=False)
class TraversalTimeoutError(TechDocsError):
    """Raised when the walk runs past its deadline."""

    phase: ClassVar[str] = "traversal"

    root: Path
    timeout_seconds: float
    message: str = "Traversal deadline exceeded."


@dataclass(eq=False)
class GenerationError(TechDocsError):
    """Raised when the text-generation service call fails."""

    phase: ClassVar[str] = "generation"

    message: str = "Text generation failed."
    status_code: int | None = None


@dataclass(eq=False)
class ConfigFileError(TechDocsError):
    """Raised when a YAML configuration file cannot be loaded."""

    phase: ClassVar[str] = "configuration"

    file: Path
    message: str = "Invalid configuration file."


@dataclass(eq=False)
class InvalidSettingsError(TechDocsError):
    """Raised when option values given on the command line are out of range."""

    phase: ClassVar[str] = "configuration"

    message: str = "Invalid settings."

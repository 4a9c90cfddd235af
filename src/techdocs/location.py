"""Resolve user-supplied locations to local directories and validate them."""

from __future__ import annotations

import os
import subprocess  # noqa: S404
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from techdocs.exceptions import (
    CloneError,
    DirectoryNotFoundError,
    DirectoryPermissionError,
    PathNotADirectoryError,
    UnsupportedLocationError,
)
from techdocs.logging import logger

if TYPE_CHECKING:
    from types import TracebackType

    from techdocs.settings import Settings


class ResolvedLocation:
    """A local directory ready for traversal.

    When ``workspace`` is set the directory was created for this operation
    and is deleted by :meth:`release`. Use it as a context manager so the
    workspace goes away on every exit path.
    """

    def __init__(self, path: Path, workspace: tempfile.TemporaryDirectory[str] | None = None) -> None:
        self.path = path
        self._workspace = workspace

    @property
    def is_ephemeral(self) -> bool:
        return self._workspace is not None

    def release(self) -> None:
        """Delete the ephemeral workspace, if any. Safe to call twice."""
        if self._workspace is None:
            return
        workspace, self._workspace = self._workspace, None
        logger.debug("workspace_released", path=str(self.path))
        workspace.cleanup()

    def __enter__(self) -> ResolvedLocation:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ResolvedLocation(path={self.path!r}, ephemeral={self.is_ephemeral})"


def is_remote_reference(location: str) -> bool:
    """Tell whether a location string is a URL rather than a filesystem path.

    A scheme of at least two characters followed by ``://`` makes a URL, with
    or without a host (``file:///srv/code``). One-letter schemes are Windows
    drive letters.

    Args:
        location (str): the user-supplied location

    Returns:
        bool: True for URLs such as ``https://github.com/o/r``, False for filesystem paths
    """
    scheme = urlsplit(location).scheme
    return len(scheme) > 1 and location[len(scheme) : len(scheme) + 3] == "://"


def clone_repository(url: str, destination: Path, *, git_bin: str = "git") -> None:
    """Shallow-clone ``url`` into the existing, empty ``destination`` directory.

    Args:
        url (str): the repository URL
        destination (Path): the directory to clone into
        git_bin (str): the git executable

    Raises:
        CloneError: if git is missing or exits with a non-zero status.
    """
    cmd = [git_bin, "clone", "--depth", "1", "--quiet", url, str(destination)]
    logger.debug("git_clone", url=url, destination=str(destination))
    try:
        subprocess.run(  # noqa: S603
            cmd,
            text=True,
            capture_output=True,
            check=True,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
    except FileNotFoundError as e:
        raise CloneError(location=url, message=f"`{git_bin}` not found in PATH") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise CloneError(
            location=url,
            message=f"git clone exited with status {e.returncode}: {stderr}",
            returncode=e.returncode,
            stderr=stderr,
        ) from e


def resolve_location(location: str, settings: Settings) -> ResolvedLocation:
    """Map a location string to a local directory.

    Supported remote repositories are cloned into a fresh temporary directory
    owned by the returned value. Other URLs are rejected. Anything else is a
    local path, returned as-is (made absolute) without checking that it exists.

    Args:
        location (str): a filesystem path or a repository URL
        settings (Settings): supplies the supported hosts/schemes and the git executable

    Raises:
        UnsupportedLocationError: if the URL's scheme or host is not supported.
        CloneError: if cloning fails; the temporary directory is removed first.

    Returns:
        ResolvedLocation: the directory to traverse
    """
    if not is_remote_reference(location):
        path = Path(location).expanduser().absolute()
        logger.debug("local_location", path=str(path))
        return ResolvedLocation(path)

    parts = urlsplit(location)
    if parts.scheme.lower() not in settings.remote_schemes or (parts.hostname or "") not in settings.remote_hosts:
        logger.error("unsupported_location", location=location, scheme=parts.scheme, host=parts.hostname)
        hosts = ", ".join(sorted(settings.remote_hosts))
        raise UnsupportedLocationError(location=location, message=f"only repositories on {hosts} are supported")

    logger.info("cloning_repository", location=location)
    workspace = tempfile.TemporaryDirectory(prefix="techdocs-")
    path = Path(workspace.name)
    try:
        clone_repository(location, path, git_bin=settings.git_bin)
    except BaseException:
        workspace.cleanup()
        logger.error("clone_failed", location=location)
        raise
    logger.info("repository_cloned", location=location, path=str(path))
    return ResolvedLocation(path, workspace)


def validate_directory(path: Path) -> None:
    """Check that ``path`` exists, is a directory and can be enumerated.

    Args:
        path (Path): the resolved directory

    Raises:
        DirectoryNotFoundError: if nothing exists at ``path``.
        PathNotADirectoryError: if ``path`` is not a directory.
        DirectoryPermissionError: if the directory contents cannot be listed.
    """
    if not path.exists():
        logger.error("path_not_found", path=str(path))
        raise DirectoryNotFoundError(path=path, message=f"path does not exist: {path}")
    if not path.is_dir():
        logger.error("path_not_a_directory", path=str(path))
        raise PathNotADirectoryError(path=path, message=f"path is not a directory: {path}")
    try:
        with os.scandir(path) as it:
            next(it, None)
    except OSError as e:
        logger.error("directory_not_readable", path=str(path), error=str(e))
        raise DirectoryPermissionError(path=path, message=f"directory is not readable: {path} ({e})") from e
    logger.debug("directory_valid", path=str(path))

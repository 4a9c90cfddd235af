from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from techdocs.exceptions import (
    CloneError,
    DirectoryNotFoundError,
    DirectoryPermissionError,
    PathNotADirectoryError,
    UnsupportedLocationError,
)
from techdocs.location import ResolvedLocation, is_remote_reference, resolve_location, validate_directory

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from techdocs.settings import Settings

REPO_URL = "https://github.com/owner/repo"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("location", "expected"),
    [
        (REPO_URL, True),
        ("http://example.com/x", True),
        ("file:///srv/code", True),
        ("C://work/repo", False),
        (".", False),
        ("/srv/code", False),
        ("C:\\work\\repo", False),
        ("git@github.com:owner/repo.git", False),
    ],
)
def test_is_remote_reference(location: str, expected: bool) -> None:
    assert is_remote_reference(location) is expected


@pytest.mark.unit
def test_local_path_is_made_absolute_without_checks(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
) -> None:
    monkeypatch.chdir(tmp_path)

    resolved = resolve_location("does-not-exist", settings)

    assert resolved.path == tmp_path / "does-not-exist"
    assert not resolved.is_ephemeral
    resolved.release()


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    [
        "https://gitlab.com/owner/repo",
        "ftp://github.com/owner/repo",
        "http://github.com/owner/repo",
        "file:///srv/code",
    ],
)
def test_unsupported_urls_are_rejected(url: str, settings: Settings, mocker: MockerFixture) -> None:
    run = mocker.patch("techdocs.location.subprocess.run")

    with pytest.raises(UnsupportedLocationError) as exc_info:
        resolve_location(url, settings)

    assert exc_info.value.location == url
    assert str(exc_info.value).startswith("resolution failed")
    run.assert_not_called()


@pytest.mark.unit
def test_remote_repository_is_cloned_into_ephemeral_workspace(settings: Settings, mocker: MockerFixture) -> None:
    def fake_clone(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        (Path(cmd[-1]) / "README.md").write_text("# repo\n", encoding="utf-8")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    run = mocker.patch("techdocs.location.subprocess.run", side_effect=fake_clone)

    with resolve_location(REPO_URL, settings) as resolved:
        workspace = resolved.path
        assert resolved.is_ephemeral
        assert (workspace / "README.md").is_file()

    assert not workspace.exists()
    cmd = run.call_args.args[0]
    assert cmd[:5] == ["git", "clone", "--depth", "1", "--quiet"]
    assert cmd[5] == REPO_URL


@pytest.mark.unit
def test_failed_clone_removes_workspace(settings: Settings, mocker: MockerFixture) -> None:
    destinations: list[Path] = []

    def failing_clone(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        destinations.append(Path(cmd[-1]))
        raise subprocess.CalledProcessError(128, cmd, output="", stderr="fatal: repository not found\n")

    mocker.patch("techdocs.location.subprocess.run", side_effect=failing_clone)

    with pytest.raises(CloneError) as exc_info:
        resolve_location(REPO_URL, settings)

    assert exc_info.value.returncode == 128
    assert exc_info.value.stderr == "fatal: repository not found"
    assert destinations
    assert not destinations[0].exists()


@pytest.mark.unit
def test_missing_git_is_a_clone_error(settings: Settings, mocker: MockerFixture) -> None:
    mocker.patch("techdocs.location.subprocess.run", side_effect=FileNotFoundError("git"))

    with pytest.raises(CloneError, match="not found in PATH"):
        resolve_location(REPO_URL, settings)


@pytest.mark.unit
def test_release_is_idempotent(tmp_path: Path) -> None:
    workspace = tempfile.TemporaryDirectory(dir=tmp_path)
    resolved = ResolvedLocation(Path(workspace.name), workspace)

    resolved.release()
    resolved.release()

    assert not Path(workspace.name).exists()
    assert not resolved.is_ephemeral


@pytest.mark.unit
def test_validate_directory_accepts_readable_directory(tmp_path: Path) -> None:
    validate_directory(tmp_path)


@pytest.mark.unit
def test_validate_directory_missing_path(tmp_path: Path) -> None:
    with pytest.raises(DirectoryNotFoundError) as exc_info:
        validate_directory(tmp_path / "missing")

    assert exc_info.value.path == tmp_path / "missing"
    assert exc_info.value.phase == "validation"


@pytest.mark.unit
def test_validate_directory_regular_file(tmp_path: Path) -> None:
    file_path = tmp_path / "file.txt"
    file_path.write_text("x", encoding="utf-8")

    with pytest.raises(PathNotADirectoryError):
        validate_directory(file_path)


@pytest.mark.unit
def test_validate_directory_unreadable(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("techdocs.location.os.scandir", side_effect=PermissionError(13, "Permission denied"))

    with pytest.raises(DirectoryPermissionError, match="not readable"):
        validate_directory(tmp_path)

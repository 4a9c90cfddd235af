"""
techdocs: prepare a project directory or GitHub repository for an LLM.

Overview
--------
The tool walks a source tree, honoring ``.gitignore``/``.ignore`` files, a
deny-list of build artifacts (``node_modules``, ``target``, ``gradlew``...)
and extra ``--exclude`` patterns, then:

1) **list**: prints the admitted file paths, one per line.
2) **prompt**: prints a size-bounded bundle where every file is framed as
   ``File: <path>`` followed by a fenced code block tagged with its extension.
   Files above ``--max-file-size-kb`` and non UTF-8 files are skipped with a
   marker; the walk stops with a notice once ``--max-total-size-mb`` is reached.
3) **readme**: sends that bundle to the text generation service with the
   README system prompt and prints the generated README.
4) **serve**: exposes the same operations over HTTP.

GitHub URLs (``https://github.com/owner/repo``) are cloned into a temporary
directory that is removed when the command ends.

Usage
-----
    techdocs list .
    techdocs prompt https://github.com/owner/repo --max-total-size-mb 2 > bundle.md
    techdocs readme . --exclude "docs/,*.lock" > README.md
    techdocs serve --port 3000
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from techdocs import __version__
from techdocs.exceptions import TechDocsError
from techdocs.logging import logger, setup_logging
from techdocs.settings import load_settings
from techdocs.workflows import generate_readme, list_files, write_prompt_bundle

if TYPE_CHECKING:
    from collections.abc import Sequence

    from techdocs.settings import Settings

COMMANDS = ("list", "prompt", "readme", "serve")


def split_patterns(values: Sequence[str] | None) -> list[str] | None:
    """Flatten repeated and comma-separated ``--exclude`` values.

    Args:
        values (Sequence[str] | None): raw option values

    Returns:
        list[str] | None: the patterns, or None when the option was not given
    """
    if values is None:
        return None
    out: list[str] = []
    for value in values:
        out.extend(p.strip() for p in value.split(",") if p.strip())
    return out


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=None,
        help="Additional patterns to exclude, .gitignore format (repeatable, comma-separated).",
    )
    common.add_argument("-v", "--verbose", action="store_true", default=None, help="Debug logging.")
    common.add_argument("--log-file", type=str, default=None, help="Log file path.")
    common.add_argument("--config", type=Path, default=None, help="YAML configuration file.")
    common.add_argument("--timeout", dest="timeout_seconds", type=float, default=None, help="Traversal deadline in seconds.")
    return common


def _add_limits(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-file-size-kb",
        type=int,
        default=None,
        help="Maximum size in KB for files to include (default: 100).",
    )
    parser.add_argument(
        "--max-total-size-mb",
        type=int,
        default=None,
        help="Maximum total output size in MB (default: 10).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    common = _common_parser()
    p = argparse.ArgumentParser(
        prog="techdocs",
        description="Bundle a codebase for LLM consumption and generate documentation.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    list_p = sub.add_parser("list", parents=[common], help="List the files that would be bundled.")
    list_p.add_argument("location", nargs="?", default=None, help="Directory path or GitHub URL.")

    prompt_p = sub.add_parser("prompt", parents=[common], help="Print the content bundle.")
    prompt_p.add_argument("location", nargs="?", default=None, help="Directory path or GitHub URL.")
    _add_limits(prompt_p)
    prompt_p.add_argument("-o", "--output", type=Path, default=None, help="Write the bundle to a file.")

    readme_p = sub.add_parser("readme", parents=[common], help="Generate a README with the LLM.")
    readme_p.add_argument("location", nargs="?", default=None, help="Directory path or GitHub URL.")
    _add_limits(readme_p)
    readme_p.add_argument("--prompt-file", type=Path, default=None, help="System prompt file.")
    readme_p.add_argument("--model", type=str, default=None, help="Model identifier.")
    readme_p.add_argument("--max-tokens", type=int, default=None, help="Generated text token limit.")

    serve_p = sub.add_parser("serve", parents=[common], help="Run the HTTP service.")
    serve_p.add_argument("--host", type=str, default=None, help="Bind address (default: 127.0.0.1).")
    serve_p.add_argument("--port", type=int, default=None, help="Port (default: 3000).")
    return p


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Merge the configuration file and the command-line options into settings.

    Raises:
        ConfigFileError: if ``--config`` points to an invalid file.
    """
    values: dict[str, Any] = {
        k: v for k, v in vars(args).items() if k not in {"command", "config", "output"}
    }
    values["exclude"] = split_patterns(args.exclude)
    return load_settings(args.config, **values)


def run_command(command: str, settings: Settings, *, output: Path | None = None) -> int:
    """Dispatch one subcommand.

    Args:
        command (str): one of ``COMMANDS``
        settings (Settings): merged settings
        output (Path | None): bundle destination for ``prompt``; stdout when None

    Returns:
        int: Process exit code.
    """
    if command == "list":
        list_files(settings.location, settings, sys.stdout.buffer)
    elif command == "prompt":
        if output is None:
            write_prompt_bundle(settings.location, settings, sys.stdout.buffer)
        else:
            with output.open("wb") as fh:
                write_prompt_bundle(settings.location, settings, fh)
            logger.info("bundle_written", output=str(output))
    elif command == "readme":
        readme = generate_readme(settings.location, settings)
        sys.stdout.write(readme)
        sys.stdout.flush()
    elif command == "serve":
        import uvicorn  # noqa: PLC0415

        from techdocs.api import create_app  # noqa: PLC0415

        logger.info("server_starting", host=settings.host, port=settings.port)
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    else:
        msg = f"unknown command: {command}"
        raise ValueError(msg)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except TechDocsError as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    setup_logging(settings.log_file or None, verbose=settings.verbose, force=True)
    logger.debug("command_started", command=args.command, location=settings.location, exclude=settings.exclude)

    try:
        return run_command(args.command, settings, output=getattr(args, "output", None))
    except TechDocsError as e:
        logger.error("command_failed", command=args.command, phase=e.phase, error=str(e))
        sys.stderr.write(f"error: {e}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""End-to-end operations shared by the CLI and the HTTP service."""

from __future__ import annotations

import io
from typing import IO, TYPE_CHECKING

from techdocs.exclusion import ExclusionPolicy
from techdocs.generation import ReadmeGenerator, load_system_prompt
from techdocs.location import resolve_location, validate_directory
from techdocs.logging import logger
from techdocs.output_construction import BundleWriter
from techdocs.traversal import BoundedTraversal, TraversalMode, TraversalReport

if TYPE_CHECKING:
    from pathlib import Path

    from techdocs.settings import Settings


def run_traversal(
    root: Path,
    settings: Settings,
    sink: IO[bytes],
    *,
    mode: TraversalMode,
) -> TraversalReport:
    """Validate ``root``, build the exclusion policy and walk it into ``sink``.

    Args:
        root (Path): the resolved directory
        settings (Settings): patterns, limits and policy configuration
        sink (IO[bytes]): the output destination
        mode (TraversalMode): listing or content

    Returns:
        TraversalReport: the summary of the walk
    """
    validate_directory(root)
    policy = ExclusionPolicy(root, settings.exclude, settings.exclusion)
    writer = BundleWriter(sink, settings.new_budget())
    report = BoundedTraversal(
        root,
        policy,
        writer,
        mode=mode,
        timeout_seconds=settings.timeout_seconds,
    ).run()
    writer.flush()
    return report


def list_files(location: str, settings: Settings, sink: IO[bytes]) -> TraversalReport:
    """Write the admitted file paths under ``location``, one per line."""
    with resolve_location(location, settings) as resolved:
        return run_traversal(resolved.path, settings, sink, mode=TraversalMode.LISTING)


def write_prompt_bundle(location: str, settings: Settings, sink: IO[bytes]) -> TraversalReport:
    """Write the size-bounded content bundle of ``location`` to ``sink``."""
    with resolve_location(location, settings) as resolved:
        return run_traversal(resolved.path, settings, sink, mode=TraversalMode.CONTENT)


def build_prompt_bundle(location: str, settings: Settings) -> str:
    """Return the content bundle of ``location`` as text."""
    buf = io.BytesIO()
    write_prompt_bundle(location, settings, buf)
    return buf.getvalue().decode("utf-8")


def generate_readme(
    location: str,
    settings: Settings,
    generator: ReadmeGenerator | None = None,
    *,
    system_prompt: str | None = None,
) -> str:
    """Bundle ``location`` and ask the text-generation service for a README.

    Args:
        location (str): directory path or repository URL
        settings (Settings): traversal and generation settings
        generator (ReadmeGenerator | None): client to use; built from ``settings`` when None
        system_prompt (str | None): instructions; read from ``settings.prompt_file`` (or the bundled prompt) when None

    Returns:
        str: the generated README
    """
    prompt = system_prompt if system_prompt is not None else load_system_prompt(settings.prompt_file)
    client = generator or ReadmeGenerator.from_settings(settings)
    bundle = build_prompt_bundle(location, settings)
    logger.debug("bundle_collected", bytes=len(bundle.encode("utf-8")))
    return client.generate(prompt, bundle)

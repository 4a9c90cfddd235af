"""Layered admit/reject decisions for entries met during the walk.

Rules are evaluated in tier order and the first rule with an opinion wins:

1. deny-list of build-tool wrappers and build/output directories (absolute,
   user patterns cannot re-admit these names),
2. user override patterns (gitignore syntax, ``!pattern`` re-admits),
3. VCS ignore files: global, ``.git/info/exclude``, then ``.gitignore`` and
   ``.ignore`` of every directory from the root down,
4. hidden entries (names starting with a dot).

An entry no rule has an opinion on is admitted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import pathspec

from techdocs.config import ExclusionConfig
from techdocs.exceptions import PatternError
from techdocs.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from techdocs.config import DenyEntry, TraversalEntry


class Tier(IntEnum):
    """Precedence of a rule; lower values are consulted first."""

    DENY_LIST = 1
    OVERRIDE = 2
    VCS_IGNORE = 3
    HIDDEN = 4


@dataclass(frozen=True)
class Decision:
    """Outcome of the policy for one entry."""

    admitted: bool
    tier: Tier | None = None
    reason: str = ""


ADMIT_BY_DEFAULT = Decision(admitted=True, reason="no rule matched")


def compile_pattern(line: str) -> tuple[bool, pathspec.PathSpec] | None:
    """Compile one gitignore line.

    Args:
        line (str): a gitignore-style pattern, possibly negated with ``!``

    Raises:
        ValueError: if the pattern is malformed.

    Returns:
        tuple[bool, pathspec.PathSpec] | None: ``(negated, spec)``, or None for blank lines and comments
    """
    text = line.rstrip("\r\n")
    if not text.strip() or text.startswith("#"):
        return None
    negated = text.startswith("!")
    body = text[1:] if negated else text
    if not body.strip():
        msg = f"empty negated pattern: {line!r}"
        raise ValueError(msg)
    return negated, pathspec.PathSpec.from_lines("gitignore", [body])


class GitignoreMatcher:
    """Ordered gitignore patterns with last-match-wins semantics."""

    def __init__(self, compiled: Sequence[tuple[bool, pathspec.PathSpec]]) -> None:
        self._compiled = tuple(compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> GitignoreMatcher:
        """Compile user-supplied patterns, failing on the first malformed one.

        Raises:
            PatternError: if a pattern cannot be compiled.
        """
        compiled: list[tuple[bool, pathspec.PathSpec]] = []
        for pattern in patterns:
            try:
                item = compile_pattern(pattern)
            except ValueError as e:
                logger.error("invalid_exclude_pattern", pattern=pattern, error=str(e))
                raise PatternError(pattern=pattern, message=f"invalid exclude pattern {pattern!r}: {e}") from e
            if item is not None:
                logger.debug("exclude_pattern_added", pattern=pattern)
                compiled.append(item)
        return cls(compiled)

    @classmethod
    def from_file(cls, path: Path) -> GitignoreMatcher:
        """Compile an ignore file found on disk; malformed lines are logged and skipped."""
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            logger.warning("ignore_file_unreadable", path=str(path), error=str(e))
            return cls(())
        compiled: list[tuple[bool, pathspec.PathSpec]] = []
        for lineno, line in enumerate(lines, start=1):
            try:
                item = compile_pattern(line)
            except ValueError as e:
                logger.warning("ignore_line_skipped", path=str(path), line=lineno, error=str(e))
                continue
            if item is not None:
                compiled.append(item)
        return cls(compiled)

    def verdict(self, rel: str, *, is_dir: bool) -> bool | None:
        """Tell whether ``rel`` is ignored.

        Args:
            rel (str): POSIX path relative to the matcher's base directory
            is_dir (bool): whether the entry is a directory (enables ``dir/`` patterns)

        Returns:
            bool | None: True if ignored, False if re-included by a negation, None if no pattern matched
        """
        candidate = f"{rel}/" if is_dir else rel
        result: bool | None = None
        for negated, spec in self._compiled:
            if spec.match_file(candidate):
                result = not negated
        return result


@dataclass(frozen=True)
class IgnoreLayer:
    """Ignore patterns anchored at ``base`` (relative POSIX dir, ``""`` for the root)."""

    base: str
    matcher: GitignoreMatcher
    source: str = ""

    def verdict(self, rel: str, *, is_dir: bool) -> bool | None:
        if self.base:
            prefix = self.base + "/"
            if not rel.startswith(prefix):
                return None
            rel = rel[len(prefix) :]
        return self.matcher.verdict(rel, is_dir=is_dir)


@dataclass(frozen=True)
class IgnoreScope:
    """VCS ignore layers in effect inside one directory, outermost first."""

    layers: tuple[IgnoreLayer, ...] = ()

    def with_layers(self, layers: Iterable[IgnoreLayer]) -> IgnoreScope:
        extra = tuple(layers)
        return IgnoreScope(self.layers + extra) if extra else self

    def verdict(self, rel: str, *, is_dir: bool) -> tuple[bool, str] | None:
        decided: tuple[bool, str] | None = None
        for layer in self.layers:
            v = layer.verdict(rel, is_dir=is_dir)
            if v is not None:
                decided = (v, layer.source)
        return decided


class Rule(Protocol):
    """One link of the rule chain."""

    tier: Tier

    def check(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision | None: ...


class DenyListRule:
    tier = Tier.DENY_LIST

    def __init__(self, entries: Sequence[DenyEntry]) -> None:
        self.entries = tuple(entries)

    def check(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision | None:  # noqa: ARG002
        for deny in self.entries:
            if deny.matches(entry.name):
                return Decision(admitted=False, tier=self.tier, reason=f"deny-list: {deny.name}")
        return None


class OverrideRule:
    tier = Tier.OVERRIDE

    def __init__(self, matcher: GitignoreMatcher) -> None:
        self.matcher = matcher

    def check(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision | None:  # noqa: ARG002
        ignored = self.matcher.verdict(entry.rel, is_dir=entry.is_dir)
        if ignored is None:
            return None
        reason = "excluded by pattern" if ignored else "re-admitted by pattern"
        return Decision(admitted=not ignored, tier=self.tier, reason=reason)


class VcsIgnoreRule:
    tier = Tier.VCS_IGNORE

    def check(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision | None:
        found = scope.verdict(entry.rel, is_dir=entry.is_dir)
        if found is None:
            return None
        ignored, source = found
        return Decision(admitted=not ignored, tier=self.tier, reason=f"ignore file: {source}")


class HiddenRule:
    tier = Tier.HIDDEN

    def check(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision | None:  # noqa: ARG002
        if entry.name.startswith("."):
            return Decision(admitted=False, tier=self.tier, reason="hidden")
        return None


def global_ignore_path() -> Path:
    """Return the default location of git's global ignore file."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "git" / "ignore"


class ExclusionPolicy:
    """Composite rule set deciding which entries are visited.

    Args:
        root: the traversal root; user patterns and root ignore files are anchored here.
        patterns: user override patterns in gitignore syntax.
        config: deny-list and rule toggles.

    Raises:
        PatternError: if a user pattern is malformed.
    """

    def __init__(
        self,
        root: Path,
        patterns: Sequence[str] = (),
        config: ExclusionConfig | None = None,
    ) -> None:
        self.root = root
        self.config = config or ExclusionConfig()
        rules: list[Rule] = [DenyListRule(self.config.deny_list), OverrideRule(GitignoreMatcher.from_patterns(patterns))]
        if self.config.git_ignore or self.config.git_global:
            rules.append(VcsIgnoreRule())
        if self.config.hidden:
            rules.append(HiddenRule())
        self.rules: tuple[Rule, ...] = tuple(sorted(rules, key=lambda r: r.tier))

    def _load_layers(self, directory: Path, base: str) -> list[IgnoreLayer]:
        layers: list[IgnoreLayer] = []
        if not self.config.git_ignore:
            return layers
        for name in self.config.ignore_file_names:
            path = directory / name
            if path.is_file():
                matcher = GitignoreMatcher.from_file(path)
                if len(matcher):
                    logger.debug("ignore_file_loaded", path=str(path), patterns=len(matcher))
                    layers.append(IgnoreLayer(base=base, matcher=matcher, source=str(path)))
        return layers

    def root_scope(self) -> IgnoreScope:
        """Build the ignore scope of the traversal root."""
        layers: list[IgnoreLayer] = []
        if self.config.git_global:
            path = self.config.global_ignore_file or global_ignore_path()
            if path.is_file():
                layers.append(IgnoreLayer(base="", matcher=GitignoreMatcher.from_file(path), source=str(path)))
        if self.config.git_ignore:
            exclude = self.root / ".git" / "info" / "exclude"
            if exclude.is_file():
                layers.append(IgnoreLayer(base="", matcher=GitignoreMatcher.from_file(exclude), source=str(exclude)))
        layers.extend(self._load_layers(self.root, ""))
        return IgnoreScope(tuple(layers))

    def enter(self, directory: TraversalEntry, scope: IgnoreScope) -> IgnoreScope:
        """Extend ``scope`` with the ignore files of an admitted directory."""
        return scope.with_layers(self._load_layers(self.root / directory.rel, directory.rel))

    def decide(self, entry: TraversalEntry, scope: IgnoreScope) -> Decision:
        """Return the first opinion in tier order, or admit."""
        for rule in self.rules:
            decision = rule.check(entry, scope)
            if decision is not None:
                return decision
        return ADMIT_BY_DEFAULT

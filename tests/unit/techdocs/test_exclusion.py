from __future__ import annotations

import warnings
from pathlib import Path

import pytest

from techdocs.config import DenyEntry, EntryKind, ExclusionConfig, TraversalEntry
from techdocs.exceptions import PatternError
from techdocs.exclusion import ExclusionPolicy, GitignoreMatcher, Tier, compile_pattern


def file_entry(root: Path, rel: str) -> TraversalEntry:
    return TraversalEntry(path=root / rel, rel=rel, kind=EntryKind.FILE)


def dir_entry(root: Path, rel: str) -> TraversalEntry:
    return TraversalEntry(path=root / rel, rel=rel, kind=EntryKind.DIRECTORY)


@pytest.mark.unit
def test_deny_list_rejects_build_directories_and_wrappers(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    policy = ExclusionPolicy(tmp_path, config=exclusion_config)
    scope = policy.root_scope()

    node_modules = policy.decide(dir_entry(tmp_path, "node_modules"), scope)
    gradlew = policy.decide(file_entry(tmp_path, "gradlew"), scope)
    source = policy.decide(file_entry(tmp_path, "src/output.py"), scope)

    assert not node_modules.admitted
    assert node_modules.tier is Tier.DENY_LIST
    assert not gradlew.admitted
    assert gradlew.tier is Tier.DENY_LIST
    assert source.admitted


@pytest.mark.unit
def test_deny_list_cannot_be_overridden_by_user_patterns(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    policy = ExclusionPolicy(tmp_path, ["!node_modules", "!node_modules/", "!mvnw"], config=exclusion_config)
    scope = policy.root_scope()

    assert not policy.decide(dir_entry(tmp_path, "node_modules"), scope).admitted
    assert not policy.decide(file_entry(tmp_path, "mvnw"), scope).admitted


@pytest.mark.unit
def test_deny_list_is_injected_configuration(tmp_path: Path) -> None:
    config = ExclusionConfig(deny_list=(DenyEntry(name="vendor"), DenyEntry(name="tmp", substring=True)), git_global=False)
    policy = ExclusionPolicy(tmp_path, config=config)
    scope = policy.root_scope()

    assert not policy.decide(dir_entry(tmp_path, "vendor"), scope).admitted
    assert not policy.decide(file_entry(tmp_path, "notes.tmp.md"), scope).admitted
    assert policy.decide(dir_entry(tmp_path, "node_modules"), scope).admitted


@pytest.mark.unit
def test_user_pattern_excludes_matching_files(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    policy = ExclusionPolicy(tmp_path, ["*.log", "docs/"], config=exclusion_config)
    scope = policy.root_scope()

    log = policy.decide(file_entry(tmp_path, "deep/nested/app.log"), scope)

    assert not log.admitted
    assert log.tier is Tier.OVERRIDE
    assert not policy.decide(dir_entry(tmp_path, "docs"), scope).admitted
    assert policy.decide(file_entry(tmp_path, "docs"), scope).admitted
    assert policy.decide(file_entry(tmp_path, "app.py"), scope).admitted


@pytest.mark.unit
def test_later_user_pattern_wins(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    policy = ExclusionPolicy(tmp_path, ["*.md", "!README.md"], config=exclusion_config)
    scope = policy.root_scope()

    assert policy.decide(file_entry(tmp_path, "README.md"), scope).admitted
    assert not policy.decide(file_entry(tmp_path, "CHANGELOG.md"), scope).admitted


@pytest.mark.unit
def test_override_readmits_hidden_and_gitignored_files(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    (tmp_path / ".gitignore").write_text("secret.txt\n", encoding="utf-8")
    policy = ExclusionPolicy(tmp_path, ["!.env.example", "!secret.txt"], config=exclusion_config)
    scope = policy.root_scope()

    hidden = policy.decide(file_entry(tmp_path, ".env.example"), scope)
    ignored = policy.decide(file_entry(tmp_path, "secret.txt"), scope)

    assert hidden.admitted
    assert hidden.tier is Tier.OVERRIDE
    assert ignored.admitted
    assert ignored.tier is Tier.OVERRIDE


@pytest.mark.unit
def test_gitignore_rules_and_negations(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    (tmp_path / ".gitignore").write_text("# logs\n*.log\n!keep.log\ncache/\n", encoding="utf-8")
    policy = ExclusionPolicy(tmp_path, config=exclusion_config)
    scope = policy.root_scope()

    dropped = policy.decide(file_entry(tmp_path, "debug.log"), scope)

    assert not dropped.admitted
    assert dropped.tier is Tier.VCS_IGNORE
    assert policy.decide(file_entry(tmp_path, "keep.log"), scope).admitted
    assert not policy.decide(dir_entry(tmp_path, "cache"), scope).admitted
    assert policy.decide(file_entry(tmp_path, "cache"), scope).admitted


@pytest.mark.unit
def test_nested_gitignore_applies_relative_to_its_directory(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    sub = tmp_path / "pkg"
    sub.mkdir()
    (sub / ".gitignore").write_text("*.tmp\n/local.cfg\n", encoding="utf-8")
    policy = ExclusionPolicy(tmp_path, config=exclusion_config)
    root_scope = policy.root_scope()
    pkg_scope = policy.enter(dir_entry(tmp_path, "pkg"), root_scope)

    assert policy.decide(file_entry(tmp_path, "a.tmp"), root_scope).admitted
    assert not policy.decide(file_entry(tmp_path, "pkg/b.tmp"), pkg_scope).admitted
    assert not policy.decide(file_entry(tmp_path, "pkg/local.cfg"), pkg_scope).admitted
    assert policy.decide(file_entry(tmp_path, "pkg/inner/local.cfg"), pkg_scope).admitted


@pytest.mark.unit
def test_ignore_file_overrides_gitignore(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    (tmp_path / ".gitignore").write_text("*.snap\n", encoding="utf-8")
    (tmp_path / ".ignore").write_text("!wanted.snap\n", encoding="utf-8")
    policy = ExclusionPolicy(tmp_path, config=exclusion_config)
    scope = policy.root_scope()

    assert policy.decide(file_entry(tmp_path, "wanted.snap"), scope).admitted
    assert not policy.decide(file_entry(tmp_path, "other.snap"), scope).admitted


@pytest.mark.unit
def test_git_info_exclude_and_global_ignore_file(tmp_path: Path) -> None:
    info = tmp_path / ".git" / "info"
    info.mkdir(parents=True)
    (info / "exclude").write_text("local-only.txt\n", encoding="utf-8")
    global_ignore = tmp_path / "global-ignore"
    global_ignore.write_text("*.swp\n", encoding="utf-8")
    config = ExclusionConfig(global_ignore_file=global_ignore)
    policy = ExclusionPolicy(tmp_path, config=config)
    scope = policy.root_scope()

    assert not policy.decide(file_entry(tmp_path, "local-only.txt"), scope).admitted
    assert not policy.decide(file_entry(tmp_path, "main.py.swp"), scope).admitted
    assert policy.decide(file_entry(tmp_path, "main.py"), scope).admitted


@pytest.mark.unit
def test_vcs_rules_can_be_disabled(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("*.log\n", encoding="utf-8")
    policy = ExclusionPolicy(tmp_path, config=ExclusionConfig(git_ignore=False, git_global=False))

    assert policy.decide(file_entry(tmp_path, "debug.log"), policy.root_scope()).admitted


@pytest.mark.unit
def test_hidden_entries_are_rejected_by_default(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    policy = ExclusionPolicy(tmp_path, config=exclusion_config)
    scope = policy.root_scope()

    decision = policy.decide(dir_entry(tmp_path, ".github"), scope)

    assert not decision.admitted
    assert decision.tier is Tier.HIDDEN


@pytest.mark.unit
def test_hidden_rule_can_be_disabled(tmp_path: Path) -> None:
    policy = ExclusionPolicy(tmp_path, config=ExclusionConfig(hidden=False, git_global=False))
    scope = policy.root_scope()

    assert policy.decide(dir_entry(tmp_path, ".github"), scope).admitted
    assert not policy.decide(dir_entry(tmp_path, ".git"), scope).admitted


@pytest.mark.unit
def test_malformed_user_pattern_raises_pattern_error(tmp_path: Path, exclusion_config: ExclusionConfig) -> None:
    with pytest.raises(PatternError) as exc_info:
        ExclusionPolicy(tmp_path, ["*.py", "!"], config=exclusion_config)

    assert exc_info.value.pattern == "!"
    assert str(exc_info.value).startswith("pattern compilation failed")


@pytest.mark.unit
def test_malformed_ignore_file_lines_are_skipped(tmp_path: Path) -> None:
    ignore_file = tmp_path / ".gitignore"
    ignore_file.write_text("!\n*.o\n", encoding="utf-8")

    matcher = GitignoreMatcher.from_file(ignore_file)

    assert len(matcher) == 1
    assert matcher.verdict("main.o", is_dir=False) is True
    assert matcher.verdict("main.c", is_dir=False) is None


@pytest.mark.unit
def test_blank_lines_and_comments_are_not_patterns() -> None:
    matcher = GitignoreMatcher.from_patterns(["", "   ", "# comment"])

    assert len(matcher) == 0


@pytest.mark.unit
def test_pattern_compilation_emits_no_deprecation_warning() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        compiled = compile_pattern("!build/*.o")

    assert compiled is not None
    negated, spec = compiled
    assert negated
    assert spec.match_file("build/main.o")

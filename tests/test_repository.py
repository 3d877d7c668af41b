"""Tests for GitRepository against throwaway repositories built with git."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from scmhook.exceptions import RepositoryError, RepositoryOpenError
from scmhook.schemas.scm import ZERO_ID
from scmhook.services.refs import find_previous_tag
from scmhook.services.repository import GitRepository
from scmhook.services.revwalk import RevisionRangeWalker

if TYPE_CHECKING:
    from tests.conftest import GitRepo


def test_open_outside_repository(tmp_path: Path) -> None:
    with pytest.raises(RepositoryOpenError):
        GitRepository.open(str(tmp_path / "missing"))


def test_open_and_guess_name(git_repo: GitRepo) -> None:
    git_repo.commit("Initial", {"README": "hello\n"})
    repository = GitRepository.open(str(git_repo.path))
    assert repository.bare is False
    assert repository.guessed_name == "widget"


def test_config_get(git_repo: GitRepo) -> None:
    git_repo.git("config", "scmhook.project", "Widget")
    repository = GitRepository.open(str(git_repo.path))
    assert repository.config_get("scmhook.project") == "Widget"
    assert repository.config_get("scmhook.missing") is None


def test_range_count_and_walk(git_repo: GitRepo) -> None:
    first = git_repo.commit("First", {"a.txt": "a\n"})
    git_repo.commit("Second", {"b.txt": "b\n"})
    third = git_repo.commit("Third\n\nWith a body", {"c.txt": "c\n"})
    repository = GitRepository.open(str(git_repo.path))

    walker = RevisionRangeWalker(repository, first, third)
    assert walker.count() == 2
    commits = list(walker.iter_commits())
    assert [commit.message for commit in commits] == ["Second", "Third\n\nWith a body"]
    assert commits[1].id == third
    assert commits[0].author.name == "Alice Example"
    assert commits[0].author.email == "alice@example.com"


def test_zero_old_id_walks_whole_history(git_repo: GitRepo) -> None:
    git_repo.commit("First", {"a.txt": "a\n"})
    head = git_repo.commit("Second", {"b.txt": "b\n"})
    repository = GitRepository.open(str(git_repo.path))

    assert repository.count_commits(ZERO_ID, head) == 2
    commits = list(repository.iter_commits(ZERO_ID, head))
    assert [commit.message for commit in commits] == ["First", "Second"]
    assert commits[0].parent_count == 0


def test_count_unknown_revision(git_repo: GitRepo) -> None:
    git_repo.commit("First", {"a.txt": "a\n"})
    repository = GitRepository.open(str(git_repo.path))
    with pytest.raises(RepositoryError):
        repository.count_commits(ZERO_ID, "f" * 40)


def test_changed_paths_root_and_regular_commits(git_repo: GitRepo) -> None:
    root = git_repo.commit("First", {"src/lib/main.c": "int main;\n", "src/lib/main.h": "x\n"})
    head = git_repo.commit("Second", {"src/lib/main.h": "y\n", "doc/notes.md": "notes\n"})
    repository = GitRepository.open(str(git_repo.path))
    first, second = repository.iter_commits(ZERO_ID, head)

    assert first.id == root
    assert sorted(repository.changed_paths(first)) == ["src/lib/main.c", "src/lib/main.h"]
    assert sorted(repository.changed_paths(second)) == ["doc/notes.md", "src/lib/main.h"]


def test_changed_paths_detects_renames(git_repo: GitRepo) -> None:
    content = "".join(f"line {i}\n" for i in range(50))
    git_repo.commit("First", {"src/old.c": content})
    git_repo.git("mv", "src/old.c", "src/new.c")
    head = git_repo.commit("Rename", {})
    repository = GitRepository.open(str(git_repo.path))
    (commit,) = repository.iter_commits(f"{head}^", head)

    assert repository.changed_paths(commit) == ["src/{old.c => new.c}"]


def test_changed_paths_without_rename_detection(git_repo: GitRepo) -> None:
    content = "".join(f"line {i}\n" for i in range(50))
    git_repo.commit("First", {"src/old.c": content})
    git_repo.git("mv", "src/old.c", "src/new.c")
    head = git_repo.commit("Rename", {})
    repository = GitRepository.open(str(git_repo.path), rename_threshold=None)
    (commit,) = repository.iter_commits(f"{head}^", head)

    assert sorted(repository.changed_paths(commit)) == ["src/new.c", "src/old.c"]


def test_previous_tag_lookup(git_repo: GitRepo) -> None:
    git_repo.commit("First", {"a.txt": "a\n"})
    git_repo.git("tag", "v1.0")
    git_repo.commit("Second", {"b.txt": "b\n"})
    git_repo.git("tag", "-a", "v1.1", "-m", "Release 1.1")
    head = git_repo.commit("Third", {"c.txt": "c\n"})
    git_repo.git("tag", "v2.0")
    repository = GitRepository.open(str(git_repo.path))

    assert find_previous_tag(repository, head, "v2.0") == "v1.1"


def test_previous_tag_on_root_commit(git_repo: GitRepo) -> None:
    root = git_repo.commit("First", {"a.txt": "a\n"})
    git_repo.git("tag", "v1.0")
    repository = GitRepository.open(str(git_repo.path))

    assert find_previous_tag(repository, root, "v1.0") is None

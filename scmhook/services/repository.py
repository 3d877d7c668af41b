"""Repository access through the ``git`` executable.

Only the handful of primitives the hook needs: ref resolution, range
counting and walking, per-commit changed paths with rename/copy detection,
tag listing and ancestry traversal. Long outputs are streamed so a walk can
stop early without reading the whole history.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from scmhook.exceptions import RepositoryError, RepositoryOpenError
from scmhook.schemas.scm import Commit, Identity, is_zero_id
from scmhook.services.paths import rename_display

_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%H%x00%P%x00%an%x00%ae%x00%B%x1e"


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str


class RepositoryAccess(Protocol):
    """What the range walker and the hook driver need from a repository."""

    def count_commits(self, old_id: str, new_id: str) -> int: ...

    def iter_commits(self, old_id: str, new_id: str, *, reverse: bool = True) -> Iterator[Commit]: ...

    def changed_paths(self, commit: Commit) -> list[str]: ...

    def tag_targets(self) -> dict[str, list[str]]: ...

    def iter_ancestors(self, start: str) -> Iterator[str]: ...


def _range_args(old_id: str, new_id: str) -> list[str]:
    if is_zero_id(old_id):
        return [new_id]
    return [new_id, f"^{old_id}"]


class GitRepository:
    """A local repository driven through ``git`` subprocesses."""

    def __init__(
        self,
        path: str,
        *,
        git_dir: str,
        bare: bool,
        rename_threshold: int | None = 50,
        copy_threshold: int | None = None,
        git: str = "git",
    ) -> None:
        self.path = path
        self.git_dir = git_dir
        self.bare = bare
        self.rename_threshold = rename_threshold
        self.copy_threshold = copy_threshold
        self._git_bin = git

    @classmethod
    def open(
        cls,
        path: str = ".",
        *,
        rename_threshold: int | None = 50,
        copy_threshold: int | None = None,
        git: str = "git",
    ) -> GitRepository:
        """Open the repository containing *path*.

        Raises:
            RepositoryOpenError: If *path* is not inside a git repository or
                git cannot be run.
        """
        try:
            res = _run([git, "rev-parse", "--absolute-git-dir", "--is-bare-repository"], cwd=path)
        except OSError as exc:
            raise RepositoryOpenError(f"cannot run git in {path}: {exc}") from exc
        if res.code != 0:
            raise RepositoryOpenError(res.stderr or f"{path} is not a git repository")
        git_dir, bare = res.stdout.splitlines()
        return cls(
            path,
            git_dir=git_dir,
            bare=bare == "true",
            rename_threshold=rename_threshold,
            copy_threshold=copy_threshold,
            git=git,
        )

    @property
    def guessed_name(self) -> str:
        """Repository name derived from its location on disk."""
        if self.bare:
            name = os.path.basename(self.git_dir.rstrip("/"))
        else:
            name = os.path.basename(os.path.dirname(self.git_dir.rstrip("/")))
        return name.removesuffix(".git") or name

    def _git(self, *args: str, check: bool = True) -> CmdResult:
        try:
            res = _run([self._git_bin, *args], cwd=self.path)
        except OSError as exc:
            raise RepositoryError(f"cannot run git: {exc}") from exc
        if check and res.code != 0:
            raise RepositoryError(res.stderr or f"git {args[0]} failed with code {res.code}")
        return res

    def _stream(self, args: list[str], separator: str) -> Iterator[str]:
        """Yield *separator*-terminated records from a git command as they arrive.

        Raises:
            RepositoryError: After the last complete record if git fails.
        """
        try:
            proc = subprocess.Popen(
                [self._git_bin, *args],
                cwd=self.path,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise RepositoryError(f"cannot run git: {exc}") from exc
        try:
            buffer = ""
            for chunk in iter(lambda: proc.stdout.read(8192), ""):
                buffer += chunk
                *records, buffer = buffer.split(separator)
                yield from records
            stderr = proc.stderr.read().strip()
            code = proc.wait()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stdout.close()
            proc.stderr.close()
        if code != 0:
            raise RepositoryError(stderr or f"git {args[0]} failed with code {code}")

    def config_get(self, key: str) -> str | None:
        """Return a git config value, or None when unset."""
        res = self._git("config", "--get", key, check=False)
        if res.code != 0:
            return None
        return res.stdout or None

    def resolve(self, ref: str) -> str:
        """Resolve *ref* to a full commit id."""
        return self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}").stdout

    def count_commits(self, old_id: str, new_id: str) -> int:
        res = self._git("rev-list", "--count", *_range_args(old_id, new_id))
        try:
            return int(res.stdout)
        except ValueError as exc:
            raise RepositoryError(f"unexpected rev-list output: {res.stdout!r}") from exc

    def iter_commits(self, old_id: str, new_id: str, *, reverse: bool = True) -> Iterator[Commit]:
        """Yield commits in (old, new], topologically, oldest first when *reverse*."""
        args = ["log", "--topo-order", f"--format={_LOG_FORMAT}"]
        if reverse:
            args.append("--reverse")
        args += _range_args(old_id, new_id)
        for record in self._stream(args, _RECORD_SEP):
            record = record.lstrip("\n")
            if not record:
                continue
            commit_id, parents, name, email, message = record.split(_FIELD_SEP, 4)
            yield Commit(
                id=commit_id,
                author=Identity(name=name, email=email or None),
                message=message.rstrip("\n"),
                parent_count=len(parents.split()),
            )

    def changed_paths(self, commit: Commit) -> list[str]:
        """Paths changed by *commit* against its first parent (or the empty tree)."""
        args = ["diff-tree", "-r", "-z", "--no-commit-id", "--name-status"]
        if self.rename_threshold is not None:
            args.append(f"-M{self.rename_threshold}%")
        if self.copy_threshold is not None:
            args.append(f"-C{self.copy_threshold}%")
        if commit.parent_count == 0:
            args += ["--root", commit.id]
        else:
            args += [f"{commit.id}^1", commit.id]

        tokens = self._git(*args).stdout.split(_FIELD_SEP)
        paths: list[str] = []
        i = 0
        while i < len(tokens) and tokens[i]:
            status = tokens[i]
            if status[0] in "RC":
                paths.append(rename_display(tokens[i + 1], tokens[i + 2]))
                i += 3
            else:
                paths.append(tokens[i + 1])
                i += 2
        return paths

    def tag_targets(self) -> dict[str, list[str]]:
        """Map commit ids to the names of the tags pointing at them.

        Annotated tags are registered under both the tag object and the
        commit it dereferences to.
        """
        res = self._git(
            "for-each-ref",
            "--format=%(objectname)%09%(*objectname)%09%(refname:strip=2)",
            "refs/tags",
        )
        targets: dict[str, list[str]] = {}
        for line in res.stdout.splitlines():
            object_id, peeled_id, name = line.split("\t", 2)
            for target in {object_id, peeled_id} - {""}:
                targets.setdefault(target, []).append(name)
        return targets

    def iter_ancestors(self, start: str) -> Iterator[str]:
        """Yield *start* and its ancestors in topological order."""
        for line in self._stream(["rev-list", "--topo-order", start], "\n"):
            if line:
                yield line


def _run(cmd: list[str], cwd: str | None = None) -> CmdResult:
    proc = subprocess.run(
        cmd,
        cwd=cwd,
        text=True,
        encoding="utf-8",
        errors="replace",
        capture_output=True,
        check=False,
    )
    return CmdResult(proc.returncode, proc.stdout.strip("\n"), proc.stderr.strip())

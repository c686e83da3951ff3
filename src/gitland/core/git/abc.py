"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls, making the
land engine testable without a real repository.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- FakeGit (tests/fakes/git.py): In-memory commit graph for tests

Conventions:
- Lookups that may find nothing return None.
- Operations the engine must be able to recover from (merge, rebase, reset,
  abort) return a CommandResult instead of raising.
- Network operations (fetch, push, p4) return the exit code of a command that
  ran attached to the user's terminal.
- Everything else raises RuntimeError on failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from gitland.core.models import BranchUpstream
from gitland.core.subprocess import CommandResult

# Hash of the tree with no entries; git always treats it as present.
EMPTY_TREE_HASH = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

# Identity used for the synthetic parent when landing into the empty state.
EMPTY_COMMIT_IDENTITY = "gitland <gitland@localhost> 0 +0000"


@dataclass(frozen=True)
class CommitIdentity:
    """Author of a commit, as needed to re-author a landed commit."""

    name: str
    email: str
    date: str

    @property
    def author(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True)
class RawCommit:
    """A commit object with explicit control over its parents.

    extra_headers holds single-line headers other than tree/parent/author/committer
    (for example "encoding"). Signatures are not preserved since rewriting a
    commit invalidates them.
    """

    tree: str
    parents: tuple[str, ...]
    author: str
    committer: str
    message: str
    extra_headers: tuple[tuple[str, str], ...] = ()

    @staticmethod
    def new_empty() -> "RawCommit":
        return RawCommit(
            tree=EMPTY_TREE_HASH,
            parents=(),
            author=EMPTY_COMMIT_IDENTITY,
            committer=EMPTY_COMMIT_IDENTITY,
            message="",
        )

    def with_parents(self, parents: tuple[str, ...]) -> "RawCommit":
        return RawCommit(
            tree=self.tree,
            parents=parents,
            author=self.author,
            committer=self.committer,
            message=self.message,
            extra_headers=self.extra_headers,
        )

    def serialize(self) -> str:
        lines = [f"tree {self.tree}"]
        lines.extend(f"parent {parent}" for parent in self.parents)
        lines.append(f"author {self.author}")
        lines.append(f"committer {self.committer}")
        lines.extend(f"{key} {value}" for key, value in self.extra_headers)
        return "\n".join(lines) + "\n\n" + self.message

    @staticmethod
    def parse(text: str) -> "RawCommit":
        header, _, message = text.partition("\n\n")
        tree = ""
        parents: list[str] = []
        author = ""
        committer = ""
        extra: list[tuple[str, str]] = []
        skipping_continuation = False
        for line in header.splitlines():
            if line.startswith(" "):
                # Continuation of a multi-line header (gpgsig, mergetag).
                if not skipping_continuation:
                    raise ValueError(f"Unexpected continuation line in commit header: {line!r}")
                continue
            skipping_continuation = False
            key, _, value = line.partition(" ")
            if key == "tree":
                tree = value
            elif key == "parent":
                parents.append(value)
            elif key == "author":
                author = value
            elif key == "committer":
                committer = value
            elif key in ("gpgsig", "gpgsig-sha256", "mergetag"):
                skipping_continuation = True
            else:
                extra.append((key, value))
        if not tree:
            raise ValueError("Commit object has no tree header")
        return RawCommit(
            tree=tree,
            parents=tuple(parents),
            author=author,
            committer=committer,
            message=message,
            extra_headers=tuple(extra),
        )


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for git operations used by the land engine.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    # Repository queries

    @abstractmethod
    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the working copy containing cwd."""
        ...

    @abstractmethod
    def get_current_branch(self, repo_root: Path) -> str | None:
        """Get the checked-out branch, or None when HEAD is detached."""
        ...

    @abstractmethod
    def get_head_commit(self, repo_root: Path) -> str | None:
        """Get the commit HEAD points at, or None in an unborn repository."""
        ...

    @abstractmethod
    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        """Resolve a ref or commit-ish to a full commit hash.

        Returns:
            The commit hash, or None if the ref does not exist locally.
        """
        ...

    @abstractmethod
    def list_refs(self, repo_root: Path, commit: str, *, contains: bool) -> list[str]:
        """List refs related to a commit as raw "<refname> <objectname>" lines.

        Args:
            repo_root: Path to the repository root
            commit: Commit to query
            contains: True for refs whose history contains the commit,
                False for refs pointing exactly at it
        """
        ...

    @abstractmethod
    def log_commits(self, repo_root: Path, commit: str, *, exclude: str | None) -> str:
        """List commits reachable from commit but not from exclude.

        Output is one line per commit, newest first, each formatted as
        "<hash>\\0<space separated parents>\\0<summary>\\0".
        """
        ...

    @abstractmethod
    def get_commit_message(self, repo_root: Path, commit: str) -> str:
        """Get the full message of a commit."""
        ...

    @abstractmethod
    def get_commit_identity(self, repo_root: Path, commit: str) -> CommitIdentity:
        """Get the author name, email and RFC 2822 author date of a commit."""
        ...

    @abstractmethod
    def diff(self, repo_root: Path, from_commit: str, to_commit: str) -> str:
        """Get the textual diff between two commits (empty when trees match)."""
        ...

    @abstractmethod
    def get_merge_base(self, repo_root: Path, first: str, second: str) -> str | None:
        """Get the best common ancestor of two commits, or None if unrelated."""
        ...

    @abstractmethod
    def read_raw_commit(self, repo_root: Path, commit: str) -> RawCommit:
        """Read a commit object."""
        ...

    @abstractmethod
    def write_raw_commit(self, repo_root: Path, raw_commit: RawCommit) -> str:
        """Write a commit object and return its hash. No refs are moved."""
        ...

    # Remotes and tracking configuration

    @abstractmethod
    def get_branch_upstream(self, repo_root: Path, branch: str) -> BranchUpstream | None:
        """Get the configured upstream of a local branch, if any."""
        ...

    @abstractmethod
    def is_pushable_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote with a push URL exists."""
        ...

    @abstractmethod
    def is_fetchable_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote with a fetch URL exists."""
        ...

    @abstractmethod
    def is_perforce_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote is the git-p4 bridge remote."""
        ...

    # Working copy mutations

    @abstractmethod
    def checkout(self, repo_root: Path, ref: str) -> None:
        """Check out a branch, or a commit as a detached HEAD."""
        ...

    @abstractmethod
    def update_branch(self, repo_root: Path, branch: str, commit: str) -> None:
        """Force a local branch to point at a commit (branch -f)."""
        ...

    @abstractmethod
    def delete_branch(self, repo_root: Path, branch: str) -> None:
        """Force-delete a local branch (branch -D)."""
        ...

    @abstractmethod
    def merge(
        self,
        repo_root: Path,
        commit: str,
        *,
        squash: bool,
        allow_unrelated_histories: bool,
    ) -> CommandResult:
        """Merge a commit into HEAD without committing.

        Args:
            repo_root: Path to the repository root
            commit: Commit to merge
            squash: True for "--ff --squash", False for "--no-ff"
            allow_unrelated_histories: Permit merging histories with no common ancestor
        """
        ...

    @abstractmethod
    def abort_merge(self, repo_root: Path) -> CommandResult:
        """Abort an in-progress merge."""
        ...

    @abstractmethod
    def reset_hard(self, repo_root: Path, ref: str) -> CommandResult:
        """Hard-reset HEAD, index and working tree to ref."""
        ...

    @abstractmethod
    def commit(self, repo_root: Path, *, author: str, date: str, message: str) -> None:
        """Commit staged changes with an explicit author and date.

        The message is supplied on stdin so it is used verbatim.
        """
        ...

    @abstractmethod
    def rebase_onto(
        self,
        repo_root: Path,
        *,
        new_base: str,
        upstream: str,
        branch: str,
    ) -> CommandResult:
        """Rebase the commits of branch after upstream onto new_base."""
        ...

    @abstractmethod
    def abort_rebase(self, repo_root: Path) -> CommandResult:
        """Abort an in-progress rebase."""
        ...

    # Uncommitted work

    @abstractmethod
    def has_uncommitted_changes(self, repo_root: Path) -> bool:
        """Check for staged, modified or untracked files."""
        ...

    @abstractmethod
    def stash_push(self, repo_root: Path, message: str) -> str:
        """Stash all uncommitted changes (including untracked files).

        Returns:
            Hash of the stash commit.
        """
        ...

    @abstractmethod
    def stash_pop(self, repo_root: Path, stash_commit: str) -> CommandResult:
        """Apply the stash entry with the given hash and drop it."""
        ...

    # Network operations (interactive passthrough)

    @abstractmethod
    def fetch(self, repo_root: Path, remote: str, ref: str) -> int:
        """Fetch one ref from a remote. Returns the exit code."""
        ...

    @abstractmethod
    def push(self, repo_root: Path, remote: str, refspecs: list[str]) -> int:
        """Push refspecs to a remote in one invocation. Returns the exit code."""
        ...

    @abstractmethod
    def p4_sync(self, repo_root: Path, branch: str) -> int:
        """Synchronize a git-p4 branch from Perforce. Returns the exit code."""
        ...

    @abstractmethod
    def p4_submit(self, repo_root: Path, commit: str) -> int:
        """Submit a commit to Perforce, quitting on conflict. Returns the exit code."""
        ...

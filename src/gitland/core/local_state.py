"""Snapshot of the working copy taken before a land operation mutates it."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from gitland.core.feedback import Feedback
from gitland.core.git.abc import Git
from gitland.core.models import UpstreamPath, display_hash
from gitland.core.upstream import get_path_to_upstream

logger = logging.getLogger(__name__)

STASH_MESSAGE = "gitland: saved local state before landing"


class LocalState(ABC):
    """Pre-operation working copy state.

    The pipeline ends every run by calling exactly one of restore() (put the
    user back where they started) or discard() (keep the new location, but
    bring back any stashed edits).
    """

    @property
    @abstractmethod
    def local_ref(self) -> str | None:
        """Branch checked out when the operation started, if any."""

    @property
    @abstractmethod
    def local_path(self) -> UpstreamPath | None:
        """Upstream path of local_ref, if there was a starting branch."""

    @abstractmethod
    def restore(self) -> None:
        """Return to the starting ref and re-apply stashed edits."""

    @abstractmethod
    def discard(self) -> None:
        """Stop tracking the starting ref; re-apply stashed edits in place."""

    @abstractmethod
    def restore_commands(self) -> list[str]:
        """Commands that would undo the operation's effect on the working copy."""


class GitLocalState(LocalState):
    """LocalState backed by a git branch/commit and an optional stash entry."""

    def __init__(
        self,
        git: Git,
        repo_root: Path,
        feedback: Feedback,
        *,
        local_ref: str | None,
        local_commit: str | None,
        local_path: UpstreamPath | None,
        stash_commit: str | None,
    ) -> None:
        self._git = git
        self._repo_root = repo_root
        self._feedback = feedback
        self._local_ref = local_ref
        self._local_commit = local_commit
        self._local_path = local_path
        self._stash_commit = stash_commit
        self._finished = False

    @staticmethod
    def save(git: Git, repo_root: Path, feedback: Feedback) -> "GitLocalState":
        """Record the current branch (or commit) and stash uncommitted edits."""
        local_ref = git.get_current_branch(repo_root)
        local_commit = git.get_head_commit(repo_root)
        local_path = None
        if local_ref is not None:
            local_path = get_path_to_upstream(git, repo_root, local_ref)

        stash_commit = None
        if git.has_uncommitted_changes(repo_root):
            stash_commit = git.stash_push(repo_root, STASH_MESSAGE)
            feedback.status(
                "SAVE STATE",
                f'Saved uncommitted changes to stash "{display_hash(stash_commit)}".',
            )

        logger.debug(
            "Saved local state: ref=%s commit=%s stash=%s", local_ref, local_commit, stash_commit
        )
        return GitLocalState(
            git,
            repo_root,
            feedback,
            local_ref=local_ref,
            local_commit=local_commit,
            local_path=local_path,
            stash_commit=stash_commit,
        )

    @property
    def local_ref(self) -> str | None:
        return self._local_ref

    @property
    def local_path(self) -> UpstreamPath | None:
        return self._local_path

    def restore(self) -> None:
        if self._finished:
            return
        self._finished = True

        try:
            target = self._restore_target()
            if target is not None and self._local_ref not in (None, target):
                self._feedback.warning(
                    "RESTORE",
                    f'Branch "{self._local_ref}" was deleted after landing; '
                    f"checking out {display_hash(target)} instead.",
                )
            if target is not None:
                # Abandon anything half-integrated before switching away.
                self._git.reset_hard(self._repo_root, "HEAD")
                self._checkout_start(target)
        finally:
            self._pop_stash()

    def discard(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._pop_stash()

    def restore_commands(self) -> list[str]:
        commands: list[str] = []
        target = self._restore_target()
        if target is not None:
            commands.append(f"git checkout {target} --")
        if self._stash_commit is not None:
            commands.append(f"git stash apply {self._stash_commit}")
        return commands

    def _pop_stash(self) -> None:
        if self._stash_commit is None:
            return
        result = self._git.stash_pop(self._repo_root, self._stash_commit)
        if not result.ok:
            self._feedback.warning(
                "STASH",
                "Unable to re-apply saved uncommitted changes. To apply them manually, run:",
            )
            self._feedback.command(f"git stash apply {self._stash_commit}")

    def _restore_target(self) -> str | None:
        if self._local_ref is None:
            return self._local_commit
        if self._git.resolve_commit(self._repo_root, f"refs/heads/{self._local_ref}") is not None:
            return self._local_ref
        # Cleanup deleted the starting branch after it landed.
        return self._local_commit

    def _checkout_start(self, target: str) -> None:
        try:
            self._git.checkout(self._repo_root, target)
        except RuntimeError:
            self._feedback.warning(
                "RESTORE",
                "Unable to return to the starting location. To return manually, run:",
            )
            self._feedback.command(f"git checkout {target} --")
            raise

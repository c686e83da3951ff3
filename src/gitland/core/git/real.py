"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

from pathlib import Path

from gitland.core.git.abc import CommitIdentity, Git, RawCommit
from gitland.core.models import BranchUpstream
from gitland.core.subprocess import (
    CommandResult,
    run_passthrough,
    run_subprocess_for_result,
    run_subprocess_with_context,
)

# ============================================================================
# Production Implementation
# ============================================================================


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the working copy."""
        result = run_subprocess_for_result(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
        if not result.ok:
            return None
        return Path(result.stdout.strip())

    def get_current_branch(self, repo_root: Path) -> str | None:
        """Get the currently checked-out branch."""
        result = run_subprocess_for_result(
            ["git", "symbolic-ref", "--quiet", "--short", "HEAD"], cwd=repo_root
        )
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def get_head_commit(self, repo_root: Path) -> str | None:
        """Get the commit HEAD points at."""
        return self.resolve_commit(repo_root, "HEAD")

    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        """Resolve a ref to a commit hash."""
        result = run_subprocess_for_result(
            ["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=repo_root
        )
        if not result.ok:
            return None
        return result.stdout.strip()

    def list_refs(self, repo_root: Path, commit: str, *, contains: bool) -> list[str]:
        """List refs pointing at or containing a commit."""
        mode = "--contains" if contains else "--points-at"
        result = run_subprocess_with_context(
            ["git", "for-each-ref", mode, commit, "--format", "%(refname) %(objectname)", "--"],
            operation_context=f"list refs related to {commit}",
            cwd=repo_root,
        )
        return result.stdout.splitlines()

    def log_commits(self, repo_root: Path, commit: str, *, exclude: str | None) -> str:
        """List commits reachable from commit but not from exclude."""
        cmd = ["git", "log", commit]
        if exclude is not None:
            cmd.extend(["--not", exclude])
        cmd.append("--format=%H%x00%P%x00%s%x00")
        result = run_subprocess_with_context(
            cmd,
            operation_context=f"list commits reachable from {commit}",
            cwd=repo_root,
        )
        return result.stdout

    def get_commit_message(self, repo_root: Path, commit: str) -> str:
        """Get the full message of a commit."""
        result = run_subprocess_with_context(
            ["git", "log", "-n1", "--format=%B", commit, "--"],
            operation_context=f"read message of {commit}",
            cwd=repo_root,
        )
        return result.stdout.rstrip("\n") + "\n"

    def get_commit_identity(self, repo_root: Path, commit: str) -> CommitIdentity:
        """Get author identity and date of a commit."""
        result = run_subprocess_with_context(
            ["git", "log", "-n1", "--format=%aD%n%an%n%ae", commit, "--"],
            operation_context=f"read author of {commit}",
            cwd=repo_root,
        )
        date, name, email = result.stdout.strip().split("\n", 2)
        return CommitIdentity(name=name, email=email, date=date)

    def diff(self, repo_root: Path, from_commit: str, to_commit: str) -> str:
        """Get the textual diff between two commits."""
        result = run_subprocess_with_context(
            ["git", "diff", "--no-ext-diff", f"{from_commit}..{to_commit}", "--"],
            operation_context=f"diff {from_commit}..{to_commit}",
            cwd=repo_root,
        )
        return result.stdout

    def get_merge_base(self, repo_root: Path, first: str, second: str) -> str | None:
        """Get the best common ancestor of two commits."""
        result = run_subprocess_for_result(["git", "merge-base", first, second], cwd=repo_root)
        if not result.ok:
            return None
        return result.stdout.strip()

    def read_raw_commit(self, repo_root: Path, commit: str) -> RawCommit:
        """Read a commit object."""
        result = run_subprocess_with_context(
            ["git", "cat-file", "commit", commit],
            operation_context=f"read commit object {commit}",
            cwd=repo_root,
        )
        return RawCommit.parse(result.stdout)

    def write_raw_commit(self, repo_root: Path, raw_commit: RawCommit) -> str:
        """Write a commit object."""
        result = run_subprocess_with_context(
            ["git", "hash-object", "-t", "commit", "-w", "--stdin"],
            operation_context="write commit object",
            cwd=repo_root,
            input=raw_commit.serialize(),
        )
        return result.stdout.strip()

    def get_branch_upstream(self, repo_root: Path, branch: str) -> BranchUpstream | None:
        """Get the configured upstream of a branch."""
        remote = self._get_config(repo_root, f"branch.{branch}.remote")
        merge_ref = self._get_config(repo_root, f"branch.{branch}.merge")
        if remote is None or merge_ref is None:
            return None
        return BranchUpstream(remote=remote, merge_ref=merge_ref)

    def is_pushable_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote has a push URL."""
        result = run_subprocess_for_result(
            ["git", "remote", "get-url", "--push", "--", remote], cwd=repo_root
        )
        return result.ok

    def is_fetchable_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether a remote has a fetch URL."""
        result = run_subprocess_for_result(
            ["git", "remote", "get-url", "--", remote], cwd=repo_root
        )
        return result.ok

    def is_perforce_remote(self, repo_root: Path, remote: str) -> bool:
        """Check whether git-p4 has populated refs for this remote."""
        if remote != "p4":
            return False
        result = run_subprocess_for_result(
            ["git", "for-each-ref", "--count=1", "--format=%(refname)", "refs/remotes/p4/"],
            cwd=repo_root,
        )
        return result.ok and bool(result.stdout.strip())

    def checkout(self, repo_root: Path, ref: str) -> None:
        """Check out a branch or commit."""
        run_subprocess_with_context(
            ["git", "checkout", ref, "--"],
            operation_context=f"checkout '{ref}'",
            cwd=repo_root,
        )

    def update_branch(self, repo_root: Path, branch: str, commit: str) -> None:
        """Force a branch to a commit."""
        run_subprocess_with_context(
            ["git", "branch", "-f", branch, commit, "--"],
            operation_context=f"update branch '{branch}' to {commit}",
            cwd=repo_root,
        )

    def delete_branch(self, repo_root: Path, branch: str) -> None:
        """Force-delete a branch."""
        run_subprocess_with_context(
            ["git", "branch", "-D", "--", branch],
            operation_context=f"delete branch '{branch}'",
            cwd=repo_root,
        )

    def merge(
        self,
        repo_root: Path,
        commit: str,
        *,
        squash: bool,
        allow_unrelated_histories: bool,
    ) -> CommandResult:
        """Merge a commit into HEAD without committing."""
        cmd = ["git", "merge", "--no-stat", "--no-commit"]
        if allow_unrelated_histories:
            cmd.append("--allow-unrelated-histories")
        if squash:
            # "--ff" overrides any "merge.ff" setting in user configuration.
            cmd.extend(["--ff", "--squash"])
        else:
            cmd.append("--no-ff")
        cmd.extend(["--", commit])
        return run_subprocess_for_result(cmd, cwd=repo_root)

    def abort_merge(self, repo_root: Path) -> CommandResult:
        """Abort an in-progress merge."""
        return run_subprocess_for_result(["git", "merge", "--abort"], cwd=repo_root)

    def reset_hard(self, repo_root: Path, ref: str) -> CommandResult:
        """Hard-reset to ref."""
        return run_subprocess_for_result(["git", "reset", "--hard", ref, "--"], cwd=repo_root)

    def commit(self, repo_root: Path, *, author: str, date: str, message: str) -> None:
        """Commit staged changes with explicit author and date."""
        run_subprocess_with_context(
            ["git", "commit", "--author", author, "--date", date, "-F", "-", "--"],
            operation_context="commit landed changes",
            cwd=repo_root,
            input=message,
        )

    def rebase_onto(
        self,
        repo_root: Path,
        *,
        new_base: str,
        upstream: str,
        branch: str,
    ) -> CommandResult:
        """Rebase branch onto new_base."""
        return run_subprocess_for_result(
            ["git", "rebase", "--onto", new_base, "--", upstream, branch], cwd=repo_root
        )

    def abort_rebase(self, repo_root: Path) -> CommandResult:
        """Abort an in-progress rebase."""
        return run_subprocess_for_result(["git", "rebase", "--abort"], cwd=repo_root)

    def has_uncommitted_changes(self, repo_root: Path) -> bool:
        """Check for uncommitted changes."""
        result = run_subprocess_with_context(
            ["git", "status", "--porcelain"],
            operation_context="check working copy status",
            cwd=repo_root,
        )
        return bool(result.stdout.strip())

    def stash_push(self, repo_root: Path, message: str) -> str:
        """Stash uncommitted changes and return the stash commit."""
        run_subprocess_with_context(
            ["git", "stash", "push", "--include-untracked", "--message", message],
            operation_context="stash uncommitted changes",
            cwd=repo_root,
        )
        result = run_subprocess_with_context(
            ["git", "rev-parse", "--verify", "refs/stash"],
            operation_context="read stash commit",
            cwd=repo_root,
        )
        return result.stdout.strip()

    def stash_pop(self, repo_root: Path, stash_commit: str) -> CommandResult:
        """Pop the stash entry with the given hash."""
        listing = run_subprocess_with_context(
            ["git", "stash", "list", "--format=%H"],
            operation_context="list stash entries",
            cwd=repo_root,
        )
        for index, entry in enumerate(listing.stdout.splitlines()):
            if entry.strip() == stash_commit:
                return run_subprocess_for_result(
                    ["git", "stash", "pop", f"stash@{{{index}}}"], cwd=repo_root
                )
        # Entry was dropped by hand; applying the commit still restores the edits.
        return run_subprocess_for_result(["git", "stash", "apply", stash_commit], cwd=repo_root)

    def fetch(self, repo_root: Path, remote: str, ref: str) -> int:
        """Fetch a ref from a remote."""
        return run_passthrough(
            ["git", "fetch", "--no-tags", "--quiet", "--", remote, ref], cwd=repo_root
        )

    def push(self, repo_root: Path, remote: str, refspecs: list[str]) -> int:
        """Push refspecs to a remote."""
        return run_passthrough(["git", "push", "--", remote, *refspecs], cwd=repo_root)

    def p4_sync(self, repo_root: Path, branch: str) -> int:
        """Synchronize a git-p4 branch."""
        return run_passthrough(
            ["git", "p4", "sync", "--silent", "--branch", branch, "--"], cwd=repo_root
        )

    def p4_submit(self, repo_root: Path, commit: str) -> int:
        """Submit a commit to Perforce."""
        return run_passthrough(
            [
                "git",
                # The message was finalized before landing; skip the editor and
                # its confirmation prompt.
                "-c",
                "git-p4.skipSubmitEdit=true",
                "-c",
                "git-p4.skipSubmitEditCheck=true",
                "p4",
                "submit",
                "--disable-rebase",
                "-M",
                "--conflict=quit",
                "--commit",
                commit,
                "--",
            ],
            cwd=repo_root,
        )

    def _get_config(self, repo_root: Path, key: str) -> str | None:
        result = run_subprocess_for_result(["git", "config", "--get", key], cwd=repo_root)
        if not result.ok:
            return None
        return result.stdout.strip()

"""Integrate a commit set into the target by squash or merge."""

import logging
from dataclasses import dataclass

from gitland.core.engine.context import EngineContext
from gitland.core.errors import ConflictError, NoOpError
from gitland.core.git.abc import RawCommit
from gitland.core.models import CommitSet, LandCommit, ResolvedSymbol, display_hash
from gitland.core.subprocess import CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollbackReport:
    """Outcome of undoing a failed integration attempt."""

    abort: CommandResult
    reset: CommandResult

    @property
    def clean(self) -> bool:
        return self.reset.ok


def execute_merge(ctx: EngineContext, commit_set: CommitSet, into_commit: str | None) -> str:
    """Integrate commit_set on top of into_commit and return the new commit.

    When into_commit is None the set lands into the empty state: the merge is
    performed against a synthetic empty root commit, and that parent is
    removed from the result afterward.

    Raises:
        NoOpError: The set's newest commit has the same tree as the target.
        ConflictError: The integration did not apply cleanly. The working copy
            has been rolled back.
    """
    git = ctx.git
    repo_root = ctx.repo_root
    is_empty = into_commit is None

    if into_commit is None:
        into_commit = git.write_raw_commit(repo_root, RawCommit.new_empty())
        logger.debug("Wrote synthetic empty parent %s", into_commit)

    max_commit = commit_set.newest
    source_commit = max_commit.hash

    changes = git.diff(repo_root, into_commit, source_commit)
    if not changes.strip():
        raise NoOpError(
            f'Merging local "{display_hash(source_commit)}" into '
            f'"{display_hash(into_commit)}" produces an empty diff. This usually means '
            "these changes have already landed."
        )

    git.checkout(repo_root, into_commit)

    ctx.feedback.status(
        "MERGING", f"{display_hash(source_commit)} {max_commit.display_summary}"
    )

    result = git.merge(
        repo_root,
        source_commit,
        squash=ctx.state.is_squash,
        allow_unrelated_histories=is_empty,
    )
    if not result.ok:
        logger.debug("Merge failed: %s", result.stderr.strip())
        report = rollback_failed_merge(ctx)
        if not report.clean:
            ctx.feedback.warning(
                "ROLLBACK",
                "Unable to reset the working copy after the failed merge: "
                f"{report.reset.stderr.strip()}",
            )
        raise ConflictError(describe_conflict(max_commit, into_commit))

    identity = git.get_commit_identity(repo_root, source_commit)
    git.commit(repo_root, author=identity.author, date=identity.date, message=commit_set.message)

    new_cursor = git.get_head_commit(repo_root)
    if new_cursor is None:
        raise RuntimeError("HEAD does not resolve after committing landed changes")

    if is_empty:
        # Same commit as HEAD, minus the synthetic empty parent.
        raw_commit = git.read_raw_commit(repo_root, new_cursor)
        if ctx.state.is_squash:
            parents: tuple[str, ...] = ()
        else:
            parents = (source_commit,)
        new_cursor = git.write_raw_commit(repo_root, raw_commit.with_parents(parents))
        git.checkout(repo_root, new_cursor)

    return new_cursor


def rollback_failed_merge(ctx: EngineContext) -> RollbackReport:
    """Abort the attempted merge and hard-reset the working copy to HEAD.

    A squash merge leaves no merge in progress, so a failed abort is expected
    and only the reset result decides whether the rollback was clean.
    """
    abort = ctx.git.abort_merge(ctx.repo_root)
    reset = ctx.git.reset_hard(ctx.repo_root, "HEAD")
    return RollbackReport(abort=abort, reset=reset)


def describe_conflict(commit: LandCommit, into_commit: str) -> str:
    """Explain which commit failed to merge, naming the symbols that reached it."""
    source = display_hash(commit.hash)
    into = display_hash(into_commit)
    advice = "Merge or rebase local changes so they can merge cleanly."

    if commit.direct_symbols:
        return (
            f'Local commit "{source}" ({_display_symbols(commit.direct_symbols)}) does not '
            f'merge cleanly into "{into}". {advice}'
        )
    if commit.indirect_symbols:
        return (
            f'Local commit "{source}" (reachable from: '
            f"{_display_symbols(commit.indirect_symbols)}) does not merge cleanly into "
            f'"{into}". {advice}'
        )
    return f'Local commit "{source}" does not merge cleanly into "{into}". {advice}'


def _display_symbols(symbols: list[ResolvedSymbol]) -> str:
    return ", ".join(f'"{symbol.raw}"' for symbol in symbols)

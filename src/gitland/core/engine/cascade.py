"""Rebase branches built on landed commits, and delete branches that fully landed."""

import logging
import re
import shlex

from gitland.core.engine.context import EngineContext
from gitland.core.errors import ConflictError, InternalConsistencyError
from gitland.core.models import CommitSet, display_hash

logger = logging.getLogger(__name__)

_BRANCH_REF_PREFIX = "refs/heads/"


def natural_sort_key(name: str) -> list[int | str]:
    """Case-insensitive key that orders "feature2" before "feature10"."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def get_branches_for_commits(
    ctx: EngineContext, hashes: list[str], *, contains: bool
) -> dict[str, str]:
    """Map local branch names to their heads for branches related to the commits.

    Args:
        ctx: Engine context
        hashes: Commits to query
        contains: True to find branches whose history contains a commit, False
            to find branches pointing exactly at it

    Returns:
        Branch name to head hash, in natural case-insensitive name order.

    Raises:
        InternalConsistencyError: If git returns a line that is not "<ref> <hash>".
    """
    result: dict[str, str] = {}
    for commit in hashes:
        for line in ctx.git.list_refs(ctx.repo_root, commit, contains=contains):
            if not line:
                continue

            parts = line.split(" ", 1)
            if len(parts) != 2 or not parts[0] or not parts[1]:
                raise InternalConsistencyError(f'Failed to parse ref listing line "{line}".')

            ref_name, ref_hash = parts
            if not ref_name.startswith(_BRANCH_REF_PREFIX):
                continue
            result[ref_name.removeprefix(_BRANCH_REF_PREFIX)] = ref_hash.strip()

    return {name: result[name] for name in sorted(result, key=natural_sort_key)}


def cascade_state(
    ctx: EngineContext,
    commit_set: CommitSet,
    into_commit: str,
    *,
    landed_heads: frozenset[str] = frozenset(),
) -> None:
    """Move branches built on top of a squashed set onto the landed commit.

    Merge landings keep the original commits in history, so this only applies
    to the squash strategy. Branches pointing exactly at the set's newest
    commit, or at the newest commit of any other set landed in the same
    publish (landed_heads), are left for cleanup and reconciliation.

    Raises:
        ConflictError: A rebase did not apply cleanly. The rebase is aborted
            first, leaving that branch where it was.
    """
    if not ctx.state.is_squash:
        return

    old_commit = commit_set.newest.hash
    branch_map = get_branches_for_commits(ctx, [old_commit], contains=True)

    rebased = False
    for branch_name, branch_head in branch_map.items():
        if branch_head == old_commit or branch_head in landed_heads:
            continue

        ctx.feedback.status("CASCADE", f'Rebasing "{branch_name}" onto landed state...')
        result = ctx.git.rebase_onto(
            ctx.repo_root, new_base=into_commit, upstream=old_commit, branch=branch_name
        )
        if result.ok:
            rebased = True
            continue

        logger.debug("Rebase of %s failed: %s", branch_name, result.stderr.strip())
        abort = ctx.git.abort_rebase(ctx.repo_root)
        if not abort.ok:
            ctx.feedback.warning(
                "CASCADE", f"Unable to abort the failed rebase: {abort.stderr.strip()}"
            )
        rebase_command = shlex.join(
            ["git", "rebase", "--onto", into_commit, old_commit, branch_name]
        )
        raise ConflictError(
            f'Local branch "{branch_name}" could not be rebased onto the landed state '
            f'"{display_hash(into_commit)}"; it was left unchanged. The changes have been '
            f"published. Resolve the conflict by running: {rebase_command}"
        )

    if rebased:
        # Rebase leaves the last rebased branch checked out; detach so later
        # steps can force-update any branch.
        ctx.git.checkout(ctx.repo_root, into_commit)


def prune_branches(ctx: EngineContext, commit_sets: list[CommitSet]) -> None:
    """Delete branches pointing at landed commits, printing how to recover each."""
    old_commits = [commit_set.newest.hash for commit_set in commit_sets]
    branch_map = get_branches_for_commits(ctx, old_commits, contains=False)

    for branch_name, branch_hash in branch_map.items():
        # Re-validate immediately before the destructive step.
        current = ctx.git.resolve_commit(ctx.repo_root, _BRANCH_REF_PREFIX + branch_name)
        if current != branch_hash:
            logger.debug("Branch %s moved to %s, not deleting", branch_name, current)
            continue

        recovery_command = shlex.join(
            ["git", "checkout", "-b", branch_name, display_hash(branch_hash)]
        )
        ctx.feedback.status(
            "CLEANUP", f'Destroying branch "{branch_name}". To recover, run:'
        )
        ctx.feedback.command(recovery_command)

        ctx.git.delete_branch(ctx.repo_root, branch_name)
        ctx.state.destroyed_branches.add(branch_name)

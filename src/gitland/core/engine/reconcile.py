"""Put the user on the best local branch after changes have been published.

Local branches may share names with remote branches without tracking them,
so only branches whose tracking path leads to what was just published are
updated. Everything else is left exactly as it was.
"""

import logging

from gitland.core.engine.context import EngineContext
from gitland.core.local_state import LocalState
from gitland.core.upstream import get_path_to_upstream

logger = logging.getLogger(__name__)


def is_ancestor_of(ctx: EngineContext, branch: str, commit: str) -> bool:
    """True when branch has no commits that commit does not contain."""
    merge_base = ctx.git.get_merge_base(ctx.repo_root, branch, commit)
    branch_hash = ctx.git.resolve_commit(ctx.repo_root, branch)
    return merge_base is not None and merge_base == branch_hash


def collect_update_branches(ctx: EngineContext, local_state: LocalState) -> list[str]:
    """Candidate branches to update, in preference order.

    Candidates are the starting branch, the local branches along its
    tracking path, the into ref and every onto ref. Destroyed and
    nonexistent branches are dropped.
    """
    candidates: list[str] = []

    if local_state.local_ref is not None:
        candidates.append(local_state.local_ref)

    if local_state.local_path is not None:
        candidates.extend(local_state.local_path.local_branches)

    if not ctx.state.into_empty and not ctx.state.into_local and ctx.state.into_ref is not None:
        candidates.append(ctx.state.into_ref)

    candidates.extend(ctx.state.onto_refs)

    update_branches: list[str] = []
    for branch in dict.fromkeys(candidates):
        if branch in ctx.state.destroyed_branches:
            continue
        if ctx.git.resolve_commit(ctx.repo_root, f"refs/heads/{branch}") is None:
            continue
        update_branches.append(branch)

    logger.debug("Update candidates: %s", update_branches)
    return update_branches


def reconcile_local_state(ctx: EngineContext, into_commit: str, local_state: LocalState) -> None:
    """Update connected local branches to into_commit and choose where to end up."""
    update_branches = collect_update_branches(ctx, local_state)

    if ctx.state.is_bridge:
        _reconcile_bridge(ctx, into_commit, local_state, update_branches)
        return

    onto_remote = ctx.state.require_onto_remote()
    onto_refs = set(ctx.state.onto_refs)

    pull_branches: list[str] = []
    for update_branch in update_branches:
        update_path = get_path_to_upstream(ctx.git, ctx.repo_root, update_branch)

        if update_path.cycle is not None:
            ctx.feedback.warning(
                "LOCAL CYCLE",
                f'Local branch "{update_branch}" tracks an upstream but following it leads '
                "to a local cycle, ignoring branch.",
            )
            continue

        if not update_path.is_connected_to_remote:
            continue

        if update_path.remote_name != onto_remote:
            continue

        if update_path.remote_branch not in onto_refs:
            continue

        # Most-desirable path between a local branch and a published upstream.
        pull_branches = list(update_path.local_branches)
        break

    # Update from the branch closest to the upstream downward.
    pull_branches.reverse()

    local_ref = local_state.local_ref
    if local_ref is not None and local_ref in update_branches and local_ref not in pull_branches:
        ctx.feedback.status(
            "RETURN", f'Returning to original branch "{local_ref}" in original state.'
        )
        local_state.restore()
        return

    dst_branch = None
    for pull_branch in pull_branches:
        if not is_ancestor_of(ctx, pull_branch, into_commit):
            ctx.feedback.status(
                "LOCAL CHANGES",
                f'Local branch "{pull_branch}" has unpublished changes, ending updates.',
            )
            break

        ctx.feedback.status("UPDATE", f'Updating local branch "{pull_branch}"...')
        ctx.git.update_branch(ctx.repo_root, pull_branch, into_commit)
        dst_branch = pull_branch

    if dst_branch is not None:
        ctx.feedback.status("CHECKOUT", f'Checking out "{dst_branch}".')
        ctx.git.checkout(ctx.repo_root, dst_branch)
    else:
        ctx.feedback.status(
            "DETACHED HEAD",
            "Unable to find any local branches to update, staying on detached head.",
        )

    local_state.discard()


def _reconcile_bridge(
    ctx: EngineContext,
    into_commit: str,
    local_state: LocalState,
    update_branches: list[str],
) -> None:
    # git-p4 does not configure upstreams and its submit already synced the
    # remote, so there is no tracking path to follow.
    if not update_branches:
        ctx.feedback.status(
            "DETACHED HEAD",
            "Unable to find any local branches to update, staying on detached head.",
        )
        local_state.discard()
        return

    dst_branch = update_branches[0]
    do_reset = is_ancestor_of(ctx, dst_branch, into_commit)
    if do_reset:
        ctx.feedback.status("UPDATE", f'Switching to local branch "{dst_branch}".')
    else:
        ctx.feedback.status(
            "CHECKOUT",
            f'Local branch "{dst_branch}" has unpublished changes, checking it out but '
            "leaving them in place.",
        )

    ctx.git.checkout(ctx.repo_root, dst_branch)
    if do_reset:
        result = ctx.git.reset_hard(ctx.repo_root, into_commit)
        if not result.ok:
            raise RuntimeError(
                f'Failed to reset "{dst_branch}" to {into_commit}: {result.stderr.strip()}'
            )

    local_state.discard()

"""Publish landed changes, or explain how to publish them by hand."""

import shlex

from gitland.core.engine.context import EngineContext
from gitland.core.engine.targets import RERUN_HINT
from gitland.core.errors import PublishError
from gitland.core.local_state import LocalState


def onto_refspecs(ctx: EngineContext, into_commit: str) -> list[str]:
    return [f"{into_commit}:{onto_ref}" for onto_ref in ctx.state.onto_refs]


def push_command(ctx: EngineContext, into_commit: str) -> str:
    """The command line that publishes into_commit, for display."""
    if ctx.state.is_bridge:
        return shlex.join(["git", "p4", "submit", "-M", "--commit", into_commit, "--"])
    return shlex.join(
        ["git", "push", "--", ctx.state.require_onto_remote(), *onto_refspecs(ctx, into_commit)]
    )


def publish(ctx: EngineContext, into_commit: str) -> None:
    """Push into_commit to every onto ref, or submit it to Perforce."""
    remote = ctx.state.require_onto_remote()

    if ctx.state.is_bridge:
        ctx.feedback.status("SUBMITTING", f'Submitting changes to "{remote}".')
        err = ctx.git.p4_submit(ctx.repo_root, into_commit)
        if err:
            raise PublishError(f"Submit failed! {RERUN_HINT}")
        return

    ctx.feedback.status("PUSHING", f'Pushing changes to "{remote}".')
    err = ctx.git.push(ctx.repo_root, remote, onto_refspecs(ctx, into_commit))
    if err:
        raise PublishError(f"Push failed! {RERUN_HINT}")


def hold_changes(ctx: EngineContext, into_commit: str, local_state: LocalState) -> None:
    """Report held changes with the exact commands to publish or undo them."""
    if ctx.state.is_bridge:
        message = "Holding changes locally, they have not been submitted."
    else:
        message = "Holding changes locally, they have not been pushed."

    ctx.feedback.warning("HOLD CHANGES", message)
    ctx.feedback.info("To push changes manually, run this command:")
    ctx.feedback.command(push_command(ctx, into_commit))

    restore_commands = local_state.restore_commands()
    if restore_commands:
        ctx.feedback.info(
            'To go back to how things were before you ran "gitland land", run these '
            f"{len(restore_commands)} command(s):"
        )
        for restore_command in restore_commands:
            ctx.feedback.command(restore_command)

    ctx.feedback.info(
        "Local branches have not been changed, and are still in the same state as before."
    )

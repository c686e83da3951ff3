"""Land local changes onto a remote branch.

This command:
1. Selects where changes land (remote and refs) and what they merge into
2. Finds the commits reachable from each symbol that are not in the target
3. Squashes or merges each set onto the target
4. Pushes the result (or submits it, for Perforce remotes)
5. Rebases dependent branches, deletes landed ones and updates local branches

Usage:
    gitland land                         # Land the current branch
    gitland land feature1 feature2       # Land several branches in order
    gitland land --onto release --hold   # Integrate but do not push
"""

import click

from gitland.core.context import LandContext
from gitland.core.engine.git_engine import GitLandEngine
from gitland.core.engine.state import LandOptions
from gitland.core.errors import LandError
from gitland.core.feedback import QuietFeedback
from gitland.core.models import LandStrategy, display_hash
from gitland.core.pipeline import LandPipeline


@click.command("land")
@click.argument("symbols", metavar="[SYMBOL]...", nargs=-1)
@click.option(
    "--onto",
    "onto",
    multiple=True,
    help="Remote branch to push to. Repeat to push to several branches.",
)
@click.option("--onto-remote", help="Remote to push to.")
@click.option("--into", help="Branch to merge into (default: the first --onto branch).")
@click.option("--into-remote", help="Remote to fetch the --into branch from.")
@click.option("--into-empty", is_flag=True, help="Merge into the empty state.")
@click.option("--into-local", is_flag=True, help="Merge into a local branch without fetching.")
@click.option(
    "--squash",
    "strategy",
    flag_value=LandStrategy.SQUASH.value,
    help="Squash each set of changes into a single commit.",
)
@click.option(
    "--merge",
    "strategy",
    flag_value=LandStrategy.MERGE.value,
    help="Create a merge commit for each set of changes.",
)
@click.option("--hold", is_flag=True, help="Integrate changes locally but do not publish them.")
@click.option(
    "--incremental",
    is_flag=True,
    help="Publish after each set of changes instead of once at the end.",
)
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors.")
@click.pass_obj
def land_cmd(
    ctx: LandContext,
    symbols: tuple[str, ...],
    onto: tuple[str, ...],
    onto_remote: str | None,
    into: str | None,
    into_remote: str | None,
    into_empty: bool,
    into_local: bool,
    strategy: str | None,
    hold: bool,
    incremental: bool,
    quiet: bool,
) -> None:
    """Publish local changes to a remote branch."""
    if quiet:
        ctx = ctx.with_feedback(QuietFeedback())

    options = LandOptions(
        onto=onto,
        onto_remote=onto_remote,
        into=into,
        into_remote=into_remote,
        into_empty=into_empty,
        into_local=into_local,
        strategy=LandStrategy(strategy) if strategy is not None else None,
    )

    try:
        repo_root = ctx.require_repo_root()
        engine = GitLandEngine(ctx.git, repo_root, ctx.feedback, options, ctx.config)
        pipeline = LandPipeline(engine, hold=hold, incremental=incremental)
        result = pipeline.run(list(symbols))
    except LandError as e:
        click.echo(click.style("Error: ", fg="red") + str(e), err=True)
        raise SystemExit(1) from None

    if result.published:
        ctx.feedback.success(
            "DONE", f"Landed changes at {display_hash(result.into_commit)}."
        )

"""Target resolution: where changes are integrated and where they are published.

Every decision follows the same priority order: explicit flag, then
`.gitland/config.toml`, then inference from the tracking branches of the
symbols being landed, then a fixed default.
"""

import logging

from gitland.core.config import ONTO_KEY, ONTO_REMOTE_KEY
from gitland.core.engine.context import EngineContext
from gitland.core.errors import ConfigurationError, InternalConsistencyError, PublishError
from gitland.core.models import LandTarget, Symbol, display_hash
from gitland.core.upstream import get_path_to_upstream

logger = logging.getLogger(__name__)

DEFAULT_ONTO_REF = "master"
DEFAULT_ONTO_REMOTE = "origin"
PERFORCE_REMOTE = "p4"

RERUN_HINT = 'Fix the error and run "gitland land" again.'


# ============================================================================
# Onto
# ============================================================================


def select_onto_remote(ctx: EngineContext, symbols: list[Symbol]) -> str:
    """Pick the remote to publish to, switching to bridge mode for Perforce."""
    remote = _new_onto_remote(ctx, symbols)

    is_pushable = ctx.git.is_pushable_remote(ctx.repo_root, remote)
    is_perforce = ctx.git.is_perforce_remote(ctx.repo_root, remote)

    if not is_pushable and not is_perforce:
        raise ConfigurationError(
            f'No pushable remote "{remote}" exists. Use the "--onto-remote" flag to '
            "choose a valid, pushable remote to land changes onto."
        )

    if is_perforce:
        ctx.state.is_bridge = True
        ctx.feedback.warning(
            "P4 MODE", "Operating in Git/Perforce mode after selecting a Perforce remote."
        )
        if not ctx.state.is_squash:
            raise ConfigurationError(
                'Perforce mode does not support the "merge" land strategy. Use the '
                '"squash" land strategy when landing to a Perforce remote (you can use '
                '"--squash" to select this strategy).'
            )

    ctx.state.onto_remote = remote
    return remote


def _new_onto_remote(ctx: EngineContext, symbols: list[Symbol]) -> str:
    remote = ctx.options.onto_remote
    if remote is not None:
        ctx.feedback.status(
            "ONTO REMOTE", f'Remote "{remote}" was selected with the "--onto-remote" flag.'
        )
        return remote

    remote = ctx.config.onto_remote
    if remote is not None:
        ctx.feedback.status(
            "ONTO REMOTE",
            f'Remote "{remote}" was selected by reading "{ONTO_REMOTE_KEY}" configuration.',
        )
        return remote

    upstream_remotes: dict[str, list[Symbol]] = {}
    for symbol in symbols:
        path = get_path_to_upstream(ctx.git, ctx.repo_root, symbol.raw)
        if path.is_connected_to_remote and path.remote_name is not None:
            upstream_remotes.setdefault(path.remote_name, []).append(symbol)

    if len(upstream_remotes) > 1:
        names = ", ".join(f'"{name}"' for name in upstream_remotes)
        raise ConfigurationError(
            "The symbols you are landing are connected to multiple different remotes "
            f'({names}) via Git branch upstreams. Use "--onto-remote" to select a '
            "single remote."
        )

    if upstream_remotes:
        upstream_remote = next(iter(upstream_remotes))
        ctx.feedback.status(
            "ONTO REMOTE",
            f'Remote "{upstream_remote}" was selected by following tracking branches '
            "upstream to the closest remote.",
        )
        return upstream_remote

    if ctx.git.is_perforce_remote(ctx.repo_root, PERFORCE_REMOTE):
        ctx.feedback.status(
            "ONTO REMOTE",
            f'Perforce remote "{PERFORCE_REMOTE}" was selected because the existence of '
            "this remote implies this working copy was synchronized from a Perforce "
            "repository.",
        )
        return PERFORCE_REMOTE

    ctx.feedback.status(
        "ONTO REMOTE",
        f'Landing onto remote "{DEFAULT_ONTO_REMOTE}", the default remote under Git.',
    )
    return DEFAULT_ONTO_REMOTE


def select_onto_refs(ctx: EngineContext, symbols: list[Symbol]) -> list[str]:
    """Pick the remote branches to publish to."""
    onto = list(ctx.options.onto)
    if onto:
        ctx.feedback.status(
            "ONTO TARGET", f'Refs were selected with the "--onto" flag: {", ".join(onto)}.'
        )
        return _confirmed(ctx, onto)

    onto = list(ctx.config.onto)
    if onto:
        ctx.feedback.status(
            "ONTO TARGET",
            f'Refs were selected by reading "{ONTO_KEY}" configuration: {", ".join(onto)}.',
        )
        return _confirmed(ctx, onto)

    remote_onto: dict[str, None] = {}
    for symbol in symbols:
        path = get_path_to_upstream(ctx.git, ctx.repo_root, symbol.raw)
        if not path.length:
            continue

        if path.cycle is not None:
            ctx.feedback.warning(
                "LOCAL CYCLE",
                f'Local branch "{symbol.raw}" tracks an upstream, but following it leads '
                "to a local cycle; ignoring branch upstream.",
            )
            ctx.feedback.warning("LOCAL CYCLE", " -> ".join(path.cycle))
            continue

        if not path.is_connected_to_remote or path.remote_branch is None:
            ctx.feedback.warning(
                "NO PATH TO REMOTE",
                f'Local branch "{symbol.raw}" tracks an upstream, but there is no path '
                "to a remote; ignoring branch upstream.",
            )
            continue

        remote_onto[path.remote_branch] = None

    if len(remote_onto) > 1:
        raise ConfigurationError(
            "The branches you are landing are connected to multiple different remote "
            'branches via Git branch upstreams. Use "--onto" to select the refs you '
            "want to push to."
        )

    if remote_onto:
        refs = list(remote_onto)
        ctx.feedback.status(
            "ONTO TARGET",
            f'Landing onto target "{refs[0]}", selected by following tracking branches '
            "upstream to the closest remote branch.",
        )
        return _confirmed(ctx, refs)

    ctx.feedback.status(
        "ONTO TARGET",
        f'Landing onto target "{DEFAULT_ONTO_REF}", the default target under Git.',
    )
    return _confirmed(ctx, [DEFAULT_ONTO_REF])


def confirm_onto_refs(onto_refs: list[str]) -> None:
    """Reject ref selections that can never be valid."""
    for onto_ref in onto_refs:
        if not onto_ref:
            raise ConfigurationError(
                f'Selected "onto" ref "{onto_ref}" is invalid: the empty string is not '
                "a valid ref."
            )


def _confirmed(ctx: EngineContext, onto_refs: list[str]) -> list[str]:
    confirm_onto_refs(onto_refs)
    ctx.state.onto_refs = onto_refs
    return onto_refs


# ============================================================================
# Into
# ============================================================================


def select_into_remote(ctx: EngineContext) -> str | None:
    """Pick the remote to integrate against (None for empty/local targets)."""
    if ctx.options.into_empty:
        ctx.state.into_empty = True
        ctx.feedback.status(
            "INTO REMOTE", 'Will merge into empty state, selected with the "--into-empty" flag.'
        )
        return None

    if ctx.options.into_local:
        ctx.state.into_local = True
        ctx.feedback.status(
            "INTO REMOTE", 'Will merge into local state, selected with the "--into-local" flag.'
        )
        return None

    into = ctx.options.into_remote
    if into is not None:
        if not ctx.git.is_fetchable_remote(ctx.repo_root, into):
            raise ConfigurationError(
                f'Remote "{into}", specified with "--into-remote", is not a valid '
                "fetchable remote."
            )
        ctx.state.into_remote = into
        ctx.feedback.status(
            "INTO REMOTE",
            f'Will merge into remote "{into}", selected with the "--into-remote" flag.',
        )
        return into

    onto = ctx.state.require_onto_remote()
    ctx.state.into_remote = onto
    ctx.feedback.status(
        "INTO REMOTE",
        f'Will merge into remote "{onto}" by default, because this is the remote the '
        "change is landing onto.",
    )
    return onto


def select_into_ref(ctx: EngineContext) -> str | None:
    """Pick the ref to integrate against (None for the empty target)."""
    if ctx.options.into_empty:
        ctx.feedback.status(
            "INTO TARGET", 'Will merge into empty state, selected with the "--into-empty" flag.'
        )
        return None

    into = ctx.options.into
    if into is not None:
        ctx.state.into_ref = into
        ctx.feedback.status(
            "INTO TARGET", f'Will merge into target "{into}", selected with the "--into" flag.'
        )
        return into

    ontos = ctx.state.onto_refs
    onto = ontos[0]
    ctx.state.into_ref = onto
    if len(ontos) > 1:
        reason = 'because this is the first "onto" target'
    else:
        reason = 'because this is the "onto" target'
    ctx.feedback.status(
        "INTO TARGET", f'Will merge into target "{onto}" by default, {reason}.'
    )
    return onto


def select_into_commit(ctx: EngineContext) -> str | None:
    """Resolve the commit to integrate against.

    Returns:
        A commit hash, or None meaning "integrate into a synthetic empty root".
    """
    if ctx.state.into_empty:
        ctx.feedback.status("INTO COMMIT", "Preparing merge into the empty state.")
        return None

    into_ref = ctx.state.into_ref
    if into_ref is None:
        raise RuntimeError("Into ref has not been selected yet")

    if ctx.state.into_local:
        into_commit = ctx.git.resolve_commit(ctx.repo_root, into_ref)
        if into_commit is None:
            raise ConfigurationError(f'Local ref "{into_ref}" does not exist.')
        ctx.feedback.status(
            "INTO COMMIT",
            f'Preparing merge into local target "{into_ref}", at commit '
            f'"{display_hash(into_commit)}".',
        )
        return into_commit

    into_remote = ctx.state.into_remote
    if into_remote is None:
        raise RuntimeError("Into remote has not been selected yet")

    target = LandTarget(remote=into_remote, ref=into_ref)
    commit = fetch_target(ctx, target)
    if commit is not None:
        ctx.feedback.status(
            "INTO COMMIT",
            f'Preparing merge into "{target.ref}" from remote "{target.remote}", at commit '
            f'"{display_hash(commit)}".',
        )
        return commit

    # "--into Q --onto Q" where Q does not exist is an error; "--onto Q" alone
    # creates Q from the empty state.
    if ctx.options.into is not None:
        raise ConfigurationError(
            f'Ref "{target.ref}" does not exist in remote "{target.remote}".'
        )

    ctx.state.into_empty = True
    ctx.feedback.status(
        "INTO COMMIT",
        f'Preparing merge into the empty state to create target "{target.ref}" in remote '
        f'"{target.remote}".',
    )
    return None


# ============================================================================
# Fetching
# ============================================================================


def fetch_target(ctx: EngineContext, target: LandTarget) -> str | None:
    """Bring a target up to date locally and return its commit, if it exists."""
    if ctx.state.is_bridge:
        ctx.feedback.status("P4 SYNC", f'Synchronizing "{target.ref}" from Perforce...')
        err = ctx.git.p4_sync(ctx.repo_root, target.key)
        if err:
            raise PublishError(f"Perforce sync failed! {RERUN_HINT}")
        ctx.state.target_commits.pop(target.key, None)
        return resolve_target_local_commit(ctx, target)

    if resolve_target_local_commit(ctx, target) is None:
        ctx.feedback.warning(
            "TARGET",
            f'No local copy of ref "{target.ref}" in remote "{target.remote}" exists, '
            "attempting fetch...",
        )
        _fetch_land_target(ctx, target, ignore_failure=True)

        commit = resolve_target_local_commit(ctx, target)
        if commit is None:
            return None

        ctx.feedback.status(
            "FETCHED", f'Fetched ref "{target.ref}" from remote "{target.remote}".'
        )
        return commit

    ctx.feedback.status(
        "FETCH", f'Fetching "{target.ref}" from remote "{target.remote}"...'
    )
    _fetch_land_target(ctx, target, ignore_failure=False)

    commit = resolve_target_local_commit(ctx, target)
    if commit is None:
        raise InternalConsistencyError(
            f'No ref "{target.ref}" exists in remote "{target.remote}" after a '
            "successful fetch."
        )
    return commit


def resolve_target_local_commit(ctx: EngineContext, target: LandTarget) -> str | None:
    """Resolve a target's remote-tracking ref, memoized per target key."""
    cache = ctx.state.target_commits
    if target.key not in cache:
        cache[target.key] = ctx.git.resolve_commit(ctx.repo_root, target.remote_tracking_ref)
        logger.debug("Resolved target %s to %s", target.key, cache[target.key])
    return cache[target.key]


def _fetch_land_target(ctx: EngineContext, target: LandTarget, *, ignore_failure: bool) -> None:
    err = ctx.git.fetch(ctx.repo_root, target.remote, target.ref)
    if err and not ignore_failure:
        raise PublishError(
            f'Fetch of "{target.ref}" from remote "{target.remote}" failed! {RERUN_HINT}'
        )

    if not err:
        ctx.state.target_commits.pop(target.key, None)

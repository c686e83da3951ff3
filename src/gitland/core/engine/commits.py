"""Resolve symbols to commits and group the commits to land into sets."""

import logging
from collections.abc import Callable
from dataclasses import replace

from gitland.core.engine.context import EngineContext
from gitland.core.errors import ConfigurationError, InternalConsistencyError, NoOpError
from gitland.core.models import (
    CommitSet,
    LandCommit,
    ResolvedSymbol,
    Symbol,
    UnresolvedSymbol,
    display_hash,
)

logger = logging.getLogger(__name__)

# Builds the authoritative commit message for a set. The set passed in has an
# empty message.
CommitMessageBuilder = Callable[[EngineContext, CommitSet], str]


def get_default_symbols(ctx: EngineContext) -> list[Symbol]:
    """Land the current branch, or the current commit when HEAD is detached."""
    branch = ctx.git.get_current_branch(ctx.repo_root)
    if branch is not None:
        ctx.feedback.status("SOURCE", f'Landing the current branch, "{branch}".')
        return [UnresolvedSymbol(branch)]

    commit = ctx.git.get_head_commit(ctx.repo_root)
    if commit is None:
        raise ConfigurationError("The working copy has no commits to land.")
    ctx.feedback.status("SOURCE", f'Landing the current HEAD, "{commit}".')
    return [UnresolvedSymbol(commit)]


def resolve_symbols(ctx: EngineContext, symbols: list[Symbol]) -> list[ResolvedSymbol]:
    """Resolve every symbol to the commit it names in the local working copy."""
    resolved: list[ResolvedSymbol] = []
    for symbol in symbols:
        if isinstance(symbol, ResolvedSymbol):
            resolved.append(symbol)
            continue

        commit = ctx.git.resolve_commit(ctx.repo_root, symbol.raw)
        if commit is None:
            raise ConfigurationError(
                f'Branch "{symbol.raw}" does not exist in the local working copy.'
            )
        resolved.append(symbol.resolve(commit))
    return resolved


def select_commits(
    ctx: EngineContext,
    into_commit: str | None,
    symbols: list[ResolvedSymbol],
) -> dict[str, list[LandCommit]]:
    """Find, per symbol, the commits it would land.

    Each symbol maps to the commits reachable from it but not from into_commit
    (or all of its history when into_commit is None), newest first. Commit
    records are shared between symbols that reach the same commit: the
    symbol's tip commit records the symbol as a direct symbol, and every
    commit records each symbol reaching it as an indirect symbol.
    """
    commit_map: dict[str, LandCommit] = {}
    symbol_commits: dict[str, list[LandCommit]] = {}

    for symbol in symbols:
        output = ctx.git.log_commits(ctx.repo_root, symbol.commit, exclude=into_commit)
        reached: list[LandCommit] = []
        is_first = True
        for line in output.splitlines():
            if not line:
                continue

            parts = line.split("\0", 3)
            if len(parts) < 3:
                raise InternalConsistencyError(f'Unexpected output from "git log ...": {line!r}')

            commit_hash = parts[0]
            if commit_hash not in commit_map:
                parents = tuple(parts[1].split()) if parts[1].strip() else ()
                commit_map[commit_hash] = LandCommit(
                    hash=commit_hash, parents=parents, summary=parts[2]
                )

            commit = commit_map[commit_hash]
            if is_first:
                commit.add_direct_symbol(symbol)
                is_first = False
            commit.add_indirect_symbol(symbol)
            reached.append(commit)

        symbol_commits[symbol.raw] = reached
        logger.debug("Symbol %s reaches %d commit(s)", symbol.raw, len(reached))

    return symbol_commits


def default_commit_message(ctx: EngineContext, commit_set: CommitSet) -> str:
    """Use the full message of the newest commit in the set."""
    return ctx.git.get_commit_message(ctx.repo_root, commit_set.newest.hash)


def confirm_commit_sets(
    ctx: EngineContext,
    into_commit: str | None,
    symbols: list[ResolvedSymbol],
    symbol_commits: dict[str, list[LandCommit]],
    message_builder: CommitMessageBuilder = default_commit_message,
) -> list[CommitSet]:
    """Group selected commits into one CommitSet per symbol.

    A symbol whose tip is in another symbol's history lands first; otherwise
    symbols keep their command-line order. Each commit belongs to the first
    set that reaches it, so stacked branches land as separate sets. A symbol
    whose commits were all claimed by earlier sets (for example, the same
    branch named twice) produces no set of its own.

    Raises:
        NoOpError: If a symbol has no commits that are not already in the target.
    """
    unique: dict[str, ResolvedSymbol] = {}
    for symbol in symbols:
        unique.setdefault(symbol.raw, symbol)

    for symbol in unique.values():
        if not symbol_commits.get(symbol.raw):
            into_display = "the empty state" if into_commit is None else display_hash(into_commit)
            raise NoOpError(
                f'Symbol "{symbol.raw}" ({display_hash(symbol.commit)}) has no commits '
                f'which are not already present in "{into_display}". These changes have '
                "likely already landed."
            )

    ordered = _order_symbols(list(unique.values()), symbol_commits)

    claimed: set[str] = set()
    sets: list[CommitSet] = []
    for symbol in ordered:
        # git log lists newest first; sets are stored oldest first.
        commits = [
            commit for commit in reversed(symbol_commits[symbol.raw]) if commit.hash not in claimed
        ]
        if not commits:
            logger.debug("Symbol %s has no unclaimed commits, skipping", symbol.raw)
            continue
        claimed.update(commit.hash for commit in commits)

        draft = CommitSet(symbol=symbol, commits=tuple(commits), message="")
        sets.append(replace(draft, message=message_builder(ctx, draft)))

    for commit_set in sets:
        ctx.feedback.status(
            "LANDING",
            f'"{commit_set.symbol.raw}": {len(commit_set.commits)} commit(s), '
            f"{display_hash(commit_set.newest.hash)} {commit_set.newest.display_summary}",
        )
    return sets


def _order_symbols(
    symbols: list[ResolvedSymbol],
    symbol_commits: dict[str, list[LandCommit]],
) -> list[ResolvedSymbol]:
    """Order symbols so any symbol inside another symbol's history comes first."""
    reach = {
        symbol.raw: {commit.hash for commit in symbol_commits[symbol.raw]} for symbol in symbols
    }

    def ancestors_before(symbol: ResolvedSymbol) -> int:
        # Number of other symbols whose tip this symbol contains.
        return sum(
            1
            for other in symbols
            if other.raw != symbol.raw
            and other.commit != symbol.commit
            and other.commit in reach[symbol.raw]
        )

    return sorted(symbols, key=ancestors_before)

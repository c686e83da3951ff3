"""Sequence one land operation over a LandEngine."""

import logging
from dataclasses import dataclass

from gitland.core.engine.abc import LandEngine
from gitland.core.local_state import LocalState
from gitland.core.models import CommitSet, Symbol, UnresolvedSymbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LandResult:
    """What a completed land operation did."""

    commit_sets: tuple[CommitSet, ...]
    into_commit: str
    published: bool


class LandPipeline:
    """Drive a LandEngine through a complete land operation.

    Targets and commit sets are selected before anything is touched. Once
    the working copy has been snapshotted, every failure restores it before
    the error propagates.
    """

    def __init__(self, engine: LandEngine, *, hold: bool, incremental: bool) -> None:
        self._engine = engine
        self._hold = hold
        self._incremental = incremental

    def run(self, raw_symbols: list[str]) -> LandResult:
        engine = self._engine
        engine.validate_options()

        symbols: list[Symbol]
        if raw_symbols:
            symbols = [UnresolvedSymbol(raw) for raw in raw_symbols]
        else:
            symbols = engine.get_default_symbols()

        engine.select_onto_remote(symbols)
        engine.select_onto_refs(symbols)
        engine.select_into_remote()
        engine.select_into_ref()

        resolved = engine.resolve_symbols(symbols)
        into_commit = engine.select_into_commit()
        commit_sets = engine.select_commit_sets(into_commit, resolved)

        local_state = engine.save_local_state()
        try:
            result = self._land(commit_sets, into_commit, local_state)
        except BaseException:
            logger.debug("Land failed, restoring local state")
            try:
                local_state.restore()
            except Exception:
                # The land failure stays the raised error.
                logger.debug("Restoring local state failed", exc_info=True)
            raise

        logger.debug("Landed %d set(s) at %s", len(commit_sets), result.into_commit)
        return result

    def _land(
        self,
        commit_sets: list[CommitSet],
        into_commit: str | None,
        local_state: LocalState,
    ) -> LandResult:
        engine = self._engine
        publish_now = not self._hold

        pending: list[CommitSet] = []
        for index, commit_set in enumerate(commit_sets):
            into_commit = engine.execute_merge(commit_set, into_commit)
            pending.append(commit_set)

            is_last = index == len(commit_sets) - 1
            if publish_now and (is_last or self._incremental):
                engine.publish(into_commit)

                landed_heads = frozenset(landed.newest.hash for landed in pending)
                for landed in pending:
                    engine.cascade(landed, into_commit, landed_heads)
                engine.prune(pending)
                pending = []

        # select_commit_sets never returns an empty list
        assert into_commit is not None

        if self._hold:
            engine.hold_changes(into_commit, local_state)
            local_state.discard()
        else:
            engine.reconcile(into_commit, local_state)

        return LandResult(
            commit_sets=tuple(commit_sets),
            into_commit=into_commit,
            published=not self._hold,
        )

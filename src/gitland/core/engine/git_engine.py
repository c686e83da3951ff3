"""LandEngine implementation for git working copies (including git-p4)."""

from pathlib import Path

from gitland.core.config import LandConfig
from gitland.core.engine import cascade, commits, merge, publish, reconcile, targets
from gitland.core.engine.abc import LandEngine
from gitland.core.engine.commits import CommitMessageBuilder, default_commit_message
from gitland.core.engine.context import EngineContext
from gitland.core.engine.state import EngineRunState, LandOptions
from gitland.core.errors import ConfigurationError
from gitland.core.feedback import Feedback
from gitland.core.git.abc import Git
from gitland.core.local_state import GitLocalState, LocalState
from gitland.core.models import CommitSet, LandStrategy, ResolvedSymbol, Symbol


class GitLandEngine(LandEngine):
    """Land engine for git, delegating each phase to its module."""

    def __init__(
        self,
        git: Git,
        repo_root: Path,
        feedback: Feedback,
        options: LandOptions,
        config: LandConfig,
        *,
        message_builder: CommitMessageBuilder = default_commit_message,
    ) -> None:
        strategy = options.strategy or config.strategy or LandStrategy.SQUASH
        self._ctx = EngineContext(
            git=git,
            repo_root=repo_root,
            feedback=feedback,
            options=options,
            config=config,
            state=EngineRunState(strategy=strategy),
        )
        self._message_builder = message_builder

    @property
    def context(self) -> EngineContext:
        return self._ctx

    @property
    def state(self) -> EngineRunState:
        return self._ctx.state

    def validate_options(self) -> None:
        options = self._ctx.options
        if options.into_empty and options.into_local:
            raise ConfigurationError(
                'Arguments "--into-empty" and "--into-local" are mutually exclusive.'
            )
        if options.into_empty and options.into is not None:
            raise ConfigurationError(
                'Arguments "--into-empty" and "--into" are mutually exclusive.'
            )
        if options.into_empty and options.into_remote is not None:
            raise ConfigurationError(
                'Arguments "--into-empty" and "--into-remote" are mutually exclusive.'
            )
        if options.into_local and options.into_remote is not None:
            raise ConfigurationError(
                'Arguments "--into-local" and "--into-remote" are mutually exclusive.'
            )

    def get_default_symbols(self) -> list[Symbol]:
        return commits.get_default_symbols(self._ctx)

    def select_onto_remote(self, symbols: list[Symbol]) -> str:
        return targets.select_onto_remote(self._ctx, symbols)

    def select_onto_refs(self, symbols: list[Symbol]) -> list[str]:
        return targets.select_onto_refs(self._ctx, symbols)

    def select_into_remote(self) -> str | None:
        return targets.select_into_remote(self._ctx)

    def select_into_ref(self) -> str | None:
        return targets.select_into_ref(self._ctx)

    def resolve_symbols(self, symbols: list[Symbol]) -> list[ResolvedSymbol]:
        return commits.resolve_symbols(self._ctx, symbols)

    def select_into_commit(self) -> str | None:
        return targets.select_into_commit(self._ctx)

    def select_commit_sets(
        self, into_commit: str | None, symbols: list[ResolvedSymbol]
    ) -> list[CommitSet]:
        symbol_commits = commits.select_commits(self._ctx, into_commit, symbols)
        return commits.confirm_commit_sets(
            self._ctx, into_commit, symbols, symbol_commits, self._message_builder
        )

    def save_local_state(self) -> LocalState:
        return GitLocalState.save(self._ctx.git, self._ctx.repo_root, self._ctx.feedback)

    def execute_merge(self, commit_set: CommitSet, into_commit: str | None) -> str:
        return merge.execute_merge(self._ctx, commit_set, into_commit)

    def publish(self, into_commit: str) -> None:
        publish.publish(self._ctx, into_commit)

    def hold_changes(self, into_commit: str, local_state: LocalState) -> None:
        publish.hold_changes(self._ctx, into_commit, local_state)

    def cascade(
        self, commit_set: CommitSet, into_commit: str, landed_heads: frozenset[str]
    ) -> None:
        cascade.cascade_state(self._ctx, commit_set, into_commit, landed_heads=landed_heads)

    def prune(self, commit_sets: list[CommitSet]) -> None:
        cascade.prune_branches(self._ctx, commit_sets)

    def reconcile(self, into_commit: str, local_state: LocalState) -> None:
        reconcile.reconcile_local_state(self._ctx, into_commit, local_state)

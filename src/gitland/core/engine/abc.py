"""Capabilities a version-control backend provides to the land pipeline."""

from abc import ABC, abstractmethod

from gitland.core.local_state import LocalState
from gitland.core.models import CommitSet, ResolvedSymbol, Symbol


class LandEngine(ABC):
    """One land operation against one working copy.

    LandPipeline sequences these calls; an engine instance holds the state of
    exactly one run and is discarded afterward. Implementations exist per
    version-control backend (GitLandEngine for git and git-p4).
    """

    @abstractmethod
    def validate_options(self) -> None:
        """Reject contradictory flag combinations before anything else runs."""

    @abstractmethod
    def get_default_symbols(self) -> list[Symbol]:
        """Symbols to land when the user named none."""

    @abstractmethod
    def select_onto_remote(self, symbols: list[Symbol]) -> str:
        """Choose the remote changes are published to."""

    @abstractmethod
    def select_onto_refs(self, symbols: list[Symbol]) -> list[str]:
        """Choose the remote refs changes are published to."""

    @abstractmethod
    def select_into_remote(self) -> str | None:
        """Choose the remote to integrate against (None for empty/local targets)."""

    @abstractmethod
    def select_into_ref(self) -> str | None:
        """Choose the ref to integrate against (None for the empty target)."""

    @abstractmethod
    def resolve_symbols(self, symbols: list[Symbol]) -> list[ResolvedSymbol]:
        """Resolve every symbol to a local commit."""

    @abstractmethod
    def select_into_commit(self) -> str | None:
        """Resolve the integration base; None means the synthetic empty root."""

    @abstractmethod
    def select_commit_sets(
        self, into_commit: str | None, symbols: list[ResolvedSymbol]
    ) -> list[CommitSet]:
        """Compute and group the commits to land."""

    @abstractmethod
    def save_local_state(self) -> LocalState:
        """Snapshot the working copy before the first mutation."""

    @abstractmethod
    def execute_merge(self, commit_set: CommitSet, into_commit: str | None) -> str:
        """Integrate a commit set and return the new integration commit."""

    @abstractmethod
    def publish(self, into_commit: str) -> None:
        """Publish the integration commit to every onto ref."""

    @abstractmethod
    def hold_changes(self, into_commit: str, local_state: LocalState) -> None:
        """Explain how to publish or undo changes that were deliberately held."""

    @abstractmethod
    def cascade(
        self, commit_set: CommitSet, into_commit: str, landed_heads: frozenset[str]
    ) -> None:
        """Move local branches built on a squashed set onto the landed commit."""

    @abstractmethod
    def prune(self, commit_sets: list[CommitSet]) -> None:
        """Delete local branches that fully landed."""

    @abstractmethod
    def reconcile(self, into_commit: str, local_state: LocalState) -> None:
        """Leave the user on the best local branch after publishing."""

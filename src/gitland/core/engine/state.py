"""Per-run options and mutable state of the land engine."""

from dataclasses import dataclass, field

from gitland.core.models import LandStrategy


@dataclass(frozen=True)
class LandOptions:
    """Parsed command-line selections for one land operation.

    None or empty values mean "not selected by the user"; the engine then
    falls back to configuration, tracking-branch inference and defaults.
    """

    onto: tuple[str, ...] = ()
    onto_remote: str | None = None
    into: str | None = None
    into_remote: str | None = None
    into_empty: bool = False
    into_local: bool = False
    strategy: LandStrategy | None = None


@dataclass
class EngineRunState:
    """State owned by exactly one engine run.

    target_commits caches remote-tracking lookups by target key; a value of
    None records that the target was looked up and does not exist locally.
    destroyed_branches holds branches deleted during cleanup so later steps
    never touch them again.
    """

    strategy: LandStrategy = LandStrategy.SQUASH
    is_bridge: bool = False
    into_empty: bool = False
    into_local: bool = False
    onto_remote: str | None = None
    onto_refs: list[str] = field(default_factory=list)
    into_remote: str | None = None
    into_ref: str | None = None
    target_commits: dict[str, str | None] = field(default_factory=dict)
    destroyed_branches: set[str] = field(default_factory=set)

    @property
    def is_squash(self) -> bool:
        return self.strategy is LandStrategy.SQUASH

    def require_onto_remote(self) -> str:
        if self.onto_remote is None:
            raise RuntimeError("Onto remote has not been selected yet")
        return self.onto_remote

"""Value types shared by the land engine."""

from dataclasses import dataclass, field
from enum import Enum

DISPLAY_HASH_LENGTH = 12


def display_hash(commit: str) -> str:
    """Abbreviate a commit hash for status output."""
    return commit[:DISPLAY_HASH_LENGTH]


class LandStrategy(Enum):
    """How a commit set is integrated into the target."""

    SQUASH = "squash"
    MERGE = "merge"


@dataclass(frozen=True)
class UnresolvedSymbol:
    """A branch name or commit-ish exactly as the user typed it."""

    raw: str

    def resolve(self, commit: str) -> "ResolvedSymbol":
        return ResolvedSymbol(raw=self.raw, commit=commit)


@dataclass(frozen=True)
class ResolvedSymbol:
    """A user symbol together with the commit it named when resolved."""

    raw: str
    commit: str


Symbol = UnresolvedSymbol | ResolvedSymbol


@dataclass(frozen=True)
class LandTarget:
    """A (remote, ref) pair to fetch from or publish to."""

    remote: str
    ref: str

    @property
    def key(self) -> str:
        return f"{self.remote}/{self.ref}"

    @property
    def remote_tracking_ref(self) -> str:
        return f"refs/remotes/{self.remote}/{self.ref}"


@dataclass
class LandCommit:
    """A commit selected for landing.

    Commits are shared across symbols within one selection pass, so the
    symbol lists accumulate as more symbols reach the same commit.
    """

    hash: str
    parents: tuple[str, ...]
    summary: str
    direct_symbols: list[ResolvedSymbol] = field(default_factory=list)
    indirect_symbols: list[ResolvedSymbol] = field(default_factory=list)

    def add_direct_symbol(self, symbol: ResolvedSymbol) -> None:
        if symbol not in self.direct_symbols:
            self.direct_symbols.append(symbol)

    def add_indirect_symbol(self, symbol: ResolvedSymbol) -> None:
        if symbol not in self.indirect_symbols:
            self.indirect_symbols.append(symbol)

    @property
    def display_summary(self) -> str:
        if len(self.summary) <= 64:
            return self.summary
        return self.summary[:61] + "..."


@dataclass(frozen=True)
class CommitSet:
    """Commits integrated together as one logical change, oldest first."""

    symbol: ResolvedSymbol
    commits: tuple[LandCommit, ...]
    message: str

    def __post_init__(self) -> None:
        if not self.commits:
            raise ValueError(f"Commit set for '{self.symbol.raw}' must contain at least one commit")

    @property
    def newest(self) -> LandCommit:
        return self.commits[-1]


@dataclass(frozen=True)
class BranchUpstream:
    """The `branch.<name>.remote` / `branch.<name>.merge` pair for one branch."""

    remote: str
    merge_ref: str

    @property
    def is_local(self) -> bool:
        return self.remote == "."

    @property
    def branch_name(self) -> str:
        return self.merge_ref.removeprefix("refs/heads/")


@dataclass(frozen=True)
class UpstreamPath:
    """Chain of tracking links from a local branch toward a remote branch.

    local_branches starts with the branch the walk began from and lists every
    local branch passed through. remote_name/remote_branch are set only when
    the chain ends at a real remote.
    """

    local_branches: tuple[str, ...]
    remote_name: str | None = None
    remote_branch: str | None = None
    cycle: tuple[str, ...] | None = None

    @property
    def length(self) -> int:
        links = len(self.local_branches) - 1
        if self.remote_name is not None or self.cycle is not None:
            links += 1
        return links

    @property
    def is_connected_to_remote(self) -> bool:
        return self.cycle is None and self.remote_name is not None

"""Git operations subpackage.

This subpackage provides abstractions over git operations with support for
testing via fakes.
"""

from gitland.core.git.abc import EMPTY_TREE_HASH, CommitIdentity, Git, RawCommit
from gitland.core.git.real import RealGit

__all__ = [
    "EMPTY_TREE_HASH",
    "CommitIdentity",
    "Git",
    "RawCommit",
    "RealGit",
]

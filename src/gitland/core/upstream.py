"""Follow local tracking configuration from a branch toward a remote."""

import logging
from pathlib import Path

from gitland.core.git.abc import Git
from gitland.core.models import UpstreamPath

logger = logging.getLogger(__name__)


def get_path_to_upstream(git: Git, repo_root: Path, branch: str) -> UpstreamPath:
    """Walk branch upstreams until a remote branch, a dead end, or a cycle.

    A branch whose upstream remote is "." tracks another local branch, so the
    walk continues from that branch. Any other remote ends the walk.

    Example:
        feature -> (.) master -> (origin) master
        gives local_branches=("feature", "master"), remote_name="origin",
        remote_branch="master".
    """
    local_branches: list[str] = [branch]
    seen = {branch}
    cursor = branch

    while True:
        upstream = git.get_branch_upstream(repo_root, cursor)
        if upstream is None:
            path = UpstreamPath(local_branches=tuple(local_branches))
            break

        if not upstream.is_local:
            path = UpstreamPath(
                local_branches=tuple(local_branches),
                remote_name=upstream.remote,
                remote_branch=upstream.branch_name,
            )
            break

        next_branch = upstream.branch_name
        if next_branch in seen:
            path = UpstreamPath(
                local_branches=tuple(local_branches),
                cycle=(*local_branches, next_branch),
            )
            break

        seen.add(next_branch)
        local_branches.append(next_branch)
        cursor = next_branch

    logger.debug("Upstream path for %s: %s", branch, path)
    return path

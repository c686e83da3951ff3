"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

from gitland.core.config import LandConfig, load_config
from gitland.core.errors import ConfigurationError
from gitland.core.feedback import Feedback, InteractiveFeedback
from gitland.core.git.abc import Git
from gitland.core.git.real import RealGit


@dataclass(frozen=True)
class LandContext:
    """Immutable context holding all dependencies for gitland commands.

    Created at the CLI entry point and threaded through the command. Tests
    construct it directly with a FakeGit and pass it as the click `obj`.
    """

    git: Git
    feedback: Feedback
    cwd: Path  # Current working directory at CLI invocation
    repo_root: Path | None
    config: LandConfig

    def require_repo_root(self) -> Path:
        if self.repo_root is None:
            raise ConfigurationError(f"Not inside a git repository: {self.cwd}")
        return self.repo_root

    def with_feedback(self, feedback: Feedback) -> "LandContext":
        return LandContext(
            git=self.git,
            feedback=feedback,
            cwd=self.cwd,
            repo_root=self.repo_root,
            config=self.config,
        )


def create_context(*, cwd: Path | None = None) -> LandContext:
    """Create production context with real implementations.

    Args:
        cwd: Directory to discover the repository from (default: process cwd)

    Returns:
        LandContext backed by RealGit. Outside a repository, repo_root is None
        and the configuration is empty.
    """
    if cwd is None:
        cwd = Path.cwd()

    git = RealGit()
    repo_root = git.get_repository_root(cwd)
    config = load_config(repo_root) if repo_root is not None else LandConfig()

    return LandContext(
        git=git,
        feedback=InteractiveFeedback(),
        cwd=cwd,
        repo_root=repo_root,
        config=config,
    )

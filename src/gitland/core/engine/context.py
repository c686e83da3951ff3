"""Dependencies shared by the engine's phase functions."""

from dataclasses import dataclass
from pathlib import Path

from gitland.core.config import LandConfig
from gitland.core.engine.state import EngineRunState, LandOptions
from gitland.core.feedback import Feedback
from gitland.core.git.abc import Git


@dataclass(frozen=True)
class EngineContext:
    """Everything one engine run needs, passed to each phase function.

    The context itself is frozen; `state` is the single mutable value and
    lives exactly as long as the run.
    """

    git: Git
    repo_root: Path
    feedback: Feedback
    options: LandOptions
    config: LandConfig
    state: EngineRunState

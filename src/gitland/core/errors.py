"""Error taxonomy for land operations.

Every failure the engine reports to the user is a LandError subclass. The CLI
renders these as a single "Error:" line; anything else propagates as a crash.

- ConfigurationError: bad or ambiguous target selection, raised before any
  repository mutation.
- NoOpError: the change produces an empty diff against the target.
- ConflictError: the integration (or a cascade rebase) did not apply cleanly.
  The working copy has already been rolled back when this is raised.
- PublishError: fetch, push or Perforce sync/submit failed. The whole land
  operation must be run again.
- InternalConsistencyError: git produced output the engine cannot parse.
"""


class LandError(Exception):
    """Base class for user-facing land failures."""


class ConfigurationError(LandError):
    """Invalid, ambiguous or unsatisfiable target selection."""


class NoOpError(LandError):
    """Landing would not change the target."""


class ConflictError(LandError):
    """Changes could not be integrated cleanly."""


class PublishError(LandError):
    """Network or bridge operation failed after local work may have happened."""


class InternalConsistencyError(LandError):
    """Output from git did not match the expected format."""

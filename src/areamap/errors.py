"""
Error and warning types raised by the choropleth pipeline.

Every failure is tagged with the pipeline stage that produced it so that
callers can report which step of load, join, filter or render went wrong.
"""


class PipelineError(Exception):
    """Base class for pipeline failures.

    Attributes:
        stage: Name of the stage that failed ("load", "join", "filter", "render")
    """

    stage = "pipeline"

    def __init__(self, message: str, stage: str = None):
        if stage is not None:
            self.stage = stage
        self.detail = message
        super().__init__(f"[{self.stage}] {message}")


class LoadError(PipelineError):
    """Input files are missing, unreadable, or lack the identifier column."""

    stage = "load"


class OrderViolation(PipelineError):
    """A join was attempted without the region table as the left operand."""

    stage = "join"


class ProjectionError(PipelineError):
    """Interactive rendering was attempted on non-geographic coordinates."""

    stage = "render"


class JoinKeyMismatch(UserWarning):
    """No identifiers overlap between the region and measurement tables."""


class DuplicateKeyWarning(UserWarning):
    """The measurement table repeats an identifier; the first row is kept."""

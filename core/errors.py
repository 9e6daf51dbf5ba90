"""
Failure taxonomy for the live pipeline.

None of these are fatal: the coordinator catches each one and degrades to
"no update this cycle".
"""


class PipelineError(Exception):
    """Base class for recoverable pipeline failures."""


class DetectionFailure(PipelineError):
    """The face detector raised or returned garbage; the frame is dropped."""


class InvalidRegion(PipelineError):
    """Bounding box is degenerate or cannot be cut out of the frame buffer."""


class TransportFailure(PipelineError):
    """Network error, non-200 status, or a response without a usable emotion."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

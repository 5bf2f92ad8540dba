class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class DocumentNotFoundError(PipelineError):
    """Raised when a document record cannot be found in the record store."""


class PreconditionFailedError(PipelineError):
    """Raised when a stage's required input is missing or out of sequence."""


class OutOfSequenceError(PreconditionFailedError):
    """Raised when a record is not in the status the stage expects to own."""


class InvalidTransitionError(PipelineError):
    """Raised when a status write would leave the transition graph."""

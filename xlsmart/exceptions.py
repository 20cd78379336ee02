"""Domain errors raised by the pipeline and rendered by the API layer."""


class XLSmartError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(XLSmartError):
    """Required configuration (API keys, endpoints) is missing."""

    status_code = 500


class ValidationError(XLSmartError):
    """A request or record failed validation."""

    status_code = 400


class NotFoundError(XLSmartError):
    """A referenced row does not exist."""

    status_code = 404


class InvalidTransitionError(XLSmartError):
    """An upload session status change violates the state machine."""

    status_code = 409


class LLMError(XLSmartError):
    """The LLM endpoint could not be reached or returned an HTTP error."""

    status_code = 500


class LLMResponseError(LLMError):
    """The LLM answered, but the body could not be used."""


class BatchProcessingError(XLSmartError):
    """A batch run aborted outside of per-record error handling."""


class TaskQueueError(XLSmartError):
    """A background run could not be queued."""

    status_code = 500

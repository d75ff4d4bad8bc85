"""
Exception hierarchy for the job status listener.

Everything raised on purpose by this service derives from JobStatusListenerError.
StatusUpdateError marks the failures that are reported back to the caller of an
update endpoint as a 400 with an ``{"error": ...}`` body.
"""


class JobStatusListenerError(Exception):
    """Base class for all service errors."""


class ConfigurationError(JobStatusListenerError):
    """Required configuration is missing or invalid. Fatal at startup."""


class StatusUpdateError(JobStatusListenerError):
    """A status update could not be recorded."""


class DecodeError(StatusUpdateError):
    """The request body is malformed or incomplete."""


class UnknownStateError(StatusUpdateError):
    """The reported state is not one of the recognized job states."""

    def __init__(self, original_input: str):
        super().__init__(f"Unknown job state: {original_input}")
        self.original_input = original_input


class PublisherError(StatusUpdateError):
    """Base class for failures on the publish path."""


class PublishError(PublisherError):
    """A single message could not be sent over the current connection."""


class ReconnectError(PublisherError):
    """The broker connection could not be (re)established."""


class BrokerTransportError(JobStatusListenerError):
    """Raised by broker connections when the underlying client library fails."""

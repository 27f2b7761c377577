"""Exceptions raised by the chair report feature."""


class ChairReportError(Exception):
    """Base exception for chair report operations."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class OrderSourceError(ChairReportError):
    """Orders could not be enumerated at all."""


class EmailTransportError(ChairReportError):
    """The email provider is not configured or rejected the message."""

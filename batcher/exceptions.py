"""
Exceptions raised by the scheduler.
"""


class BatcherError(Exception):
    """Base class for scheduler errors."""


class ConfigurationError(BatcherError):
    """Raised when a request needs configuration that is not set."""


class JobNotFoundError(BatcherError):
    """Raised when a job name is not found anywhere searched."""

    def __init__(self, name: str):
        super().__init__(f"Job not found: {name}")
        self.name = name


class TransformError(BatcherError):
    """Raised by built-in transforms to signal a failed attempt."""


class UnknownTransformError(BatcherError):
    """Raised when no transform is registered under a name."""

    def __init__(self, name: str):
        super().__init__(f"No transform registered under name: {name}")
        self.name = name

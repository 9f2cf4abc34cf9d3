"""Custom exceptions for circapy."""

from circapy.core import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class that automatically logs messages."""

    def __init__(self, message: str) -> None:
        """Initialize a new instance of the LoggedException class.

        Args:
            message: The message to display.
        """
        logger.exception(message)
        super().__init__(message)


class EmptySessionError(LoggedException):
    """The session contained no valid samples to process."""

    pass


class LengthMismatchError(LoggedException, ValueError):
    """Parallel arrays passed to a computation differ in length."""

    pass


class InvalidFileTypeError(LoggedException):
    """circapy did not expect this file extension."""

    pass


class EmptyDirectoryError(LoggedException):
    """No .csv or .parquet session files were found in the directory."""

    pass


class ClassificationError(Exception):
    """Base class for recoverable light source classification failures."""

    pass


class InvalidColorSampleError(ClassificationError, ValueError):
    """An RGB, XYZ or chromaticity value lies outside its valid domain."""

    pass


class ClassificationUnavailableError(ClassificationError):
    """No color sample could be obtained, e.g. camera absent or capture failed."""

    pass

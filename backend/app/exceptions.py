"""
Errors raised by the care scheduling services.

Views translate these into HTTP responses; the message is written for the
person at the keyboard and is returned verbatim as the response detail.
"""


class CareDeskError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CompletionValidationError(CareDeskError):
    """A completion report is missing data its outcome requires."""


class TaskAlreadyCompleted(CareDeskError):
    status_code = 409


class ConcurrentCompletion(CareDeskError):
    """Another completion of the same task committed first."""

    status_code = 409


class TaskNotFound(CareDeskError):
    status_code = 404


class ContractNotFound(CareDeskError):
    status_code = 404

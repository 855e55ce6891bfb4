from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bulk_import.imports.schemas import ImportResult


class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="UNAUTHORIZED")


class ConfigError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")


class ValidationError(AppError):
    """A record field was rejected; never retried."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message, code="VALIDATION_ERROR")


class TransformError(AppError):
    def __init__(self, message: str, details: list[dict] | None = None):
        self.details = details or []
        super().__init__(message, code="TRANSFORM_ERROR")


class TransactionError(AppError):
    """Committing to the document store failed; safe to retry."""

    def __init__(self, message: str):
        super().__init__(message, code="TRANSACTION_ERROR")


class RetryExhaustedError(AppError):
    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Operation failed after {attempts} attempts: {last_error}",
            code="RETRY_EXHAUSTED",
        )


class CheckpointError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="CHECKPOINT_ERROR")


class ImportAbortedError(AppError):
    """A batch failed with continue-on-error disabled.

    Carries the partial result so callers can report what was committed
    before the abort; checkpoints written so far stay valid for a resume.
    """

    def __init__(self, result: "ImportResult", batch_index: int, message: str):
        self.result = result
        self.batch_index = batch_index
        super().__init__(f"Import aborted at batch {batch_index}: {message}", code="IMPORT_ABORTED")

"""Error taxonomy shared by configuration, records and services."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Domain error codes."""

    CONFIGURATION = "CONFIGURATION"
    VALIDATION = "VALIDATION"
    INVALID_DATE = "INVALID_DATE"
    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    INVALID_TIME_VALUE = "INVALID_TIME_VALUE"
    INVALID_EMAIL = "INVALID_EMAIL"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    DUPLICATE_SLUG = "DUPLICATE_SLUG"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"


@dataclass(eq=False)
class DomainError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ConfigurationError(DomainError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.CONFIGURATION, message=message)


class ValidationError(DomainError):
    """Raised when a record fails validation or normalization before saving."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: ErrorCode = ErrorCode.VALIDATION,
    ) -> None:
        super().__init__(code=code, message=message)
        self.field = field

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Translate the first error of a pydantic ValidationError."""
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        message = first.get("msg", "Invalid value")
        if field:
            message = f"{field}: {message}"
        return cls(message, field=field)


class RecordNotFoundError(DomainError):
    """Raised when a record addressed by id does not exist."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(
            code=ErrorCode.RECORD_NOT_FOUND,
            message=f"{collection} record not found",
        )
        self.record_id = record_id


class ConstraintViolation(DomainError):
    """Raised when the store rejects a write on a unique index."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: ErrorCode = ErrorCode.DUPLICATE_SLUG,
    ) -> None:
        super().__init__(code=code, message=message)
        self.field = field

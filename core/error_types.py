from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import TypeVar, Generic, Callable, Optional
import traceback
import logging

T = TypeVar("T")
E = TypeVar("E", bound="AppError")


class ErrorSeverity(Enum):
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass(frozen=True)
class AppError(ABC):
    """Base class for all engine errors with rich context."""

    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    stack_trace: Optional[str] = None

    @abstractmethod
    def error_code(self) -> str:
        """Return unique error code for this error type."""
        pass

    def log(self, logger: logging.Logger) -> None:
        """Log this error with appropriate severity level."""
        log_methods = {
            ErrorSeverity.DEBUG: logger.debug,
            ErrorSeverity.INFO: logger.info,
            ErrorSeverity.WARNING: logger.warning,
            ErrorSeverity.ERROR: logger.error,
            ErrorSeverity.CRITICAL: logger.critical,
        }
        log_method = log_methods.get(self.severity, logger.error)
        log_message = f"[{self.error_code()}] {self.message}"
        if self.source_file:
            log_message += f" at {self.source_file}:{self.source_line}"
        log_method(log_message)


class ParseErrorKind(Enum):
    """Why a byte buffer could not become a document."""
    MALFORMED = auto()
    IO = auto()


@dataclass(frozen=True)
class ParseError(AppError):
    """Error when input bytes cannot be loaded as a document."""

    kind: ParseErrorKind = ParseErrorKind.MALFORMED
    byte_count: Optional[int] = None

    def error_code(self) -> str:
        return f"PARSE_{self.kind.name}_ERR"

    @property
    def is_malformed(self) -> bool:
        return self.kind == ParseErrorKind.MALFORMED


@dataclass(frozen=True)
class ValidationError(AppError):
    """Errors related to input validation."""

    field_name: Optional[str] = None
    invalid_value: Optional[str] = None

    def error_code(self) -> str:
        return "VALIDATION_ERR"


@dataclass(frozen=True)
class ExportError(AppError):
    """Errors raised by the document library while flattening."""

    page_number: Optional[int] = None

    def error_code(self) -> str:
        return "EXPORT_ERR"


class Result(Generic[T], ABC):
    """
    A Result type representing either success or failure.
    Inspired by Rust's Result type for explicit error handling.
    """

    @abstractmethod
    def is_success(self) -> bool:
        """Check if this result represents success."""
        pass

    @abstractmethod
    def is_failure(self) -> bool:
        """Check if this result represents failure."""
        pass

    @abstractmethod
    def unwrap(self) -> T:
        """
        Get the success value.
        Raises RuntimeError if this is a failure.
        """
        pass

    @abstractmethod
    def unwrap_or(self, default: T) -> T:
        """Get the success value or return default if failure."""
        pass

    @abstractmethod
    def map(self, transform: Callable[[T], "U"]) -> "Result[U]":
        """Transform the success value if present."""
        pass

    @abstractmethod
    def get_error(self) -> Optional[AppError]:
        """Get the error if this is a failure, None otherwise."""
        pass

    @abstractmethod
    def on_success(self, action: Callable[[T], None]) -> "Result[T]":
        """Execute action if success, return self for chaining."""
        pass

    @abstractmethod
    def on_failure(self, action: Callable[[AppError], None]) -> "Result[T]":
        """Execute action if failure, return self for chaining."""
        pass


U = TypeVar("U")


@dataclass
class Success(Result[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, transform: Callable[[T], U]) -> Result[U]:
        return Success(transform(self.value))

    def get_error(self) -> Optional[AppError]:
        return None

    def on_success(self, action: Callable[[T], None]) -> Result[T]:
        action(self.value)
        return self

    def on_failure(self, action: Callable[[AppError], None]) -> Result[T]:
        return self


@dataclass
class Failure(Result[T]):
    """Represents a failed result containing an error."""

    error: AppError

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise RuntimeError(f"Attempted to unwrap a Failure: {self.error.message}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, transform: Callable[[T], U]) -> Result[U]:
        return Failure(self.error)

    def get_error(self) -> Optional[AppError]:
        return self.error

    def on_success(self, action: Callable[[T], None]) -> Result[T]:
        return self

    def on_failure(self, action: Callable[[AppError], None]) -> Result[T]:
        action(self.error)
        return self


def capture_exception(
    error_class: type[AppError],
    message: str,
    **extra_fields
) -> AppError:
    """
    Capture current exception context and create an error with stack trace.
    """
    stack = traceback.format_exc()
    frame = traceback.extract_stack()[-2] if len(traceback.extract_stack()) >= 2 else None

    return error_class(
        message=message,
        stack_trace=stack,
        source_file=frame.filename if frame else None,
        source_line=frame.lineno if frame else None,
        **extra_fields
    )


def try_execute(
    operation: Callable[[], T],
    error_class: type[AppError],
    error_message: str,
    **error_fields
) -> Result[T]:
    """
    Execute an operation and wrap exceptions in a Result.
    """
    try:
        return Success(operation())
    except Exception as exception:
        return Failure(capture_exception(
            error_class,
            f"{error_message}: {str(exception)}",
            **error_fields
        ))

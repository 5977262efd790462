"""Custom error types for the tendril package."""

from enum import Enum, auto
from typing import Optional


class ErrorCode(Enum):
    """Error codes for git operations."""

    # Git errors
    NOT_A_REPOSITORY = auto()
    OUTPUT_ERROR = auto()
    URL_DECODE_FAILURE = auto()
    COMMAND_ERROR = auto()

    # Configuration errors
    CONFIG_INVALID = auto()
    CONFIG_PERMISSION = auto()

    UNKNOWN_ERROR = auto()


class GitError(Exception):
    """Custom error type for git operations."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[str] = None,
        branch_name: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize git error.

        Parameters
        ----------
        message : str
            Error message
        code : ErrorCode, optional
            Error code, by default ErrorCode.UNKNOWN_ERROR
        details : Optional[str], optional
            Raw command output or other context, by default None
        branch_name : Optional[str], optional
            Name of the branch involved in the error, by default None
        cause : Optional[Exception], optional
            Original exception that caused this error, by default None
        """
        super().__init__(message)
        self.code = code
        self.details = details
        self.branch_name = branch_name
        self.cause = cause


class ConfigError(GitError):
    """Custom error type for configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize configuration error.

        Parameters
        ----------
        message : str
            Error message
        code : ErrorCode, optional
            Error code, by default ErrorCode.CONFIG_INVALID
        details : Optional[str], optional
            Additional error details, by default None
        cause : Optional[Exception], optional
            Original exception that caused this error, by default None
        """
        super().__init__(message, code=code, details=details, cause=cause)

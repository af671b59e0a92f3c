"""Custom exceptions for branch-atlas"""

from typing import Optional


class BranchAtlasError(Exception):
    """Base exception for all branch-atlas errors."""
    pass


class VcsError(BranchAtlasError):
    """Exception raised when a git command cannot produce usable output."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class NotARepositoryError(VcsError):
    """Exception raised when the working directory is not a git repository."""

    def __init__(self, path: str, operation: str = "open_repository"):
        self.path = path
        super().__init__(operation, f"'{path}' is not a git repository")


class CommandFailedError(VcsError):
    """Exception raised when git exits with a non-zero status."""

    def __init__(self, operation: str, exit_code: Optional[int], stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr.strip()

        message = f"exit {exit_code}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(operation, message)


class CommandTimeoutError(VcsError):
    """Exception raised when git is killed after exceeding its timeout."""

    def __init__(self, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(operation, f"timed out after {timeout:g}s")


class MalformedOutputError(BranchAtlasError):
    """Exception raised when git output does not match the expected record layout."""

    def __init__(self, context: str, detail: Optional[str] = None):
        self.context = context
        self.detail = detail

        error_msg = f"Malformed git output ({context})"
        if detail:
            error_msg += f": {detail}"

        super().__init__(error_msg)


class PartialMetadataFailure(BranchAtlasError):
    """A per-item lookup failed; only that item's optional fields are affected."""

    def __init__(self, item_key: str, cause: Exception):
        self.item_key = item_key
        self.cause = cause
        super().__init__(f"Metadata for '{item_key}' unavailable: {cause}")


class OperationCancelledError(BranchAtlasError):
    """Exception raised when a long-running aggregation is cancelled."""

    def __init__(self, operation: str = "operation"):
        self.operation = operation
        super().__init__(f"{operation} was cancelled")

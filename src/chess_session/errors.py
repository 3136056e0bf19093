"""Error types raised by the session layer."""

from typing import Optional


class ChessSessionError(RuntimeError):
    """Base class for all session-layer errors."""

    status_code = 500


class ValidationError(ChessSessionError):
    """Raised for malformed input such as a bad coordinate or slot."""

    status_code = 400


class AuthorityError(ChessSessionError):
    """Raised when the move authority cannot satisfy a request."""

    def __init__(self, message: str, status: Optional[int] = None,
                 response: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.response = response


class AuthorityRejected(AuthorityError):
    """Raised when the authority refuses a move as illegal or malformed."""

    status_code = 422


class AuthorityUnreachable(AuthorityError):
    """Raised on transport failures, timeouts and unexpected responses."""

    status_code = 503


class NotFound(ChessSessionError):
    """Raised when a remote game or a snapshot slot does not exist."""

    status_code = 404


class Busy(ChessSessionError):
    """Raised when a session-affecting operation is already in flight."""

    status_code = 409


class CorruptSnapshot(ChessSessionError):
    """Raised when a stored blob fails schema validation."""


class StorageError(ChessSessionError):
    """Raised when a storage backend request fails."""


class ReplayFailed(ChessSessionError):
    """Raised when a replay stops before reaching its target."""

    def __init__(self, completed_count: int, failed_at: int,
                 error: Optional[Exception] = None):
        message = f'Reconstruction stopped at move {failed_at + 1}'
        if error is not None:
            message = f'{message}: {error}'
        super().__init__(message)
        self.completed_count = completed_count
        self.failed_at = failed_at
        self.error = error
        if isinstance(error, ChessSessionError):
            self.status_code = error.status_code

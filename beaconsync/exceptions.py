import enum
from typing import Any, Dict, Optional


class ErrorKind(enum.Enum):
    STORAGE_READ_FAILED = "storage_read_failed"
    STORAGE_WRITE_FAILED = "storage_write_failed"
    CORRUPT_CHECKPOINT = "corrupt_checkpoint"
    CHECKPOINT_REGRESSION = "checkpoint_regression"
    UNREACHABLE = "unreachable"
    PROTOCOL_VIOLATION = "protocol_violation"
    CHAIN_MISMATCH = "chain_mismatch"
    CANONICALITY_CONFLICT = "canonicality_conflict"
    BLOCK_NOT_FOUND = "block_not_found"
    BAD_DATABASE = "bad_database"


RETRYABLE_KINDS = frozenset((
    ErrorKind.STORAGE_READ_FAILED,
    ErrorKind.STORAGE_WRITE_FAILED,
    ErrorKind.UNREACHABLE,
))


class BaseBeaconSyncError(Exception):
    """
    The base class for all beaconsync errors.

    Every error carries its ``kind``, a ``context`` mapping identifying the failed
    operation (operation name, metadata key, endpoint, ...) and the underlying
    ``cause`` if there was one.
    """
    kind: ErrorKind

    def __init__(self,
                 message: str,
                 *,
                 cause: Optional[BaseException] = None,
                 **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: Dict[str, Any] = context
        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in sorted(self.context.items()))
        return f"{self.message} ({details})"


class StorageReadFailed(BaseBeaconSyncError):
    """
    Raised when the storage collaborator fails to read a record.
    """
    kind = ErrorKind.STORAGE_READ_FAILED


class StorageWriteFailed(BaseBeaconSyncError):
    """
    Raised when the storage collaborator fails to write a record. The write was
    rolled back, the previous record is still readable.
    """
    kind = ErrorKind.STORAGE_WRITE_FAILED


class CorruptCheckpoint(BaseBeaconSyncError):
    """
    Raised when stored checkpoint bytes can not be decoded. Never retried and never
    replaced by a default, since resetting progress could skip data.
    """
    kind = ErrorKind.CORRUPT_CHECKPOINT


class CheckpointRegression(BaseBeaconSyncError):
    """
    Raised when a checkpoint write would move progress backwards.
    """
    kind = ErrorKind.CHECKPOINT_REGRESSION


class Unreachable(BaseBeaconSyncError):
    """
    Raised on transport failures talking to a remote endpoint: connection errors,
    timeouts and non-2xx responses.
    """
    kind = ErrorKind.UNREACHABLE


class ProtocolViolation(BaseBeaconSyncError):
    """
    Raised when a remote endpoint answers successfully but with a malformed payload.
    """
    kind = ErrorKind.PROTOCOL_VIOLATION


class ChainMismatch(BaseBeaconSyncError):
    """
    Raised when a remote endpoint serves a different chain than the one configured.
    This is fatal to the calling pipeline.
    """
    kind = ErrorKind.CHAIN_MISMATCH

    def __init__(self, message: str, *, expected: int, actual: int, **context: Any) -> None:
        super().__init__(message, expected=expected, actual=actual, **context)
        self.expected = expected
        self.actual = actual


class CanonicalityConflict(BaseBeaconSyncError):
    """
    Raised when a canonical-chain pass tries to flip the already known status
    of a block. Only an explicit resync may reopen it.
    """
    kind = ErrorKind.CANONICALITY_CONFLICT


class BlockNotFound(BaseBeaconSyncError):
    """
    Raised when a block with the given slot and root does not exist.
    """
    kind = ErrorKind.BLOCK_NOT_FOUND


class BadDatabaseError(BaseBeaconSyncError):
    """
    The chain database is not in the expected format
     - wrong schema version
     - unknown tables
    """
    kind = ErrorKind.BAD_DATABASE

import pytest

from beaconsync.exceptions import (
    BadDatabaseError,
    BlockNotFound,
    CanonicalityConflict,
    ChainMismatch,
    CheckpointRegression,
    CorruptCheckpoint,
    ErrorKind,
    ProtocolViolation,
    StorageReadFailed,
    StorageWriteFailed,
    Unreachable,
)


@pytest.mark.parametrize(
    'error_class, kind, retryable',
    (
        (StorageReadFailed, ErrorKind.STORAGE_READ_FAILED, True),
        (StorageWriteFailed, ErrorKind.STORAGE_WRITE_FAILED, True),
        (Unreachable, ErrorKind.UNREACHABLE, True),
        (CorruptCheckpoint, ErrorKind.CORRUPT_CHECKPOINT, False),
        (CheckpointRegression, ErrorKind.CHECKPOINT_REGRESSION, False),
        (ProtocolViolation, ErrorKind.PROTOCOL_VIOLATION, False),
        (CanonicalityConflict, ErrorKind.CANONICALITY_CONFLICT, False),
        (BlockNotFound, ErrorKind.BLOCK_NOT_FOUND, False),
        (BadDatabaseError, ErrorKind.BAD_DATABASE, False),
    ),
)
def test_error_kinds(error_class, kind, retryable):
    error = error_class("boom")
    assert error.kind is kind
    assert error.retryable is retryable


def test_error_carries_context_and_cause():
    cause = ConnectionError("refused")
    error = Unreachable(
        "Request failed",
        cause=cause,
        operation='eth_chainId',
        endpoint='http://localhost:8545',
    )

    assert error.cause is cause
    assert error.__cause__ is cause
    assert error.context == {'operation': 'eth_chainId', 'endpoint': 'http://localhost:8545'}
    assert str(error) == (
        "Request failed (endpoint='http://localhost:8545', operation='eth_chainId')"
    )


def test_error_without_context_str():
    assert str(CorruptCheckpoint("bad bytes")) == "bad bytes"


def test_chain_mismatch_is_fatal():
    error = ChainMismatch("wrong chain", expected=1, actual=5, endpoint='http://node')
    assert error.kind is ErrorKind.CHAIN_MISMATCH
    assert error.retryable is False
    assert error.expected == 1
    assert error.actual == 5
    assert error.context['endpoint'] == 'http://node'

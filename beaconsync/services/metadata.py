import json
from typing import Any, Dict, Generic, NamedTuple, Type, TypeVar

from beaconsync._utils.logging import get_logger
from beaconsync.chaindb.abc import MetadataStoreAPI
from beaconsync.constants import NOT_STARTED
from beaconsync.exceptions import CheckpointRegression, CorruptCheckpoint


class Metadata(NamedTuple):
    """
    Progress of a beacon block sub-indexer.
    """
    latest_slot: int = NOT_STARTED

    @property
    def position(self) -> int:
        return self.latest_slot


class ETH1DepositsMetadata(NamedTuple):
    """
    Progress of the ETH1 deposit log retrieval.
    """
    latest_block: int = NOT_STARTED

    @property
    def position(self) -> int:
        return self.latest_block


TMetadata = TypeVar('TMetadata', Metadata, ETH1DepositsMetadata)


def encode_metadata(metadata: NamedTuple) -> bytes:
    return json.dumps(metadata._asdict(), sort_keys=True).encode('utf8')


def decode_metadata(metadata_class: Type[TMetadata], key: str, raw: bytes) -> TMetadata:
    """
    Decode ``raw`` into ``metadata_class``.

    Unknown fields are ignored and missing fields take their defaults, any other
    deviation raises :class:`~beaconsync.exceptions.CorruptCheckpoint`.
    """
    try:
        decoded = json.loads(raw.decode('utf8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise CorruptCheckpoint(
            "Checkpoint is not valid JSON",
            cause=err,
            operation="decode checkpoint",
            key=key,
        ) from err

    if not isinstance(decoded, dict):
        raise CorruptCheckpoint(
            f"Checkpoint must be a JSON object, got {type(decoded).__name__}",
            operation="decode checkpoint",
            key=key,
        )

    fields: Dict[str, Any] = {}
    for name in metadata_class._fields:
        if name not in decoded:
            continue
        value = decoded[name]
        # bool is an int subclass, but `true` is never a position
        if not isinstance(value, int) or isinstance(value, bool):
            raise CorruptCheckpoint(
                f"Checkpoint field {name!r} must be an integer, got {value!r}",
                operation="decode checkpoint",
                key=key,
            )
        if value < NOT_STARTED:
            raise CorruptCheckpoint(
                f"Checkpoint field {name!r} out of range: {value}",
                operation="decode checkpoint",
                key=key,
            )
        fields[name] = value
    return metadata_class(**fields)


class MetadataService(Generic[TMetadata]):
    """
    Persists the progress of a single sub-indexer under ``key``.

    Nothing is cached in memory, every :meth:`get` reads through to the store.
    """
    logger = get_logger('beaconsync.services.metadata.MetadataService')

    def __init__(self,
                 chaindb: MetadataStoreAPI,
                 key: str,
                 metadata_class: Type[TMetadata] = Metadata) -> None:  # type: ignore
        self._chaindb = chaindb
        self.key = key
        self._metadata_class = metadata_class

    def get(self) -> TMetadata:
        raw = self._chaindb.metadata(self.key)
        if raw is None:
            return self._metadata_class()
        return decode_metadata(self._metadata_class, self.key, raw)

    def set(self, metadata: TMetadata, allow_regression: bool = False) -> None:
        if not isinstance(metadata, self._metadata_class):
            raise TypeError(
                f"Expected {self._metadata_class.__name__} for {self.key!r}, got {metadata!r}"
            )
        if not allow_regression:
            current = self.get()
            if metadata.position < current.position:
                raise CheckpointRegression(
                    f"Checkpoint would move back from {current.position} to {metadata.position}",
                    operation="set checkpoint",
                    key=self.key,
                )
        self._chaindb.set_metadata(self.key, encode_metadata(metadata))
        self.logger.debug("Checkpoint %s advanced to %d", self.key, metadata.position)

    def reset(self) -> None:
        self._chaindb.clear_metadata(self.key)
        self.logger.info("Checkpoint %s reset", self.key)

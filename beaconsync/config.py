import inspect
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from cached_property import cached_property
from eth_typing import Address, BlockNumber
from eth_utils import is_hex_address, to_canonical_address

from beaconsync.chaindb.orm import database_uri_for_path
from beaconsync.constants import (
    DEFAULT_ETH1_BLOCKS_CONFIRMED,
    DEFAULT_ETH1_LOG_RANGE_SIZE,
    DEFAULT_MAX_ERROR_BODY_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_REVERIFY_INTERVAL,
    DEFAULT_SLOTS_PER_EPOCH,
)

DEFAULT_DATABASE_PATH = Path("beaconsync.sqlite")
MEMORY_DATABASE_PATH = Path(":memory:")


class Config:
    """
    Represents the settings of a single indexer instance.

    The expected chain id is fixed for the lifetime of the instance, the endpoint it is
    checked against may change.
    """

    def __init__(
        self,
        *,
        eth1_endpoint: str,
        expected_chain_id: int,
        deposit_contract_address: str,
        database_path: Path = DEFAULT_DATABASE_PATH,
        deposit_contract_deploy_block: int = 0,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_error_body_size: int = DEFAULT_MAX_ERROR_BODY_SIZE,
        reverify_interval: float = DEFAULT_REVERIFY_INTERVAL,
        eth1_blocks_confirmed: int = DEFAULT_ETH1_BLOCKS_CONFIRMED,
        eth1_log_range_size: int = DEFAULT_ETH1_LOG_RANGE_SIZE,
        slots_per_epoch: int = DEFAULT_SLOTS_PER_EPOCH,
        log_levels: Dict[Optional[str], int] = None,
    ) -> None:
        if not eth1_endpoint:
            raise ValueError("Must provide an ETH1 endpoint")
        if expected_chain_id < 0:
            raise ValueError(f"Invalid expected chain id: {expected_chain_id}")
        if not is_hex_address(deposit_contract_address):
            raise ValueError(f"Invalid deposit contract address: {deposit_contract_address}")
        if deposit_contract_deploy_block < 0:
            raise ValueError(
                f"Invalid deposit contract deploy block: {deposit_contract_deploy_block}"
            )
        if request_timeout <= 0:
            raise ValueError(f"`request_timeout` must be positive: {request_timeout}")
        if max_error_body_size <= 0:
            raise ValueError(f"`max_error_body_size` must be positive: {max_error_body_size}")
        if reverify_interval < 0:
            raise ValueError(f"`reverify_interval` can not be negative: {reverify_interval}")
        if eth1_blocks_confirmed < 0:
            raise ValueError(
                f"`eth1_blocks_confirmed` can not be negative: {eth1_blocks_confirmed}"
            )
        if eth1_log_range_size <= 0:
            raise ValueError(f"`eth1_log_range_size` must be positive: {eth1_log_range_size}")
        if slots_per_epoch <= 0:
            raise ValueError(f"`slots_per_epoch` must be positive: {slots_per_epoch}")

        self.eth1_endpoint = eth1_endpoint
        self.expected_chain_id = expected_chain_id
        self._deposit_contract_address = deposit_contract_address
        self.database_path = Path(database_path)
        self.deposit_contract_deploy_block = BlockNumber(deposit_contract_deploy_block)
        self.request_timeout = request_timeout
        self.max_error_body_size = max_error_body_size
        self.reverify_interval = reverify_interval
        self.eth1_blocks_confirmed = eth1_blocks_confirmed
        self.eth1_log_range_size = eth1_log_range_size
        self.slots_per_epoch = slots_per_epoch
        self.log_levels = log_levels or {}

    @cached_property
    def deposit_contract_address(self) -> Address:
        return Address(to_canonical_address(self._deposit_contract_address))

    @cached_property
    def database_uri(self) -> str:
        return database_uri_for_path(self.database_path)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "Config":
        unknown = set(values) - _CONFIG_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**values)


_CONFIG_KEYS = frozenset(inspect.signature(Config.__init__).parameters) - {"self"}

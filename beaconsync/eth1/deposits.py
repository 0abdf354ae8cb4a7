from typing import (
    Any,
    Dict,
    Iterable,
    List,
    NamedTuple,
    Optional,
    Tuple,
)

from eth_abi import decode as decode_abi
from eth_abi.exceptions import DecodingError
from eth_typing import (
    Address,
    BLSPubkey,
    BLSSignature,
    BlockNumber,
    Hash32,
)
from eth_utils import (
    encode_hex,
    humanize_hash,
    to_hex,
)

from beaconsync._utils.logging import get_logger
from beaconsync.chaindb.abc import ChainDBAPI
from beaconsync.chaindb.types import ETH1Deposit
from beaconsync.constants import (
    DEFAULT_ETH1_BLOCKS_CONFIRMED,
    DEFAULT_ETH1_LOG_RANGE_SIZE,
    DEPOSIT_EVENT_DATA_TYPES,
    DEPOSIT_EVENT_TOPIC,
    ETH1_DEPOSITS_METADATA_KEY,
)
from beaconsync.exceptions import ProtocolViolation
from beaconsync.services.metadata import ETH1DepositsMetadata, MetadataService
from beaconsync.typing import Gwei, Timestamp

from .chain_id import ChainIdentityVerifier
from .rpc import JSONRPCClient, parse_data, parse_quantity


def _expect_dict(value: Any, method: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ProtocolViolation(
            f"Expected a JSON object, got {value!r}",
            operation=method,
        )
    return value


def _field(value: Dict[str, Any], name: str, method: str) -> Any:
    try:
        return value[name]
    except KeyError as err:
        raise ProtocolViolation(
            f"Missing field {name!r}",
            cause=err,
            operation=method,
            field=name,
        ) from err


class DepositLog(NamedTuple):
    block_number: BlockNumber
    block_hash: Hash32
    tx_hash: Hash32
    log_index: int
    pubkey: BLSPubkey
    withdrawal_credentials: Hash32
    amount: Gwei
    signature: BLSSignature
    index: int

    @classmethod
    def from_rpc_log_dict(cls, log: Dict[str, Any]) -> "DepositLog":
        method = 'eth_getLogs'
        topics = _field(log, 'topics', method)
        if not isinstance(topics, list) or not topics:
            raise ProtocolViolation(f"Invalid log topics: {topics!r}", operation=method)
        if parse_data(topics[0], 'topics', method, size=32) != DEPOSIT_EVENT_TOPIC:
            raise ProtocolViolation(f"Not a deposit event: {topics[0]}", operation=method)

        data = parse_data(_field(log, 'data', method), 'data', method)
        try:
            pubkey, withdrawal_credentials, amount, signature, index = decode_abi(
                DEPOSIT_EVENT_DATA_TYPES,
                data,
            )
        except DecodingError as err:
            raise ProtocolViolation(
                "Can not decode deposit event data",
                cause=err,
                operation=method,
            ) from err

        expected_sizes = (
            ('pubkey', pubkey, 48),
            ('withdrawal_credentials', withdrawal_credentials, 32),
            ('amount', amount, 8),
            ('signature', signature, 96),
            ('index', index, 8),
        )
        for name, value, size in expected_sizes:
            if len(value) != size:
                raise ProtocolViolation(
                    f"Deposit event {name} must be {size} bytes, got {len(value)}",
                    operation=method,
                    field=name,
                )

        return cls(
            block_number=BlockNumber(
                parse_quantity(_field(log, 'blockNumber', method), 'blockNumber', method)
            ),
            block_hash=Hash32(
                parse_data(_field(log, 'blockHash', method), 'blockHash', method, size=32)
            ),
            tx_hash=Hash32(parse_data(
                _field(log, 'transactionHash', method), 'transactionHash', method, size=32,
            )),
            log_index=parse_quantity(_field(log, 'logIndex', method), 'logIndex', method),
            pubkey=BLSPubkey(pubkey),
            withdrawal_credentials=Hash32(withdrawal_credentials),
            # both are little endian uint64 in the deposit contract
            amount=Gwei(int.from_bytes(amount, 'little')),
            signature=BLSSignature(signature),
            index=int.from_bytes(index, 'little'),
        )


class _TransactionInfo(NamedTuple):
    sender: Address
    recipient: Address
    gas_price: int
    gas_used: int


class ETH1DepositService:
    """
    Retrieves deposit contract logs from an ETH1 endpoint, in explicit block ranges,
    and stores them as :class:`~beaconsync.chaindb.types.ETH1Deposit`.

    Progress is kept under the ``eth1deposits.getlogs`` checkpoint, which only moves
    once every deposit of a range is stored.
    """
    logger = get_logger('beaconsync.eth1.deposits.ETH1DepositService')

    def __init__(self,
                 client: JSONRPCClient,
                 verifier: ChainIdentityVerifier,
                 chaindb: ChainDBAPI,
                 deposit_contract_address: Address,
                 start_block: BlockNumber = BlockNumber(0),
                 range_size: int = DEFAULT_ETH1_LOG_RANGE_SIZE,
                 blocks_confirmed: int = DEFAULT_ETH1_BLOCKS_CONFIRMED) -> None:
        if len(deposit_contract_address) != 20:
            raise ValueError(f"Invalid deposit contract address: {deposit_contract_address!r}")
        if start_block < 0:
            raise ValueError(f"Invalid start block: {start_block}")
        if range_size <= 0:
            raise ValueError(f"`range_size` must be positive: {range_size}")
        if blocks_confirmed < 0:
            raise ValueError(f"`blocks_confirmed` can not be negative: {blocks_confirmed}")

        self._client = client
        self._verifier = verifier
        self._chaindb = chaindb
        self.deposit_contract_address = deposit_contract_address
        self.start_block = start_block
        self.range_size = range_size
        self.blocks_confirmed = blocks_confirmed
        self.metadata = MetadataService(
            chaindb,
            ETH1_DEPOSITS_METADATA_KEY,
            ETH1DepositsMetadata,
        )

    #
    # Remote calls
    #
    def get_latest_block_number(self) -> BlockNumber:
        self._verifier.ensure_verified()
        result = self._client.request('eth_blockNumber')
        return BlockNumber(parse_quantity(result, 'result', 'eth_blockNumber'))

    def get_logs(self, from_block: BlockNumber, to_block: BlockNumber) -> Tuple[DepositLog, ...]:
        method = 'eth_getLogs'
        result = self._client.request(method, [{
            'fromBlock': to_hex(primitive=from_block),
            'toBlock': to_hex(primitive=to_block),
            'address': encode_hex(self.deposit_contract_address),
            'topics': [encode_hex(DEPOSIT_EVENT_TOPIC)],
        }])
        if not isinstance(result, list):
            raise ProtocolViolation(f"Expected a list of logs, got {result!r}", operation=method)

        logs: List[DepositLog] = []
        for entry in result:
            log = _expect_dict(entry, method)
            # logs of blocks that were reorganized away
            if log.get('removed', False) is True:
                continue
            logs.append(DepositLog.from_rpc_log_dict(log))
        return tuple(logs)

    def _get_block_timestamp(self, block_hash: Hash32) -> Timestamp:
        method = 'eth_getBlockByHash'
        result = self._client.request(method, [encode_hex(block_hash), False])
        if result is None:
            raise ProtocolViolation(
                f"Unknown block {humanize_hash(block_hash)}",
                operation=method,
            )
        block = _expect_dict(result, method)
        return Timestamp(parse_quantity(_field(block, 'timestamp', method), 'timestamp', method))

    def _get_transaction_info(self, tx_hash: Hash32) -> _TransactionInfo:
        method = 'eth_getTransactionByHash'
        transaction = _expect_dict(self._client.request(method, [encode_hex(tx_hash)]), method)
        sender = parse_data(_field(transaction, 'from', method), 'from', method, size=20)
        recipient = parse_data(_field(transaction, 'to', method), 'to', method, size=20)
        gas_price = parse_quantity(_field(transaction, 'gasPrice', method), 'gasPrice', method)

        method = 'eth_getTransactionReceipt'
        receipt = _expect_dict(self._client.request(method, [encode_hex(tx_hash)]), method)
        gas_used = parse_quantity(_field(receipt, 'gasUsed', method), 'gasUsed', method)

        return _TransactionInfo(
            sender=Address(sender),
            recipient=Address(recipient),
            gas_price=gas_price,
            gas_used=gas_used,
        )

    #
    # Core API
    #
    def fetch_range(self,
                    from_block: BlockNumber,
                    to_block: BlockNumber) -> Tuple[ETH1Deposit, ...]:
        if from_block > to_block:
            raise ValueError(f"Invalid block range: {from_block}-{to_block}")
        self._verifier.ensure_verified()

        logs = self.get_logs(from_block, to_block)
        timestamps: Dict[Hash32, Timestamp] = {}
        transactions: Dict[Hash32, _TransactionInfo] = {}
        deposits = []
        for log in logs:
            if log.block_hash not in timestamps:
                timestamps[log.block_hash] = self._get_block_timestamp(log.block_hash)
            if log.tx_hash not in transactions:
                transactions[log.tx_hash] = self._get_transaction_info(log.tx_hash)
            transaction = transactions[log.tx_hash]

            deposits.append(ETH1Deposit(
                eth1_block_number=log.block_number,
                eth1_block_hash=log.block_hash,
                eth1_block_timestamp=timestamps[log.block_hash],
                eth1_tx_hash=log.tx_hash,
                eth1_log_index=log.log_index,
                eth1_sender=transaction.sender,
                eth1_recipient=transaction.recipient,
                eth1_gas_used=transaction.gas_used,
                eth1_gas_price=transaction.gas_price,
                deposit_index=log.index,
                validator_pubkey=log.pubkey,
                withdrawal_credentials=log.withdrawal_credentials,
                signature=log.signature,
                amount=log.amount,
            ))

        self.logger.debug(
            "Fetched %d deposits from ETH1 blocks %d-%d",
            len(deposits),
            from_block,
            to_block,
        )
        return tuple(deposits)

    def store(self, deposits: Iterable[ETH1Deposit]) -> None:
        self._chaindb.upsert_eth1_deposits(deposits)

    def sync(self, to_block: Optional[BlockNumber] = None) -> int:
        """
        Fetch and store every deposit from the checkpoint up to ``to_block``, which
        defaults to the latest block minus the confirmation distance. Return the last
        block whose deposits are stored.
        """
        self._verifier.ensure_verified()
        if to_block is None:
            to_block = BlockNumber(self.get_latest_block_number() - self.blocks_confirmed)

        checkpoint = self.metadata.get()
        from_block = max(checkpoint.latest_block + 1, self.start_block)
        if to_block < from_block:
            self.logger.debug(
                "Deposits already stored up to ETH1 block %d, target is %d",
                checkpoint.latest_block,
                to_block,
            )
            return checkpoint.latest_block

        for range_start in range(from_block, to_block + 1, self.range_size):
            range_end = BlockNumber(min(range_start + self.range_size - 1, to_block))
            deposits = self.fetch_range(BlockNumber(range_start), range_end)
            self.store(deposits)
            self.metadata.set(ETH1DepositsMetadata(latest_block=range_end))
            self.logger.info(
                "Stored %d deposits from ETH1 blocks %d-%d",
                len(deposits),
                range_start,
                range_end,
            )

        return to_block

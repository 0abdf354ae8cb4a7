from eth_utils import encode_hex, to_hex
import pytest
import requests

from beaconsync.eth1 import ChainIdentityVerifier, JSONRPCClient
from beaconsync.tools.eth1 import FakeETH1Session
from beaconsync.tools.factories import MemoryChainDBFactory, deposit_log_dict

ENDPOINT = 'http://localhost:8545'
DEPOSIT_CONTRACT_ADDRESS = bytes.fromhex('00000000219ab540356cbb839cbe05303d7705fa')


class FakeETH1Chain:
    """
    Serves deposit logs from ``deposits`` through a :class:`FakeETH1Session`.
    """

    def __init__(self, session, chain_id=1):
        self.session = session
        self.deposits = []
        self.removed = []
        self.block_number = 0
        self.failing_ranges = set()

        session.returns('eth_chainId', to_hex(primitive=chain_id))
        session.on('eth_blockNumber', lambda params: to_hex(primitive=self.block_number))
        session.on('eth_getLogs', self._get_logs)
        session.on('eth_getBlockByHash', self._get_block)
        session.on('eth_getTransactionByHash', self._get_transaction)
        session.on('eth_getTransactionReceipt', self._get_receipt)

    def _find(self, field, value):
        for deposit in self.deposits + self.removed:
            if encode_hex(getattr(deposit, field)) == value:
                return deposit
        return None

    def _get_logs(self, params):
        log_filter, = params
        from_block = int(log_filter['fromBlock'], 16)
        to_block = int(log_filter['toBlock'], 16)
        if (from_block, to_block) in self.failing_ranges:
            raise requests.ConnectionError("connection reset by peer")

        logs = [
            deposit_log_dict(deposit, DEPOSIT_CONTRACT_ADDRESS)
            for deposit in self.deposits
            if from_block <= deposit.eth1_block_number <= to_block
        ] + [
            deposit_log_dict(deposit, DEPOSIT_CONTRACT_ADDRESS, removed=True)
            for deposit in self.removed
            if from_block <= deposit.eth1_block_number <= to_block
        ]
        return logs

    def _get_block(self, params):
        block_hash, _ = params
        deposit = self._find('eth1_block_hash', block_hash)
        if deposit is None:
            return None
        return {
            'hash': block_hash,
            'number': to_hex(primitive=deposit.eth1_block_number),
            'timestamp': to_hex(primitive=deposit.eth1_block_timestamp),
        }

    def _get_transaction(self, params):
        deposit = self._find('eth1_tx_hash', params[0])
        return {
            'hash': params[0],
            'from': encode_hex(deposit.eth1_sender),
            'to': encode_hex(deposit.eth1_recipient),
            'gasPrice': to_hex(primitive=deposit.eth1_gas_price),
        }

    def _get_receipt(self, params):
        deposit = self._find('eth1_tx_hash', params[0])
        return {
            'transactionHash': params[0],
            'gasUsed': to_hex(primitive=deposit.eth1_gas_used),
        }


@pytest.fixture
def session():
    return FakeETH1Session()


@pytest.fixture
def client(session):
    return JSONRPCClient(ENDPOINT, session=session, timeout=5, max_error_body_size=16)


@pytest.fixture
def eth1_chain(session):
    return FakeETH1Chain(session)


@pytest.fixture
def verifier(client, eth1_chain):
    return ChainIdentityVerifier(client, expected_chain_id=1)


@pytest.fixture
def chaindb():
    return MemoryChainDBFactory()

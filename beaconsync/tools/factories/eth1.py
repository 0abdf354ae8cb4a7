try:
    import factory
except ImportError:
    raise ImportError("The beaconsync.tools.factories module requires the `factory_boy` library.")

from typing import Any, Dict

from eth_abi import encode as encode_abi
from eth_utils import encode_hex, to_hex

from beaconsync.chaindb.types import ETH1Deposit
from beaconsync.constants import DEPOSIT_EVENT_DATA_TYPES, DEPOSIT_EVENT_TOPIC

from ._utils import random_bytes


class ETH1DepositFactory(factory.Factory):
    class Meta:
        model = ETH1Deposit

    eth1_block_number = factory.Sequence(lambda n: n)
    eth1_block_hash = factory.LazyFunction(random_bytes(32))
    eth1_block_timestamp = 1606824023
    eth1_tx_hash = factory.LazyFunction(random_bytes(32))
    eth1_log_index = 0
    eth1_sender = factory.LazyFunction(random_bytes(20))
    eth1_recipient = factory.LazyFunction(random_bytes(20))
    eth1_gas_used = 53000
    eth1_gas_price = 10 ** 9
    deposit_index = factory.Sequence(lambda n: n)
    validator_pubkey = factory.LazyFunction(random_bytes(48))
    withdrawal_credentials = factory.LazyFunction(random_bytes(32))
    signature = factory.LazyFunction(random_bytes(96))
    amount = 32 * 10 ** 9


def deposit_log_dict(deposit: ETH1Deposit,
                     contract_address: bytes,
                     removed: bool = False) -> Dict[str, Any]:
    """
    Render ``deposit`` the way an ETH1 node returns it from ``eth_getLogs``.
    """
    data = encode_abi(DEPOSIT_EVENT_DATA_TYPES, (
        deposit.validator_pubkey,
        deposit.withdrawal_credentials,
        deposit.amount.to_bytes(8, 'little'),
        deposit.signature,
        deposit.deposit_index.to_bytes(8, 'little'),
    ))
    return {
        'address': encode_hex(contract_address),
        'blockHash': encode_hex(deposit.eth1_block_hash),
        'blockNumber': to_hex(primitive=deposit.eth1_block_number),
        'data': encode_hex(data),
        'logIndex': to_hex(primitive=deposit.eth1_log_index),
        'removed': removed,
        'topics': [encode_hex(DEPOSIT_EVENT_TOPIC)],
        'transactionHash': encode_hex(deposit.eth1_tx_hash),
        'transactionIndex': '0x0',
    }

from eth_typing import Hash32
from eth_utils import event_abi_to_log_topic

#
# Checkpoints
#
# Sentinel for "nothing processed yet"; never a real slot or block number.
NOT_STARTED = -1

BLOCKS_METADATA_KEY = "blocks.standard"
ETH1_DEPOSITS_METADATA_KEY = "eth1deposits.getlogs"

#
# ETH1 JSON-RPC
#
JSONRPC_VERSION = "2.0"
# Fixed request id, independent of the endpoint.
JSONRPC_REQUEST_ID = 1901

DEFAULT_REQUEST_TIMEOUT = 30  # seconds
DEFAULT_MAX_ERROR_BODY_SIZE = 1024  # bytes
DEFAULT_REVERIFY_INTERVAL = 600  # seconds

DEFAULT_ETH1_BLOCKS_CONFIRMED = 12
DEFAULT_ETH1_LOG_RANGE_SIZE = 1024

#
# Deposit contract
#
DEPOSIT_EVENT_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": False, "internalType": "bytes", "name": "pubkey", "type": "bytes"},
        {
            "indexed": False,
            "internalType": "bytes",
            "name": "withdrawal_credentials",
            "type": "bytes",
        },
        {"indexed": False, "internalType": "bytes", "name": "amount", "type": "bytes"},
        {"indexed": False, "internalType": "bytes", "name": "signature", "type": "bytes"},
        {"indexed": False, "internalType": "bytes", "name": "index", "type": "bytes"},
    ],
    "name": "DepositEvent",
    "type": "event",
}
DEPOSIT_EVENT_DATA_TYPES = tuple(arg["type"] for arg in DEPOSIT_EVENT_ABI["inputs"])
DEPOSIT_EVENT_TOPIC = Hash32(event_abi_to_log_topic(DEPOSIT_EVENT_ABI))

#
# Beacon chain
#
DEFAULT_SLOTS_PER_EPOCH = 32

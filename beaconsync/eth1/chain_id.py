import time
from typing import Callable, Optional

from beaconsync._utils.logging import get_logger
from beaconsync.constants import DEFAULT_REVERIFY_INTERVAL
from beaconsync.exceptions import ChainMismatch
from beaconsync.typing import ChainID

from .rpc import UINT64_MAX, JSONRPCClient, parse_quantity


class ChainIdentityVerifier:
    """
    Confirms that the endpoint of ``client`` serves the chain with ``expected_chain_id``
    before it is used for anything else.
    """
    logger = get_logger('beaconsync.eth1.chain_id.ChainIdentityVerifier')

    def __init__(self,
                 client: JSONRPCClient,
                 expected_chain_id: int,
                 reverify_interval: float = DEFAULT_REVERIFY_INTERVAL,
                 clock: Callable[[], float] = time.monotonic) -> None:
        if not 0 <= expected_chain_id <= UINT64_MAX:
            raise ValueError(f"Invalid expected chain id: {expected_chain_id}")
        if reverify_interval < 0:
            raise ValueError(f"`reverify_interval` can not be negative: {reverify_interval}")

        self._client = client
        self.expected_chain_id = ChainID(expected_chain_id)
        self.reverify_interval = reverify_interval
        self._clock = clock

        self._verified_endpoint: Optional[str] = None
        self._verified_at: Optional[float] = None

    def fetch_chain_id(self) -> ChainID:
        result = self._client.request('eth_chainId')
        return ChainID(parse_quantity(result, 'result', 'eth_chainId'))

    def verify(self) -> ChainID:
        endpoint = self._client.endpoint
        self._verified_endpoint = None
        self._verified_at = None

        chain_id = self.fetch_chain_id()
        if chain_id != self.expected_chain_id:
            self.logger.error(
                "ETH1 endpoint %s serves chain %d, expected %d",
                endpoint,
                chain_id,
                self.expected_chain_id,
            )
            raise ChainMismatch(
                "ETH1 endpoint serves the wrong chain",
                expected=self.expected_chain_id,
                actual=chain_id,
                operation='eth_chainId',
                endpoint=endpoint,
            )

        self._verified_endpoint = endpoint
        self._verified_at = self._clock()
        self.logger.info("Verified chain id %d at ETH1 endpoint %s", chain_id, endpoint)
        return chain_id

    @property
    def needs_verification(self) -> bool:
        if self._verified_endpoint is None or self._verified_at is None:
            return True
        elif self._verified_endpoint != self._client.endpoint:
            return True
        elif self.reverify_interval == 0:
            return False
        else:
            return self._clock() - self._verified_at >= self.reverify_interval

    def ensure_verified(self) -> None:
        if self.needs_verification:
            self.verify()

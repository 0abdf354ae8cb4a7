from .chain_id import ChainIdentityVerifier  # noqa: F401
from .deposits import DepositLog, ETH1DepositService  # noqa: F401
from .rpc import JSONRPCClient  # noqa: F401

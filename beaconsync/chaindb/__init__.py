from .abc import ChainDBAPI, MetadataStoreAPI  # noqa: F401
from .chain import MemoryChainDB, SQLChainDB  # noqa: F401
from .orm import get_chain_database  # noqa: F401

from .canonical import CanonicalityService  # noqa: F401
from .metadata import (  # noqa: F401
    ETH1DepositsMetadata,
    Metadata,
    MetadataService,
)

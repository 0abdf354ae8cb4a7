from .chaindb import (  # noqa: F401
    AggregateValidatorBalanceFactory,
    AttestationFactory,
    AttesterSlashingFactory,
    BlockFactory,
    BlockSummaryFactory,
    DepositFactory,
    EpochSummaryFactory,
    IndexedAttestationDataFactory,
    MemoryChainDBFactory,
    ProposerSlashingFactory,
    SignedHeaderFactory,
    SyncAggregateFactory,
    ValidatorEpochSummaryFactory,
    ValidatorFactory,
    VoluntaryExitFactory,
)
from .eth1 import (  # noqa: F401
    ETH1DepositFactory,
    deposit_log_dict,
)

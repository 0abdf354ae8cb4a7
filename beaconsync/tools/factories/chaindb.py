try:
    import factory
except ImportError:
    raise ImportError("The beaconsync.tools.factories module requires the `factory_boy` library.")

from beaconsync.chaindb.chain import MemoryChainDB
from beaconsync.chaindb.types import (
    AggregateValidatorBalance,
    Attestation,
    AttesterSlashing,
    Block,
    BlockSummary,
    Deposit,
    EpochSummary,
    IndexedAttestationData,
    ProposerSlashing,
    SignedHeader,
    SyncAggregate,
    Validator,
    ValidatorEpochSummary,
    VoluntaryExit,
)
from beaconsync.typing import Tristate

from ._utils import random_bytes

FAR_FUTURE_EPOCH = 2 ** 64 - 1


class MemoryChainDBFactory(factory.Factory):
    class Meta:
        model = MemoryChainDB


class BlockFactory(factory.Factory):
    class Meta:
        model = Block

    slot = factory.Sequence(lambda n: n)
    proposer_index = factory.Sequence(lambda n: n)
    root = factory.LazyFunction(random_bytes(32))
    graffiti = b''
    randao_reveal = factory.LazyFunction(random_bytes(96))
    body_root = factory.LazyFunction(random_bytes(32))
    parent_root = factory.LazyFunction(random_bytes(32))
    state_root = factory.LazyFunction(random_bytes(32))
    eth1_block_hash = factory.LazyFunction(random_bytes(32))
    eth1_deposit_count = 0
    eth1_deposit_root = factory.LazyFunction(random_bytes(32))


class ValidatorFactory(factory.Factory):
    class Meta:
        model = Validator

    public_key = factory.LazyFunction(random_bytes(48))
    index = factory.Sequence(lambda n: n)
    effective_balance = 32 * 10 ** 9
    slashed = False
    activation_eligibility_epoch = 0
    activation_epoch = 0
    exit_epoch = FAR_FUTURE_EPOCH
    withdrawable_epoch = FAR_FUTURE_EPOCH


class AggregateValidatorBalanceFactory(factory.Factory):
    class Meta:
        model = AggregateValidatorBalance

    epoch = factory.Sequence(lambda n: n)
    balance = 64 * 10 ** 9 + 1234
    effective_balance = 64 * 10 ** 9


#
# Inclusion records, pass `inclusion_slot` and `inclusion_block_root` of the block
#
class AttestationFactory(factory.Factory):
    class Meta:
        model = Attestation

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    inclusion_index = factory.Sequence(lambda n: n)
    slot = factory.LazyAttribute(lambda o: max(o.inclusion_slot - 1, 0))
    committee_index = 0
    aggregation_bits = b'\x0f'
    aggregation_indices = (1, 2, 3)
    beacon_block_root = factory.LazyFunction(random_bytes(32))
    source_epoch = 0
    source_root = factory.LazyFunction(random_bytes(32))
    target_epoch = 0
    target_root = factory.LazyFunction(random_bytes(32))


class SyncAggregateFactory(factory.Factory):
    class Meta:
        model = SyncAggregate

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    bits = b'\xff' * 64
    indices = tuple(range(16))


class DepositFactory(factory.Factory):
    class Meta:
        model = Deposit

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    inclusion_index = factory.Sequence(lambda n: n)
    validator_pubkey = factory.LazyFunction(random_bytes(48))
    withdrawal_credentials = factory.LazyFunction(random_bytes(32))
    amount = 32 * 10 ** 9


class VoluntaryExitFactory(factory.Factory):
    class Meta:
        model = VoluntaryExit

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    inclusion_index = factory.Sequence(lambda n: n)
    validator_index = factory.Sequence(lambda n: n)
    epoch = 0


class IndexedAttestationDataFactory(factory.Factory):
    class Meta:
        model = IndexedAttestationData

    indices = (1, 2)
    slot = 0
    committee_index = 0
    beacon_block_root = factory.LazyFunction(random_bytes(32))
    source_epoch = 0
    source_root = factory.LazyFunction(random_bytes(32))
    target_epoch = 0
    target_root = factory.LazyFunction(random_bytes(32))
    signature = factory.LazyFunction(random_bytes(96))


class AttesterSlashingFactory(factory.Factory):
    class Meta:
        model = AttesterSlashing

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    inclusion_index = factory.Sequence(lambda n: n)
    attestation_1 = factory.SubFactory(IndexedAttestationDataFactory)
    attestation_2 = factory.SubFactory(IndexedAttestationDataFactory)


class SignedHeaderFactory(factory.Factory):
    class Meta:
        model = SignedHeader

    root = factory.LazyFunction(random_bytes(32))
    slot = 0
    proposer_index = 0
    parent_root = factory.LazyFunction(random_bytes(32))
    state_root = factory.LazyFunction(random_bytes(32))
    body_root = factory.LazyFunction(random_bytes(32))
    signature = factory.LazyFunction(random_bytes(96))


class ProposerSlashingFactory(factory.Factory):
    class Meta:
        model = ProposerSlashing

    inclusion_slot = 1
    inclusion_block_root = factory.LazyFunction(random_bytes(32))
    inclusion_index = factory.Sequence(lambda n: n)
    header_1 = factory.SubFactory(SignedHeaderFactory)
    header_2 = factory.SubFactory(SignedHeaderFactory)


#
# Summaries
#
class ValidatorEpochSummaryFactory(factory.Factory):
    class Meta:
        model = ValidatorEpochSummary

    index = factory.Sequence(lambda n: n)
    epoch = 0
    proposer_duties = 0
    proposals_included = 0
    attestation_included = True
    attestation_target_correct = Tristate.TRUE
    attestation_head_correct = Tristate.TRUE
    attestation_inclusion_delay = 1


class BlockSummaryFactory(factory.Factory):
    class Meta:
        model = BlockSummary

    slot = factory.Sequence(lambda n: n)
    attestations_for_block = 0
    duplicate_attestations_for_block = 0
    votes_for_block = 0


class EpochSummaryFactory(factory.Factory):
    class Meta:
        model = EpochSummary

    epoch = factory.Sequence(lambda n: n)
    activation_queue_length = 0
    activating_validators = 0
    active_validators = 0
    active_real_balance = 0
    active_balance = 0
    attesting_validators = 0
    attesting_balance = 0
    target_correct_validators = 0
    target_correct_balance = 0
    head_correct_validators = 0
    head_correct_balance = 0
    attestations_for_epoch = 0
    attestations_in_epoch = 0
    duplicate_attestations_for_epoch = 0
    proposer_slashings = 0
    attester_slashings = 0
    deposits = 0
    exiting_validators = 0
    canonical_blocks = 0

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKeyConstraint,
    Integer,
    LargeBinary,
    String,
)

from .orm import (
    Base,
    Uint64,
)

Root = LargeBinary(length=32)
Hash32 = LargeBinary(length=32)
BLSPubkey = LargeBinary(length=48)
BLSSignature = LargeBinary(length=96)
Address = LargeBinary(length=20)


def _inclusion_block_constraint() -> ForeignKeyConstraint:
    return ForeignKeyConstraint(
        ['f_inclusion_slot', 'f_inclusion_block_root'],
        ['t_blocks.f_slot', 't_blocks.f_root'],
    )


class MetadataRecord(Base):
    __tablename__ = 't_metadata'

    key = Column('f_key', String, primary_key=True)
    value = Column('f_value', LargeBinary, nullable=False)


class BlockRecord(Base):
    __tablename__ = 't_blocks'

    slot = Column('f_slot', Uint64, primary_key=True, index=True)
    root = Column('f_root', Root, primary_key=True)
    proposer_index = Column('f_proposer_index', Uint64, nullable=False)
    graffiti = Column('f_graffiti', LargeBinary, nullable=False)
    randao_reveal = Column('f_randao_reveal', BLSSignature, nullable=False)
    body_root = Column('f_body_root', Root, nullable=False)
    parent_root = Column('f_parent_root', Root, nullable=False, index=True)
    state_root = Column('f_state_root', Root, nullable=False)
    # NULL until a canonical-chain pass classifies the block
    canonical = Column('f_canonical', Boolean, nullable=True)
    eth1_block_hash = Column('f_eth1_block_hash', Hash32, nullable=False)
    eth1_deposit_count = Column('f_eth1_deposit_count', Uint64, nullable=False)
    eth1_deposit_root = Column('f_eth1_deposit_root', Root, nullable=False)


class ValidatorRecord(Base):
    __tablename__ = 't_validators'

    index = Column('f_index', Uint64, primary_key=True)
    public_key = Column('f_public_key', BLSPubkey, nullable=False, unique=True)
    effective_balance = Column('f_effective_balance', Uint64, nullable=False)
    slashed = Column('f_slashed', Boolean, nullable=False)
    activation_eligibility_epoch = Column('f_activation_eligibility_epoch', Uint64)
    activation_epoch = Column('f_activation_epoch', Uint64)
    exit_epoch = Column('f_exit_epoch', Uint64)
    withdrawable_epoch = Column('f_withdrawable_epoch', Uint64)


class ValidatorBalanceRecord(Base):
    __tablename__ = 't_validator_balances'

    index = Column('f_validator_index', Uint64, primary_key=True)
    epoch = Column('f_epoch', Uint64, primary_key=True)
    balance = Column('f_balance', Uint64, nullable=False)
    effective_balance = Column('f_effective_balance', Uint64, nullable=False)


class AggregateValidatorBalanceRecord(Base):
    __tablename__ = 't_validator_balances_aggregate'

    epoch = Column('f_epoch', Uint64, primary_key=True)
    balance = Column('f_balance', Uint64, nullable=False)
    effective_balance = Column('f_effective_balance', Uint64, nullable=False)


class BeaconCommitteeRecord(Base):
    __tablename__ = 't_beacon_committees'

    slot = Column('f_slot', Uint64, primary_key=True)
    index = Column('f_index', Uint64, primary_key=True)
    committee = Column('f_committee', JSON, nullable=False)


class ProposerDutyRecord(Base):
    __tablename__ = 't_proposer_duties'

    slot = Column('f_slot', Uint64, primary_key=True)
    validator_index = Column('f_validator_index', Uint64, nullable=False)


class AttesterDutyRecord(Base):
    __tablename__ = 't_attester_duties'

    slot = Column('f_slot', Uint64, primary_key=True)
    validator_index = Column('f_validator_index', Uint64, primary_key=True)
    committee = Column('f_committee', Uint64, nullable=False)
    committee_index = Column('f_committee_index', Integer, nullable=False)


class SyncCommitteeRecord(Base):
    __tablename__ = 't_sync_committees'

    period = Column('f_period', Uint64, primary_key=True)
    committee = Column('f_committee', JSON, nullable=False)


#
# Inclusion records, their canonical status lives on the including block
#
class AttestationRecord(Base):
    __tablename__ = 't_attestations'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    inclusion_index = Column('f_inclusion_index', Integer, primary_key=True)
    slot = Column('f_slot', Uint64, nullable=False, index=True)
    committee_index = Column('f_committee_index', Uint64, nullable=False)
    aggregation_bits = Column('f_aggregation_bits', LargeBinary, nullable=False)
    aggregation_indices = Column('f_aggregation_indices', JSON, nullable=False)
    beacon_block_root = Column('f_beacon_block_root', Root, nullable=False)
    source_epoch = Column('f_source_epoch', Uint64, nullable=False)
    source_root = Column('f_source_root', Root, nullable=False)
    target_epoch = Column('f_target_epoch', Uint64, nullable=False)
    target_root = Column('f_target_root', Root, nullable=False)
    target_correct = Column('f_target_correct', Boolean, nullable=True)
    head_correct = Column('f_head_correct', Boolean, nullable=True)


class SyncAggregateRecord(Base):
    __tablename__ = 't_sync_aggregates'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    bits = Column('f_bits', LargeBinary, nullable=False)
    indices = Column('f_indices', JSON, nullable=False)


class DepositRecord(Base):
    __tablename__ = 't_deposits'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    inclusion_index = Column('f_inclusion_index', Integer, primary_key=True)
    validator_pubkey = Column('f_validator_pubkey', BLSPubkey, nullable=False)
    withdrawal_credentials = Column('f_withdrawal_credentials', Hash32, nullable=False)
    amount = Column('f_amount', Uint64, nullable=False)


class VoluntaryExitRecord(Base):
    __tablename__ = 't_voluntary_exits'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    inclusion_index = Column('f_inclusion_index', Integer, primary_key=True)
    validator_index = Column('f_validator_index', Uint64, nullable=False, index=True)
    epoch = Column('f_epoch', Uint64, nullable=False)


class AttesterSlashingRecord(Base):
    __tablename__ = 't_attester_slashings'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    inclusion_index = Column('f_inclusion_index', Integer, primary_key=True)
    attestation_1_indices = Column('f_attestation_1_indices', JSON, nullable=False)
    attestation_1_slot = Column('f_attestation_1_slot', Uint64, nullable=False)
    attestation_1_committee_index = Column('f_attestation_1_committee_index', Uint64)
    attestation_1_beacon_block_root = Column('f_attestation_1_beacon_block_root', Root)
    attestation_1_source_epoch = Column('f_attestation_1_source_epoch', Uint64)
    attestation_1_source_root = Column('f_attestation_1_source_root', Root)
    attestation_1_target_epoch = Column('f_attestation_1_target_epoch', Uint64)
    attestation_1_target_root = Column('f_attestation_1_target_root', Root)
    attestation_1_signature = Column('f_attestation_1_signature', BLSSignature)
    attestation_2_indices = Column('f_attestation_2_indices', JSON, nullable=False)
    attestation_2_slot = Column('f_attestation_2_slot', Uint64, nullable=False)
    attestation_2_committee_index = Column('f_attestation_2_committee_index', Uint64)
    attestation_2_beacon_block_root = Column('f_attestation_2_beacon_block_root', Root)
    attestation_2_source_epoch = Column('f_attestation_2_source_epoch', Uint64)
    attestation_2_source_root = Column('f_attestation_2_source_root', Root)
    attestation_2_target_epoch = Column('f_attestation_2_target_epoch', Uint64)
    attestation_2_target_root = Column('f_attestation_2_target_root', Root)
    attestation_2_signature = Column('f_attestation_2_signature', BLSSignature)


class ProposerSlashingRecord(Base):
    __tablename__ = 't_proposer_slashings'
    __table_args__ = (_inclusion_block_constraint(),)

    inclusion_slot = Column('f_inclusion_slot', Uint64, primary_key=True)
    inclusion_block_root = Column('f_inclusion_block_root', Root, primary_key=True)
    inclusion_index = Column('f_inclusion_index', Integer, primary_key=True)
    header_1_root = Column('f_header_1_root', Root, nullable=False)
    header_1_slot = Column('f_header_1_slot', Uint64, nullable=False)
    header_1_proposer_index = Column('f_header_1_proposer_index', Uint64, nullable=False)
    header_1_parent_root = Column('f_header_1_parent_root', Root)
    header_1_state_root = Column('f_header_1_state_root', Root)
    header_1_body_root = Column('f_header_1_body_root', Root)
    header_1_signature = Column('f_header_1_signature', BLSSignature)
    header_2_root = Column('f_header_2_root', Root, nullable=False)
    header_2_slot = Column('f_header_2_slot', Uint64, nullable=False)
    header_2_proposer_index = Column('f_header_2_proposer_index', Uint64, nullable=False)
    header_2_parent_root = Column('f_header_2_parent_root', Root)
    header_2_state_root = Column('f_header_2_state_root', Root)
    header_2_body_root = Column('f_header_2_body_root', Root)
    header_2_signature = Column('f_header_2_signature', BLSSignature)


#
# ETH1
#
class ETH1DepositRecord(Base):
    __tablename__ = 't_eth1_deposits'

    # (block hash, log index) is unique on the ETH1 chain, so re-delivered logs collapse
    eth1_block_hash = Column('f_eth1_block_hash', Hash32, primary_key=True)
    eth1_log_index = Column('f_eth1_log_index', Integer, primary_key=True)
    eth1_block_number = Column('f_eth1_block_number', Uint64, nullable=False, index=True)
    eth1_block_timestamp = Column('f_eth1_block_timestamp', Uint64, nullable=False)
    eth1_tx_hash = Column('f_eth1_tx_hash', Hash32, nullable=False)
    eth1_sender = Column('f_eth1_sender', Address, nullable=False)
    eth1_recipient = Column('f_eth1_recipient', Address, nullable=False)
    eth1_gas_used = Column('f_eth1_gas_used', Uint64, nullable=False)
    eth1_gas_price = Column('f_eth1_gas_price', Uint64, nullable=False)
    deposit_index = Column('f_deposit_index', Uint64, nullable=False, index=True)
    validator_pubkey = Column('f_validator_pubkey', BLSPubkey, nullable=False, index=True)
    withdrawal_credentials = Column('f_withdrawal_credentials', Hash32, nullable=False)
    signature = Column('f_signature', BLSSignature, nullable=False)
    amount = Column('f_amount', Uint64, nullable=False)


#
# Summaries
#
class ValidatorEpochSummaryRecord(Base):
    __tablename__ = 't_validator_epoch_summaries'

    index = Column('f_validator_index', Uint64, primary_key=True)
    epoch = Column('f_epoch', Uint64, primary_key=True)
    proposer_duties = Column('f_proposer_duties', Integer, nullable=False)
    proposals_included = Column('f_proposals_included', Integer, nullable=False)
    attestation_included = Column('f_attestation_included', Boolean, nullable=False)
    attestation_target_correct = Column('f_attestation_target_correct', Boolean, nullable=True)
    attestation_head_correct = Column('f_attestation_head_correct', Boolean, nullable=True)
    attestation_inclusion_delay = Column('f_attestation_inclusion_delay', Integer, nullable=True)


class BlockSummaryRecord(Base):
    __tablename__ = 't_block_summaries'

    slot = Column('f_slot', Uint64, primary_key=True)
    attestations_for_block = Column('f_attestations_for_block', Integer, nullable=False)
    duplicate_attestations_for_block = Column(
        'f_duplicate_attestations_for_block', Integer, nullable=False,
    )
    votes_for_block = Column('f_votes_for_block', Integer, nullable=False)


class EpochSummaryRecord(Base):
    __tablename__ = 't_epoch_summaries'

    epoch = Column('f_epoch', Uint64, primary_key=True)
    activation_queue_length = Column('f_activation_queue_length', Integer, nullable=False)
    activating_validators = Column('f_activating_validators', Integer, nullable=False)
    active_validators = Column('f_active_validators', Integer, nullable=False)
    active_real_balance = Column('f_active_real_balance', Uint64, nullable=False)
    active_balance = Column('f_active_balance', Uint64, nullable=False)
    attesting_validators = Column('f_attesting_validators', Integer, nullable=False)
    attesting_balance = Column('f_attesting_balance', Uint64, nullable=False)
    target_correct_validators = Column('f_target_correct_validators', Integer, nullable=False)
    target_correct_balance = Column('f_target_correct_balance', Uint64, nullable=False)
    head_correct_validators = Column('f_head_correct_validators', Integer, nullable=False)
    head_correct_balance = Column('f_head_correct_balance', Uint64, nullable=False)
    attestations_for_epoch = Column('f_attestations_for_epoch', Integer, nullable=False)
    attestations_in_epoch = Column('f_attestations_in_epoch', Integer, nullable=False)
    duplicate_attestations_for_epoch = Column(
        'f_duplicate_attestations_for_epoch', Integer, nullable=False,
    )
    proposer_slashings = Column('f_proposer_slashings', Integer, nullable=False)
    attester_slashings = Column('f_attester_slashings', Integer, nullable=False)
    deposits = Column('f_deposits', Integer, nullable=False)
    exiting_validators = Column('f_exiting_validators', Integer, nullable=False)
    canonical_blocks = Column('f_canonical_blocks', Integer, nullable=False)

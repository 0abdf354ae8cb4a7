"""
Entities written to and read from the chain database.

Inclusion records (attestations, sync aggregates, deposits, exits and slashings) never
store their own canonical flag: the ``canonical`` field is filled in from the including
block whenever a record is read back, and ignored when a record is written.
"""
from typing import NamedTuple, Optional, Tuple

from eth_typing import BLSPubkey, BLSSignature, BlockNumber, Hash32

from beaconsync.typing import (
    CommitteeIndex,
    Epoch,
    Gwei,
    Root,
    Slot,
    Timestamp,
    Tristate,
    ValidatorIndex,
)


class Block(NamedTuple):
    slot: Slot
    proposer_index: ValidatorIndex
    root: Root
    graffiti: bytes
    randao_reveal: BLSSignature
    body_root: Root
    parent_root: Root
    state_root: Root
    eth1_block_hash: Hash32
    eth1_deposit_count: int
    eth1_deposit_root: Root
    canonical: Tristate = Tristate.UNKNOWN


class Validator(NamedTuple):
    public_key: BLSPubkey
    index: ValidatorIndex
    effective_balance: Gwei
    slashed: bool
    activation_eligibility_epoch: Epoch
    activation_epoch: Epoch
    exit_epoch: Epoch
    withdrawable_epoch: Epoch


class ValidatorBalance(NamedTuple):
    index: ValidatorIndex
    epoch: Epoch
    balance: Gwei
    effective_balance: Gwei


class AggregateValidatorBalance(NamedTuple):
    epoch: Epoch
    balance: Gwei
    effective_balance: Gwei


class BeaconCommittee(NamedTuple):
    slot: Slot
    index: CommitteeIndex
    committee: Tuple[ValidatorIndex, ...]


class ProposerDuty(NamedTuple):
    slot: Slot
    validator_index: ValidatorIndex


class AttesterDuty(NamedTuple):
    slot: Slot
    committee: CommitteeIndex
    validator_index: ValidatorIndex
    # the position of the validator in the committee
    committee_index: int


class SyncCommittee(NamedTuple):
    period: int
    committee: Tuple[ValidatorIndex, ...]


#
# Inclusion records
#
class Attestation(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    inclusion_index: int
    slot: Slot
    committee_index: CommitteeIndex
    aggregation_bits: bytes
    aggregation_indices: Tuple[ValidatorIndex, ...]
    beacon_block_root: Root
    source_epoch: Epoch
    source_root: Root
    target_epoch: Epoch
    target_root: Root
    target_correct: Tristate = Tristate.UNKNOWN
    head_correct: Tristate = Tristate.UNKNOWN
    canonical: Tristate = Tristate.UNKNOWN


class SyncAggregate(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    bits: bytes
    indices: Tuple[ValidatorIndex, ...]
    canonical: Tristate = Tristate.UNKNOWN


class Deposit(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    inclusion_index: int
    validator_pubkey: BLSPubkey
    withdrawal_credentials: Hash32
    amount: Gwei
    canonical: Tristate = Tristate.UNKNOWN


class VoluntaryExit(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    inclusion_index: int
    validator_index: ValidatorIndex
    epoch: Epoch
    canonical: Tristate = Tristate.UNKNOWN


class IndexedAttestationData(NamedTuple):
    indices: Tuple[ValidatorIndex, ...]
    slot: Slot
    committee_index: CommitteeIndex
    beacon_block_root: Root
    source_epoch: Epoch
    source_root: Root
    target_epoch: Epoch
    target_root: Root
    signature: BLSSignature


class AttesterSlashing(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    inclusion_index: int
    attestation_1: IndexedAttestationData
    attestation_2: IndexedAttestationData
    canonical: Tristate = Tristate.UNKNOWN


class SignedHeader(NamedTuple):
    root: Root
    slot: Slot
    proposer_index: ValidatorIndex
    parent_root: Root
    state_root: Root
    body_root: Root
    signature: BLSSignature


class ProposerSlashing(NamedTuple):
    inclusion_slot: Slot
    inclusion_block_root: Root
    inclusion_index: int
    header_1: SignedHeader
    header_2: SignedHeader
    canonical: Tristate = Tristate.UNKNOWN


#
# ETH1
#
class ETH1Deposit(NamedTuple):
    eth1_block_number: BlockNumber
    eth1_block_hash: Hash32
    eth1_block_timestamp: Timestamp
    eth1_tx_hash: Hash32
    eth1_log_index: int
    eth1_sender: bytes
    eth1_recipient: bytes
    eth1_gas_used: int
    eth1_gas_price: int
    deposit_index: int
    validator_pubkey: BLSPubkey
    withdrawal_credentials: Hash32
    signature: BLSSignature
    amount: Gwei


#
# Summaries, always replaced as a whole for their key
#
class ValidatorEpochSummary(NamedTuple):
    index: ValidatorIndex
    epoch: Epoch
    proposer_duties: int
    proposals_included: int
    attestation_included: bool
    attestation_target_correct: Tristate = Tristate.UNKNOWN
    attestation_head_correct: Tristate = Tristate.UNKNOWN
    attestation_inclusion_delay: Optional[int] = None


class BlockSummary(NamedTuple):
    slot: Slot
    attestations_for_block: int
    duplicate_attestations_for_block: int
    votes_for_block: int


class EpochSummary(NamedTuple):
    epoch: Epoch
    activation_queue_length: int
    activating_validators: int
    active_validators: int
    active_real_balance: Gwei
    active_balance: Gwei
    attesting_validators: int
    attesting_balance: Gwei
    target_correct_validators: int
    target_correct_balance: Gwei
    head_correct_validators: int
    head_correct_balance: Gwei
    attestations_for_epoch: int
    attestations_in_epoch: int
    duplicate_attestations_for_epoch: int
    proposer_slashings: int
    attester_slashings: int
    deposits: int
    exiting_validators: int
    canonical_blocks: int

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Tuple

from eth_typing import BlockNumber

from beaconsync.typing import Epoch, Root, Slot, Tristate

from .types import (
    AggregateValidatorBalance,
    AttesterDuty,
    AttesterSlashing,
    Attestation,
    BeaconCommittee,
    Block,
    BlockSummary,
    Deposit,
    ETH1Deposit,
    EpochSummary,
    ProposerDuty,
    ProposerSlashing,
    SyncAggregate,
    SyncCommittee,
    Validator,
    ValidatorBalance,
    ValidatorEpochSummary,
    VoluntaryExit,
)


class MetadataStoreAPI(ABC):
    """
    Opaque key/value storage for service metadata.
    """

    @abstractmethod
    def metadata(self, key: str) -> Optional[bytes]:
        """
        Return the raw value stored for ``key``, or ``None`` if nothing is stored.
        """
        ...

    @abstractmethod
    def set_metadata(self, key: str, value: bytes) -> None:
        """
        Atomically replace the value stored for ``key``.
        """
        ...

    @abstractmethod
    def clear_metadata(self, key: str) -> None:
        ...


class ChainDBAPI(MetadataStoreAPI):
    #
    # Blocks
    #
    @abstractmethod
    def upsert_block(self, block: Block) -> None:
        """
        Insert or update ``block``. The canonical status of an existing block is left
        untouched; it only changes through :meth:`set_block_canonicality`.
        """
        ...

    @abstractmethod
    def get_block(self, slot: Slot, root: Root) -> Block:
        ...

    @abstractmethod
    def get_blocks_by_slot(self, slot: Slot) -> Tuple[Block, ...]:
        ...

    @abstractmethod
    def get_blocks_in_slot_range(self, from_slot: Slot, to_slot: Slot) -> Tuple[Block, ...]:
        """
        Return all blocks with ``from_slot <= slot <= to_slot``, ordered by slot.
        """
        ...

    @abstractmethod
    def get_canonical_block(self, slot: Slot) -> Optional[Block]:
        ...

    @abstractmethod
    def get_latest_canonical_block(self, max_slot: Slot) -> Optional[Block]:
        """
        Return the canonical block with the highest slot not above ``max_slot``.
        """
        ...

    @abstractmethod
    def get_highest_classified_slot(self) -> Optional[Slot]:
        """
        Return the highest slot holding a block whose canonical status is known.
        """
        ...

    @abstractmethod
    def set_block_canonicality(self, slot: Slot, root: Root, canonical: Tristate) -> None:
        ...

    @abstractmethod
    def set_slot_canonicality(self, slot: Slot, canonical_root: Optional[Root]) -> None:
        """
        In a single transaction mark the block at ``canonical_root`` canonical and every
        other block at ``slot`` orphaned. ``None`` orphans every block at the slot.
        """
        ...

    @abstractmethod
    def reset_canonicality(self, from_slot: Slot) -> int:
        """
        Return every block at or after ``from_slot`` to the unknown state, along with the
        correctness flags of the attestations they include. Return the number of blocks
        reset.
        """
        ...

    #
    # Inclusion records
    #
    @abstractmethod
    def upsert_attestations(self, attestations: Iterable[Attestation]) -> None:
        ...

    @abstractmethod
    def get_attestations_for_block(self, slot: Slot, root: Root) -> Tuple[Attestation, ...]:
        ...

    @abstractmethod
    def get_attestations_in_slot_range(self,
                                       from_slot: Slot,
                                       to_slot: Slot) -> Tuple[Attestation, ...]:
        """
        Return attestations *included* in ``from_slot <= slot <= to_slot``.
        """
        ...

    @abstractmethod
    def set_attestation_correctness(self,
                                    attestation: Attestation,
                                    target_correct: Tristate,
                                    head_correct: Tristate) -> None:
        ...

    @abstractmethod
    def upsert_sync_aggregate(self, sync_aggregate: SyncAggregate) -> None:
        ...

    @abstractmethod
    def get_sync_aggregate_for_block(self, slot: Slot, root: Root) -> Optional[SyncAggregate]:
        ...

    @abstractmethod
    def upsert_deposits(self, deposits: Iterable[Deposit]) -> None:
        ...

    @abstractmethod
    def get_deposits_for_block(self, slot: Slot, root: Root) -> Tuple[Deposit, ...]:
        ...

    @abstractmethod
    def upsert_voluntary_exits(self, voluntary_exits: Iterable[VoluntaryExit]) -> None:
        ...

    @abstractmethod
    def get_voluntary_exits_for_block(self, slot: Slot, root: Root) -> Tuple[VoluntaryExit, ...]:
        ...

    @abstractmethod
    def upsert_attester_slashings(self, attester_slashings: Iterable[AttesterSlashing]) -> None:
        ...

    @abstractmethod
    def get_attester_slashings_for_block(self,
                                         slot: Slot,
                                         root: Root) -> Tuple[AttesterSlashing, ...]:
        ...

    @abstractmethod
    def upsert_proposer_slashings(self, proposer_slashings: Iterable[ProposerSlashing]) -> None:
        ...

    @abstractmethod
    def get_proposer_slashings_for_block(self,
                                         slot: Slot,
                                         root: Root) -> Tuple[ProposerSlashing, ...]:
        ...

    #
    # ETH1
    #
    @abstractmethod
    def upsert_eth1_deposits(self, deposits: Iterable[ETH1Deposit]) -> None:
        """
        Insert ``deposits`` keyed by (block hash, log index); re-delivered entries
        overwrite themselves instead of adding rows.
        """
        ...

    @abstractmethod
    def get_eth1_deposits(self,
                          from_block: BlockNumber,
                          to_block: BlockNumber) -> Tuple[ETH1Deposit, ...]:
        ...

    #
    # Validators and duties
    #
    @abstractmethod
    def upsert_validators(self, validators: Iterable[Validator]) -> None:
        ...

    @abstractmethod
    def upsert_validator_balances(self, balances: Iterable[ValidatorBalance]) -> None:
        ...

    @abstractmethod
    def upsert_aggregate_validator_balance(self, balance: AggregateValidatorBalance) -> None:
        ...

    @abstractmethod
    def upsert_beacon_committees(self, committees: Iterable[BeaconCommittee]) -> None:
        ...

    @abstractmethod
    def upsert_proposer_duties(self, duties: Iterable[ProposerDuty]) -> None:
        ...

    @abstractmethod
    def upsert_attester_duties(self, duties: Iterable[AttesterDuty]) -> None:
        ...

    @abstractmethod
    def upsert_sync_committee(self, sync_committee: SyncCommittee) -> None:
        ...

    #
    # Summaries
    #
    @abstractmethod
    def replace_validator_epoch_summaries(self,
                                          epoch: Epoch,
                                          summaries: Iterable[ValidatorEpochSummary]) -> None:
        """
        Replace every validator summary of ``epoch`` with ``summaries``.
        """
        ...

    @abstractmethod
    def get_validator_epoch_summaries(self, epoch: Epoch) -> Tuple[ValidatorEpochSummary, ...]:
        ...

    @abstractmethod
    def replace_block_summary(self, summary: BlockSummary) -> None:
        ...

    @abstractmethod
    def get_block_summary(self, slot: Slot) -> Optional[BlockSummary]:
        ...

    @abstractmethod
    def replace_epoch_summary(self, summary: EpochSummary) -> None:
        ...

    @abstractmethod
    def get_epoch_summary(self, epoch: Epoch) -> Optional[EpochSummary]:
        ...

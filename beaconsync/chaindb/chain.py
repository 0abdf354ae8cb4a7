import contextlib
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Type

from eth_typing import BlockNumber
from eth_utils import humanize_hash
from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session as BaseSession

from beaconsync._utils.logging import get_logger
from beaconsync.exceptions import (
    BlockNotFound,
    StorageReadFailed,
    StorageWriteFailed,
)
from beaconsync.typing import (
    CommitteeIndex,
    Epoch,
    Root,
    Slot,
    Tristate,
    ValidatorIndex,
)

from .abc import ChainDBAPI
from .models import (
    AggregateValidatorBalanceRecord,
    AttestationRecord,
    AttesterDutyRecord,
    AttesterSlashingRecord,
    BeaconCommitteeRecord,
    BlockRecord,
    BlockSummaryRecord,
    DepositRecord,
    ETH1DepositRecord,
    EpochSummaryRecord,
    MetadataRecord,
    ProposerDutyRecord,
    ProposerSlashingRecord,
    SyncAggregateRecord,
    SyncCommitteeRecord,
    ValidatorBalanceRecord,
    ValidatorEpochSummaryRecord,
    ValidatorRecord,
    VoluntaryExitRecord,
)
from .orm import Base, MEMORY_PATH_NAME, get_chain_database
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
    IndexedAttestationData,
    ProposerDuty,
    ProposerSlashing,
    SignedHeader,
    SyncAggregate,
    SyncCommittee,
    Validator,
    ValidatorBalance,
    ValidatorEpochSummary,
    VoluntaryExit,
)


#
# Record <-> entity conversion
#
def _indices(values: Iterable[int]) -> Tuple[ValidatorIndex, ...]:
    return tuple(ValidatorIndex(value) for value in values)


def _block_columns(block: Block) -> Dict[str, Any]:
    # `canonical` is deliberately absent, it only changes through the canonicality API
    return dict(
        slot=block.slot,
        root=block.root,
        proposer_index=block.proposer_index,
        graffiti=block.graffiti,
        randao_reveal=block.randao_reveal,
        body_root=block.body_root,
        parent_root=block.parent_root,
        state_root=block.state_root,
        eth1_block_hash=block.eth1_block_hash,
        eth1_deposit_count=block.eth1_deposit_count,
        eth1_deposit_root=block.eth1_deposit_root,
    )


def _block_from_record(record: BlockRecord) -> Block:
    return Block(
        slot=Slot(record.slot),
        proposer_index=ValidatorIndex(record.proposer_index),
        root=Root(record.root),
        graffiti=record.graffiti,
        randao_reveal=record.randao_reveal,
        body_root=Root(record.body_root),
        parent_root=Root(record.parent_root),
        state_root=Root(record.state_root),
        eth1_block_hash=record.eth1_block_hash,
        eth1_deposit_count=record.eth1_deposit_count,
        eth1_deposit_root=Root(record.eth1_deposit_root),
        canonical=Tristate.from_optional(record.canonical),
    )


def _attestation_columns(attestation: Attestation) -> Dict[str, Any]:
    columns = dict(
        inclusion_slot=attestation.inclusion_slot,
        inclusion_block_root=attestation.inclusion_block_root,
        inclusion_index=attestation.inclusion_index,
        slot=attestation.slot,
        committee_index=attestation.committee_index,
        aggregation_bits=attestation.aggregation_bits,
        aggregation_indices=list(attestation.aggregation_indices),
        beacon_block_root=attestation.beacon_block_root,
        source_epoch=attestation.source_epoch,
        source_root=attestation.source_root,
        target_epoch=attestation.target_epoch,
        target_root=attestation.target_root,
    )
    # an unknown flag never overwrites one that a previous pass computed
    if attestation.target_correct.is_known:
        columns['target_correct'] = attestation.target_correct.to_optional()
    if attestation.head_correct.is_known:
        columns['head_correct'] = attestation.head_correct.to_optional()
    return columns


def _attestation_from_record(record: AttestationRecord, canonical: Optional[bool]) -> Attestation:
    return Attestation(
        inclusion_slot=Slot(record.inclusion_slot),
        inclusion_block_root=Root(record.inclusion_block_root),
        inclusion_index=record.inclusion_index,
        slot=Slot(record.slot),
        committee_index=CommitteeIndex(record.committee_index),
        aggregation_bits=record.aggregation_bits,
        aggregation_indices=_indices(record.aggregation_indices),
        beacon_block_root=Root(record.beacon_block_root),
        source_epoch=Epoch(record.source_epoch),
        source_root=Root(record.source_root),
        target_epoch=Epoch(record.target_epoch),
        target_root=Root(record.target_root),
        target_correct=Tristate.from_optional(record.target_correct),
        head_correct=Tristate.from_optional(record.head_correct),
        canonical=Tristate.from_optional(canonical),
    )


def _indexed_attestation_columns(prefix: str, data: IndexedAttestationData) -> Dict[str, Any]:
    return {
        f'{prefix}_indices': list(data.indices),
        f'{prefix}_slot': data.slot,
        f'{prefix}_committee_index': data.committee_index,
        f'{prefix}_beacon_block_root': data.beacon_block_root,
        f'{prefix}_source_epoch': data.source_epoch,
        f'{prefix}_source_root': data.source_root,
        f'{prefix}_target_epoch': data.target_epoch,
        f'{prefix}_target_root': data.target_root,
        f'{prefix}_signature': data.signature,
    }


def _indexed_attestation_from_record(prefix: str, record: Any) -> IndexedAttestationData:
    return IndexedAttestationData(
        indices=_indices(getattr(record, f'{prefix}_indices')),
        slot=Slot(getattr(record, f'{prefix}_slot')),
        committee_index=CommitteeIndex(getattr(record, f'{prefix}_committee_index')),
        beacon_block_root=Root(getattr(record, f'{prefix}_beacon_block_root')),
        source_epoch=Epoch(getattr(record, f'{prefix}_source_epoch')),
        source_root=Root(getattr(record, f'{prefix}_source_root')),
        target_epoch=Epoch(getattr(record, f'{prefix}_target_epoch')),
        target_root=Root(getattr(record, f'{prefix}_target_root')),
        signature=getattr(record, f'{prefix}_signature'),
    )


def _signed_header_columns(prefix: str, header: SignedHeader) -> Dict[str, Any]:
    return {
        f'{prefix}_root': header.root,
        f'{prefix}_slot': header.slot,
        f'{prefix}_proposer_index': header.proposer_index,
        f'{prefix}_parent_root': header.parent_root,
        f'{prefix}_state_root': header.state_root,
        f'{prefix}_body_root': header.body_root,
        f'{prefix}_signature': header.signature,
    }


def _signed_header_from_record(prefix: str, record: Any) -> SignedHeader:
    return SignedHeader(
        root=Root(getattr(record, f'{prefix}_root')),
        slot=Slot(getattr(record, f'{prefix}_slot')),
        proposer_index=ValidatorIndex(getattr(record, f'{prefix}_proposer_index')),
        parent_root=Root(getattr(record, f'{prefix}_parent_root')),
        state_root=Root(getattr(record, f'{prefix}_state_root')),
        body_root=Root(getattr(record, f'{prefix}_body_root')),
        signature=getattr(record, f'{prefix}_signature'),
    )


def _eth1_deposit_from_record(record: ETH1DepositRecord) -> ETH1Deposit:
    return ETH1Deposit(
        eth1_block_number=BlockNumber(record.eth1_block_number),
        eth1_block_hash=record.eth1_block_hash,
        eth1_block_timestamp=record.eth1_block_timestamp,
        eth1_tx_hash=record.eth1_tx_hash,
        eth1_log_index=record.eth1_log_index,
        eth1_sender=record.eth1_sender,
        eth1_recipient=record.eth1_recipient,
        eth1_gas_used=record.eth1_gas_used,
        eth1_gas_price=record.eth1_gas_price,
        deposit_index=record.deposit_index,
        validator_pubkey=record.validator_pubkey,
        withdrawal_credentials=record.withdrawal_credentials,
        signature=record.signature,
        amount=record.amount,
    )


def _validator_epoch_summary_from_record(
        record: ValidatorEpochSummaryRecord) -> ValidatorEpochSummary:
    return ValidatorEpochSummary(
        index=ValidatorIndex(record.index),
        epoch=Epoch(record.epoch),
        proposer_duties=record.proposer_duties,
        proposals_included=record.proposals_included,
        attestation_included=record.attestation_included,
        attestation_target_correct=Tristate.from_optional(record.attestation_target_correct),
        attestation_head_correct=Tristate.from_optional(record.attestation_head_correct),
        attestation_inclusion_delay=record.attestation_inclusion_delay,
    )


class SQLChainDB(ChainDBAPI):
    """
    :class:`ChainDBAPI` on top of a SQLAlchemy session.

    Every write happens in its own transaction: it is either committed as a whole or
    rolled back, leaving the previously stored data readable.
    """
    logger = get_logger('beaconsync.chaindb.chain.SQLChainDB')

    def __init__(self, session: BaseSession) -> None:
        self.session = session

    @classmethod
    def from_path(cls, db_path: Path) -> "SQLChainDB":
        return cls(get_chain_database(db_path))

    #
    # Transaction helpers
    #
    @contextlib.contextmanager
    def _reading(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as err:
            self.session.rollback()
            raise StorageReadFailed(
                f"Failed to {operation}", cause=err, operation=operation, **context
            ) from err

    @contextlib.contextmanager
    def _writing(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as err:
            self.session.rollback()
            raise StorageWriteFailed(
                f"Failed to {operation}", cause=err, operation=operation, **context
            ) from err
        except BaseException:
            self.session.rollback()
            raise

    def _merge_all(self, record_class: Type[Base], rows: Iterable[Dict[str, Any]]) -> int:
        count = 0
        for row in rows:
            self.session.merge(record_class(**row))
            count += 1
        return count

    def _query_with_canonical(self, record_class: Any) -> Query:
        # mypy doesn't know about the type of the `query()` function
        return self.session.query(record_class, BlockRecord.canonical).outerjoin(  # type: ignore
            BlockRecord,
            and_(
                BlockRecord.slot == record_class.inclusion_slot,
                BlockRecord.root == record_class.inclusion_block_root,
            ),
        )

    def _query_included_in(self, record_class: Any, slot: Slot, root: Root) -> Query:
        return self._query_with_canonical(record_class).filter(
            record_class.inclusion_slot == slot,
            record_class.inclusion_block_root == root,
        )

    #
    # Metadata
    #
    def metadata(self, key: str) -> Optional[bytes]:
        with self._reading("fetch metadata", key=key):
            record = self.session.get(MetadataRecord, key)
            if record is None:
                return None
            return bytes(record.value)

    def set_metadata(self, key: str, value: bytes) -> None:
        with self._writing("update metadata", key=key):
            self.session.merge(MetadataRecord(key=key, value=value))
        self.logger.debug2("Stored metadata %s: %r", key, value)

    def clear_metadata(self, key: str) -> None:
        with self._writing("clear metadata", key=key):
            self.session.query(MetadataRecord).filter(  # type: ignore
                MetadataRecord.key == key
            ).delete(synchronize_session=False)

    #
    # Blocks
    #
    def upsert_block(self, block: Block) -> None:
        with self._writing("upsert block", slot=block.slot, root=humanize_hash(block.root)):
            self.session.merge(BlockRecord(**_block_columns(block)))

    def get_block(self, slot: Slot, root: Root) -> Block:
        with self._reading("fetch block", slot=slot, root=humanize_hash(root)):
            record = self.session.get(BlockRecord, (slot, root))
        if record is None:
            raise BlockNotFound(
                "No block found",
                operation="fetch block",
                slot=slot,
                root=humanize_hash(root),
            )
        return _block_from_record(record)

    def get_blocks_by_slot(self, slot: Slot) -> Tuple[Block, ...]:
        return self.get_blocks_in_slot_range(slot, slot)

    def get_blocks_in_slot_range(self, from_slot: Slot, to_slot: Slot) -> Tuple[Block, ...]:
        with self._reading("fetch blocks", from_slot=from_slot, to_slot=to_slot):
            records = self.session.query(BlockRecord).filter(  # type: ignore
                BlockRecord.slot >= from_slot,
                BlockRecord.slot <= to_slot,
            ).order_by(BlockRecord.slot, BlockRecord.root).all()
        return tuple(_block_from_record(record) for record in records)

    def get_canonical_block(self, slot: Slot) -> Optional[Block]:
        with self._reading("fetch canonical block", slot=slot):
            record = self.session.query(BlockRecord).filter(  # type: ignore
                BlockRecord.slot == slot,
                BlockRecord.canonical.is_(True),
            ).one_or_none()
        if record is None:
            return None
        return _block_from_record(record)

    def get_latest_canonical_block(self, max_slot: Slot) -> Optional[Block]:
        with self._reading("fetch latest canonical block", max_slot=max_slot):
            record = self.session.query(BlockRecord).filter(  # type: ignore
                BlockRecord.slot <= max_slot,
                BlockRecord.canonical.is_(True),
            ).order_by(BlockRecord.slot.desc()).first()
        if record is None:
            return None
        return _block_from_record(record)

    def get_highest_classified_slot(self) -> Optional[Slot]:
        with self._reading("fetch highest classified slot"):
            slot = self.session.query(func.max(BlockRecord.slot)).filter(  # type: ignore
                BlockRecord.canonical.isnot(None),
            ).scalar()
        if slot is None:
            return None
        return Slot(slot)

    def set_block_canonicality(self, slot: Slot, root: Root, canonical: Tristate) -> None:
        operation = "set block canonicality"
        with self._writing(operation, slot=slot, root=humanize_hash(root)):
            record = self.session.get(BlockRecord, (slot, root))
            if record is None:
                raise BlockNotFound(
                    "No block found",
                    operation=operation,
                    slot=slot,
                    root=humanize_hash(root),
                )
            record.canonical = canonical.to_optional()

    def set_slot_canonicality(self, slot: Slot, canonical_root: Optional[Root]) -> None:
        with self._writing("set slot canonicality", slot=slot):
            records = self.session.query(BlockRecord).filter(  # type: ignore
                BlockRecord.slot == slot,
            ).all()
            for record in records:
                record.canonical = (
                    canonical_root is not None and bytes(record.root) == bytes(canonical_root)
                )

    def reset_canonicality(self, from_slot: Slot) -> int:
        with self._writing("reset canonicality", from_slot=from_slot):
            num_blocks = self.session.query(BlockRecord).filter(  # type: ignore
                BlockRecord.slot >= from_slot,
            ).update({BlockRecord.canonical: None}, synchronize_session=False)
            self.session.query(AttestationRecord).filter(  # type: ignore
                AttestationRecord.inclusion_slot >= from_slot,
            ).update(
                {AttestationRecord.target_correct: None, AttestationRecord.head_correct: None},
                synchronize_session=False,
            )
        return num_blocks

    #
    # Attestations
    #
    def upsert_attestations(self, attestations: Iterable[Attestation]) -> None:
        with self._writing("upsert attestations"):
            self._merge_all(AttestationRecord, map(_attestation_columns, attestations))

    def get_attestations_for_block(self, slot: Slot, root: Root) -> Tuple[Attestation, ...]:
        with self._reading("fetch attestations", slot=slot, root=humanize_hash(root)):
            rows = self._query_included_in(AttestationRecord, slot, root).order_by(
                AttestationRecord.inclusion_index,
            ).all()
        return tuple(_attestation_from_record(record, canonical) for record, canonical in rows)

    def get_attestations_in_slot_range(self,
                                       from_slot: Slot,
                                       to_slot: Slot) -> Tuple[Attestation, ...]:
        with self._reading("fetch attestations", from_slot=from_slot, to_slot=to_slot):
            rows = self._query_with_canonical(AttestationRecord).filter(
                AttestationRecord.inclusion_slot >= from_slot,
                AttestationRecord.inclusion_slot <= to_slot,
            ).order_by(
                AttestationRecord.inclusion_slot,
                AttestationRecord.inclusion_block_root,
                AttestationRecord.inclusion_index,
            ).all()
        return tuple(_attestation_from_record(record, canonical) for record, canonical in rows)

    def set_attestation_correctness(self,
                                    attestation: Attestation,
                                    target_correct: Tristate,
                                    head_correct: Tristate) -> None:
        key = (
            attestation.inclusion_slot,
            attestation.inclusion_block_root,
            attestation.inclusion_index,
        )
        with self._writing(
                "set attestation correctness",
                inclusion_slot=attestation.inclusion_slot,
                inclusion_block_root=humanize_hash(attestation.inclusion_block_root),
                inclusion_index=attestation.inclusion_index):
            record = self.session.get(AttestationRecord, key)
            if record is None:
                raise BlockNotFound(
                    "No attestation found",
                    operation="set attestation correctness",
                    inclusion_slot=attestation.inclusion_slot,
                    inclusion_index=attestation.inclusion_index,
                )
            record.target_correct = target_correct.to_optional()
            record.head_correct = head_correct.to_optional()

    #
    # Other inclusion records
    #
    def upsert_sync_aggregate(self, sync_aggregate: SyncAggregate) -> None:
        with self._writing("upsert sync aggregate", slot=sync_aggregate.inclusion_slot):
            self.session.merge(SyncAggregateRecord(
                inclusion_slot=sync_aggregate.inclusion_slot,
                inclusion_block_root=sync_aggregate.inclusion_block_root,
                bits=sync_aggregate.bits,
                indices=list(sync_aggregate.indices),
            ))

    def get_sync_aggregate_for_block(self, slot: Slot, root: Root) -> Optional[SyncAggregate]:
        with self._reading("fetch sync aggregate", slot=slot, root=humanize_hash(root)):
            row = self._query_included_in(SyncAggregateRecord, slot, root).one_or_none()
        if row is None:
            return None
        record, canonical = row
        return SyncAggregate(
            inclusion_slot=Slot(record.inclusion_slot),
            inclusion_block_root=Root(record.inclusion_block_root),
            bits=record.bits,
            indices=_indices(record.indices),
            canonical=Tristate.from_optional(canonical),
        )

    def upsert_deposits(self, deposits: Iterable[Deposit]) -> None:
        with self._writing("upsert deposits"):
            self._merge_all(DepositRecord, (
                dict(
                    inclusion_slot=deposit.inclusion_slot,
                    inclusion_block_root=deposit.inclusion_block_root,
                    inclusion_index=deposit.inclusion_index,
                    validator_pubkey=deposit.validator_pubkey,
                    withdrawal_credentials=deposit.withdrawal_credentials,
                    amount=deposit.amount,
                )
                for deposit in deposits
            ))

    def get_deposits_for_block(self, slot: Slot, root: Root) -> Tuple[Deposit, ...]:
        with self._reading("fetch deposits", slot=slot, root=humanize_hash(root)):
            rows = self._query_included_in(DepositRecord, slot, root).order_by(
                DepositRecord.inclusion_index,
            ).all()
        return tuple(
            Deposit(
                inclusion_slot=Slot(record.inclusion_slot),
                inclusion_block_root=Root(record.inclusion_block_root),
                inclusion_index=record.inclusion_index,
                validator_pubkey=record.validator_pubkey,
                withdrawal_credentials=record.withdrawal_credentials,
                amount=record.amount,
                canonical=Tristate.from_optional(canonical),
            )
            for record, canonical in rows
        )

    def upsert_voluntary_exits(self, voluntary_exits: Iterable[VoluntaryExit]) -> None:
        with self._writing("upsert voluntary exits"):
            self._merge_all(VoluntaryExitRecord, (
                dict(
                    inclusion_slot=voluntary_exit.inclusion_slot,
                    inclusion_block_root=voluntary_exit.inclusion_block_root,
                    inclusion_index=voluntary_exit.inclusion_index,
                    validator_index=voluntary_exit.validator_index,
                    epoch=voluntary_exit.epoch,
                )
                for voluntary_exit in voluntary_exits
            ))

    def get_voluntary_exits_for_block(self, slot: Slot, root: Root) -> Tuple[VoluntaryExit, ...]:
        with self._reading("fetch voluntary exits", slot=slot, root=humanize_hash(root)):
            rows = self._query_included_in(VoluntaryExitRecord, slot, root).order_by(
                VoluntaryExitRecord.inclusion_index,
            ).all()
        return tuple(
            VoluntaryExit(
                inclusion_slot=Slot(record.inclusion_slot),
                inclusion_block_root=Root(record.inclusion_block_root),
                inclusion_index=record.inclusion_index,
                validator_index=ValidatorIndex(record.validator_index),
                epoch=Epoch(record.epoch),
                canonical=Tristate.from_optional(canonical),
            )
            for record, canonical in rows
        )

    def upsert_attester_slashings(self, attester_slashings: Iterable[AttesterSlashing]) -> None:
        with self._writing("upsert attester slashings"):
            self._merge_all(AttesterSlashingRecord, (
                dict(
                    inclusion_slot=slashing.inclusion_slot,
                    inclusion_block_root=slashing.inclusion_block_root,
                    inclusion_index=slashing.inclusion_index,
                    **_indexed_attestation_columns('attestation_1', slashing.attestation_1),
                    **_indexed_attestation_columns('attestation_2', slashing.attestation_2),
                )
                for slashing in attester_slashings
            ))

    def get_attester_slashings_for_block(self,
                                         slot: Slot,
                                         root: Root) -> Tuple[AttesterSlashing, ...]:
        with self._reading("fetch attester slashings", slot=slot, root=humanize_hash(root)):
            rows = self._query_included_in(AttesterSlashingRecord, slot, root).order_by(
                AttesterSlashingRecord.inclusion_index,
            ).all()
        return tuple(
            AttesterSlashing(
                inclusion_slot=Slot(record.inclusion_slot),
                inclusion_block_root=Root(record.inclusion_block_root),
                inclusion_index=record.inclusion_index,
                attestation_1=_indexed_attestation_from_record('attestation_1', record),
                attestation_2=_indexed_attestation_from_record('attestation_2', record),
                canonical=Tristate.from_optional(canonical),
            )
            for record, canonical in rows
        )

    def upsert_proposer_slashings(self, proposer_slashings: Iterable[ProposerSlashing]) -> None:
        with self._writing("upsert proposer slashings"):
            self._merge_all(ProposerSlashingRecord, (
                dict(
                    inclusion_slot=slashing.inclusion_slot,
                    inclusion_block_root=slashing.inclusion_block_root,
                    inclusion_index=slashing.inclusion_index,
                    **_signed_header_columns('header_1', slashing.header_1),
                    **_signed_header_columns('header_2', slashing.header_2),
                )
                for slashing in proposer_slashings
            ))

    def get_proposer_slashings_for_block(self,
                                         slot: Slot,
                                         root: Root) -> Tuple[ProposerSlashing, ...]:
        with self._reading("fetch proposer slashings", slot=slot, root=humanize_hash(root)):
            rows = self._query_included_in(ProposerSlashingRecord, slot, root).order_by(
                ProposerSlashingRecord.inclusion_index,
            ).all()
        return tuple(
            ProposerSlashing(
                inclusion_slot=Slot(record.inclusion_slot),
                inclusion_block_root=Root(record.inclusion_block_root),
                inclusion_index=record.inclusion_index,
                header_1=_signed_header_from_record('header_1', record),
                header_2=_signed_header_from_record('header_2', record),
                canonical=Tristate.from_optional(canonical),
            )
            for record, canonical in rows
        )

    #
    # ETH1
    #
    def upsert_eth1_deposits(self, deposits: Iterable[ETH1Deposit]) -> None:
        with self._writing("upsert eth1 deposits"):
            num_deposits = self._merge_all(ETH1DepositRecord, (
                deposit._asdict() for deposit in deposits
            ))
        self.logger.debug("Upserted %d eth1 deposits", num_deposits)

    def get_eth1_deposits(self,
                          from_block: BlockNumber,
                          to_block: BlockNumber) -> Tuple[ETH1Deposit, ...]:
        with self._reading("fetch eth1 deposits", from_block=from_block, to_block=to_block):
            records = self.session.query(ETH1DepositRecord).filter(  # type: ignore
                ETH1DepositRecord.eth1_block_number >= from_block,
                ETH1DepositRecord.eth1_block_number <= to_block,
            ).order_by(
                ETH1DepositRecord.eth1_block_number,
                ETH1DepositRecord.eth1_log_index,
            ).all()
        return tuple(_eth1_deposit_from_record(record) for record in records)

    #
    # Validators and duties
    #
    def upsert_validators(self, validators: Iterable[Validator]) -> None:
        with self._writing("upsert validators"):
            self._merge_all(ValidatorRecord, (
                validator._asdict() for validator in validators
            ))

    def upsert_validator_balances(self, balances: Iterable[ValidatorBalance]) -> None:
        with self._writing("upsert validator balances"):
            self._merge_all(ValidatorBalanceRecord, (
                balance._asdict() for balance in balances
            ))

    def upsert_aggregate_validator_balance(self, balance: AggregateValidatorBalance) -> None:
        with self._writing("upsert aggregate validator balance", epoch=balance.epoch):
            self.session.merge(AggregateValidatorBalanceRecord(**balance._asdict()))

    def upsert_beacon_committees(self, committees: Iterable[BeaconCommittee]) -> None:
        with self._writing("upsert beacon committees"):
            self._merge_all(BeaconCommitteeRecord, (
                dict(
                    slot=committee.slot,
                    index=committee.index,
                    committee=list(committee.committee),
                )
                for committee in committees
            ))

    def upsert_proposer_duties(self, duties: Iterable[ProposerDuty]) -> None:
        with self._writing("upsert proposer duties"):
            self._merge_all(ProposerDutyRecord, (duty._asdict() for duty in duties))

    def upsert_attester_duties(self, duties: Iterable[AttesterDuty]) -> None:
        with self._writing("upsert attester duties"):
            self._merge_all(AttesterDutyRecord, (duty._asdict() for duty in duties))

    def upsert_sync_committee(self, sync_committee: SyncCommittee) -> None:
        with self._writing("upsert sync committee", period=sync_committee.period):
            self.session.merge(SyncCommitteeRecord(
                period=sync_committee.period,
                committee=list(sync_committee.committee),
            ))

    #
    # Summaries
    #
    def replace_validator_epoch_summaries(self,
                                          epoch: Epoch,
                                          summaries: Iterable[ValidatorEpochSummary]) -> None:
        with self._writing("replace validator epoch summaries", epoch=epoch):
            self.session.query(ValidatorEpochSummaryRecord).filter(  # type: ignore
                ValidatorEpochSummaryRecord.epoch == epoch,
            ).delete(synchronize_session=False)
            for summary in summaries:
                if summary.epoch != epoch:
                    raise ValueError(
                        f"Summary for epoch {summary.epoch} can not replace epoch {epoch}"
                    )
                self.session.add(ValidatorEpochSummaryRecord(
                    index=summary.index,
                    epoch=summary.epoch,
                    proposer_duties=summary.proposer_duties,
                    proposals_included=summary.proposals_included,
                    attestation_included=summary.attestation_included,
                    attestation_target_correct=summary.attestation_target_correct.to_optional(),
                    attestation_head_correct=summary.attestation_head_correct.to_optional(),
                    attestation_inclusion_delay=summary.attestation_inclusion_delay,
                ))

    def get_validator_epoch_summaries(self, epoch: Epoch) -> Tuple[ValidatorEpochSummary, ...]:
        with self._reading("fetch validator epoch summaries", epoch=epoch):
            records = self.session.query(ValidatorEpochSummaryRecord).filter(  # type: ignore
                ValidatorEpochSummaryRecord.epoch == epoch,
            ).order_by(ValidatorEpochSummaryRecord.index).all()
        return tuple(_validator_epoch_summary_from_record(record) for record in records)

    def replace_block_summary(self, summary: BlockSummary) -> None:
        with self._writing("replace block summary", slot=summary.slot):
            self.session.merge(BlockSummaryRecord(**summary._asdict()))

    def get_block_summary(self, slot: Slot) -> Optional[BlockSummary]:
        with self._reading("fetch block summary", slot=slot):
            record = self.session.get(BlockSummaryRecord, slot)
        if record is None:
            return None
        return BlockSummary(**{field: getattr(record, field) for field in BlockSummary._fields})

    def replace_epoch_summary(self, summary: EpochSummary) -> None:
        with self._writing("replace epoch summary", epoch=summary.epoch):
            self.session.merge(EpochSummaryRecord(**summary._asdict()))

    def get_epoch_summary(self, epoch: Epoch) -> Optional[EpochSummary]:
        with self._reading("fetch epoch summary", epoch=epoch):
            record = self.session.get(EpochSummaryRecord, epoch)
        if record is None:
            return None
        return EpochSummary(**{field: getattr(record, field) for field in EpochSummary._fields})


class MemoryChainDB(SQLChainDB):
    def __init__(self) -> None:
        session = get_chain_database(Path(MEMORY_PATH_NAME))
        super().__init__(session)

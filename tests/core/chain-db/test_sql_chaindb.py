from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from beaconsync.chaindb import SQLChainDB
from beaconsync.chaindb.models import (
    AggregateValidatorBalanceRecord,
    AttesterDutyRecord,
    BeaconCommitteeRecord,
    ETH1DepositRecord,
    ProposerDutyRecord,
    SyncCommitteeRecord,
    ValidatorBalanceRecord,
    ValidatorRecord,
)
from beaconsync.chaindb.orm import Uint64
from beaconsync.chaindb.types import (
    AttesterDuty,
    BeaconCommittee,
    ProposerDuty,
    SyncCommittee,
    ValidatorBalance,
)
from beaconsync.exceptions import (
    BlockNotFound,
    StorageReadFailed,
    StorageWriteFailed,
)
from beaconsync.tools.factories import (
    AggregateValidatorBalanceFactory,
    AttestationFactory,
    AttesterSlashingFactory,
    BlockFactory,
    BlockSummaryFactory,
    DepositFactory,
    ETH1DepositFactory,
    EpochSummaryFactory,
    MemoryChainDBFactory,
    ProposerSlashingFactory,
    SyncAggregateFactory,
    ValidatorEpochSummaryFactory,
    ValidatorFactory,
    VoluntaryExitFactory,
)
from beaconsync.typing import Tristate

FAR_FUTURE_EPOCH = 2 ** 64 - 1


def _included_in(block):
    return dict(inclusion_slot=block.slot, inclusion_block_root=block.root)


#
# Metadata
#
def test_metadata_absent(chaindb):
    assert chaindb.metadata('blocks.standard') is None


def test_metadata_set_and_overwrite(chaindb):
    chaindb.set_metadata('blocks.standard', b'{"latest_slot": 1}')
    assert chaindb.metadata('blocks.standard') == b'{"latest_slot": 1}'

    chaindb.set_metadata('blocks.standard', b'{"latest_slot": 2}')
    assert chaindb.metadata('blocks.standard') == b'{"latest_slot": 2}'

    # keys are independent
    assert chaindb.metadata('eth1deposits.getlogs') is None


def test_metadata_clear(chaindb):
    chaindb.set_metadata('blocks.standard', b'{}')
    chaindb.clear_metadata('blocks.standard')
    assert chaindb.metadata('blocks.standard') is None

    # clearing an absent key is fine
    chaindb.clear_metadata('blocks.standard')


def test_metadata_persists(tmpdir):
    db_path = Path(str(tmpdir.join('chain.sqlite')))
    chaindb_a = SQLChainDB.from_path(db_path)
    chaindb_a.set_metadata('blocks.standard', b'{"latest_slot": 1000}')
    del chaindb_a

    chaindb_b = SQLChainDB.from_path(db_path)
    assert chaindb_b.metadata('blocks.standard') == b'{"latest_slot": 1000}'


def test_memory_does_not_persist():
    chaindb_a = MemoryChainDBFactory()
    chaindb_a.set_metadata('blocks.standard', b'{"latest_slot": 1000}')

    chaindb_b = MemoryChainDBFactory()
    assert chaindb_b.metadata('blocks.standard') is None


def test_failed_write_keeps_previous_value(chaindb, mocker):
    chaindb.set_metadata('blocks.standard', b'{"latest_slot": 1}')

    mocker.patch.object(
        chaindb.session,
        'commit',
        side_effect=OperationalError('UPDATE', {}, Exception('disk I/O error')),
    )
    with pytest.raises(StorageWriteFailed) as excinfo:
        chaindb.set_metadata('blocks.standard', b'{"latest_slot": 2}')

    assert excinfo.value.context['key'] == 'blocks.standard'
    assert isinstance(excinfo.value.cause, OperationalError)
    assert excinfo.value.retryable
    assert chaindb.metadata('blocks.standard') == b'{"latest_slot": 1}'


def test_failed_read_is_wrapped(chaindb, mocker):
    mocker.patch.object(
        chaindb.session,
        'get',
        side_effect=OperationalError('SELECT', {}, Exception('database is locked')),
    )
    with pytest.raises(StorageReadFailed) as excinfo:
        chaindb.metadata('blocks.standard')

    assert excinfo.value.context == {'operation': 'fetch metadata', 'key': 'blocks.standard'}


#
# Blocks
#
def test_upsert_and_get_block(chaindb):
    block = BlockFactory(slot=10, graffiti=b'hello')
    chaindb.upsert_block(block)

    assert chaindb.get_block(block.slot, block.root) == block
    assert chaindb.get_block(block.slot, block.root).canonical is Tristate.UNKNOWN


def test_get_missing_block(chaindb):
    block = BlockFactory()
    with pytest.raises(BlockNotFound):
        chaindb.get_block(block.slot, block.root)


def test_upsert_block_keeps_canonical_status(chaindb):
    block = BlockFactory(slot=5)
    chaindb.upsert_block(block)
    chaindb.set_block_canonicality(block.slot, block.root, Tristate.TRUE)

    chaindb.upsert_block(block._replace(graffiti=b'updated'))

    stored = chaindb.get_block(block.slot, block.root)
    assert stored.graffiti == b'updated'
    assert stored.canonical is Tristate.TRUE


def test_set_canonicality_of_missing_block(chaindb):
    block = BlockFactory()
    with pytest.raises(BlockNotFound):
        chaindb.set_block_canonicality(block.slot, block.root, Tristate.TRUE)


def test_blocks_by_slot_and_range(chaindb):
    blocks = BlockFactory.create_batch(3, slot=7) + [BlockFactory(slot=8), BlockFactory(slot=12)]
    for block in blocks:
        chaindb.upsert_block(block)

    assert set(chaindb.get_blocks_by_slot(7)) == set(blocks[:3])
    assert chaindb.get_blocks_by_slot(9) == ()

    in_range = chaindb.get_blocks_in_slot_range(8, 12)
    assert tuple(block.slot for block in in_range) == (8, 12)


def test_set_slot_canonicality(chaindb):
    block_a, block_b = BlockFactory.create_batch(2, slot=100)
    chaindb.upsert_block(block_a)
    chaindb.upsert_block(block_b)

    chaindb.set_slot_canonicality(100, block_a.root)

    assert chaindb.get_block(100, block_a.root).canonical is Tristate.TRUE
    assert chaindb.get_block(100, block_b.root).canonical is Tristate.FALSE
    assert chaindb.get_canonical_block(100) == block_a._replace(canonical=Tristate.TRUE)


def test_set_slot_canonicality_without_canonical_root(chaindb):
    block = BlockFactory(slot=3)
    chaindb.upsert_block(block)
    chaindb.set_slot_canonicality(3, None)

    assert chaindb.get_block(3, block.root).canonical is Tristate.FALSE
    assert chaindb.get_canonical_block(3) is None


def test_latest_canonical_and_highest_classified(chaindb):
    assert chaindb.get_highest_classified_slot() is None
    assert chaindb.get_latest_canonical_block(100) is None

    canonical = BlockFactory(slot=4)
    orphaned = BlockFactory(slot=6)
    unknown = BlockFactory(slot=9)
    for block in (canonical, orphaned, unknown):
        chaindb.upsert_block(block)
    chaindb.set_block_canonicality(4, canonical.root, Tristate.TRUE)
    chaindb.set_block_canonicality(6, orphaned.root, Tristate.FALSE)

    assert chaindb.get_highest_classified_slot() == 6
    assert chaindb.get_latest_canonical_block(3) is None
    assert chaindb.get_latest_canonical_block(4).root == canonical.root
    assert chaindb.get_latest_canonical_block(100).root == canonical.root


def test_reset_canonicality(chaindb):
    early, late = BlockFactory(slot=1), BlockFactory(slot=2)
    for block in (early, late):
        chaindb.upsert_block(block)
        chaindb.set_block_canonicality(block.slot, block.root, Tristate.TRUE)

    attestation = AttestationFactory(**_included_in(late))
    chaindb.upsert_attestations([attestation])
    chaindb.set_attestation_correctness(attestation, Tristate.TRUE, Tristate.FALSE)

    assert chaindb.reset_canonicality(2) == 1

    assert chaindb.get_block(1, early.root).canonical is Tristate.TRUE
    assert chaindb.get_block(2, late.root).canonical is Tristate.UNKNOWN
    stored, = chaindb.get_attestations_for_block(late.slot, late.root)
    assert stored.target_correct is Tristate.UNKNOWN
    assert stored.head_correct is Tristate.UNKNOWN


def test_uint64_column_bounds():
    column_type = Uint64()
    assert column_type.process_bind_param(FAR_FUTURE_EPOCH, None) == -1
    assert column_type.process_result_value(-1, None) == FAR_FUTURE_EPOCH
    assert column_type.process_bind_param(None, None) is None

    with pytest.raises(ValueError):
        column_type.process_bind_param(-1, None)
    with pytest.raises(ValueError):
        column_type.process_bind_param(2 ** 64, None)


#
# Inclusion records
#
def test_attestations_inherit_block_canonicality(chaindb):
    block = BlockFactory(slot=20)
    chaindb.upsert_block(block)
    attestations = AttestationFactory.create_batch(3, **_included_in(block))
    chaindb.upsert_attestations(attestations)

    stored = chaindb.get_attestations_for_block(block.slot, block.root)
    assert tuple(a.inclusion_index for a in stored) == tuple(
        sorted(a.inclusion_index for a in attestations)
    )
    assert all(a.canonical is Tristate.UNKNOWN for a in stored)

    chaindb.set_block_canonicality(block.slot, block.root, Tristate.FALSE)
    stored = chaindb.get_attestations_in_slot_range(0, 100)
    assert len(stored) == 3
    assert all(a.canonical is Tristate.FALSE for a in stored)


def test_attestation_written_with_canonical_flag_ignores_it(chaindb):
    block = BlockFactory(slot=20)
    chaindb.upsert_block(block)
    chaindb.upsert_attestations([
        AttestationFactory(canonical=Tristate.TRUE, **_included_in(block)),
    ])

    stored, = chaindb.get_attestations_for_block(block.slot, block.root)
    assert stored.canonical is Tristate.UNKNOWN


def test_attestation_upsert_keeps_known_correctness(chaindb):
    attestation = AttestationFactory()
    chaindb.upsert_attestations([attestation])
    chaindb.set_attestation_correctness(attestation, Tristate.TRUE, Tristate.FALSE)

    chaindb.upsert_attestations([attestation])

    stored, = chaindb.get_attestations_for_block(
        attestation.inclusion_slot,
        attestation.inclusion_block_root,
    )
    assert stored.target_correct is Tristate.TRUE
    assert stored.head_correct is Tristate.FALSE
    assert stored.aggregation_indices == attestation.aggregation_indices


def test_sync_aggregate(chaindb):
    block = BlockFactory(slot=30)
    chaindb.upsert_block(block)
    assert chaindb.get_sync_aggregate_for_block(block.slot, block.root) is None

    sync_aggregate = SyncAggregateFactory(**_included_in(block))
    chaindb.upsert_sync_aggregate(sync_aggregate)
    chaindb.set_block_canonicality(block.slot, block.root, Tristate.TRUE)

    stored = chaindb.get_sync_aggregate_for_block(block.slot, block.root)
    assert stored == sync_aggregate._replace(canonical=Tristate.TRUE)


def test_deposits_and_voluntary_exits(chaindb):
    block = BlockFactory(slot=40)
    chaindb.upsert_block(block)
    deposits = DepositFactory.create_batch(2, **_included_in(block))
    exits = VoluntaryExitFactory.create_batch(2, **_included_in(block))
    chaindb.upsert_deposits(deposits)
    chaindb.upsert_voluntary_exits(exits)
    chaindb.set_block_canonicality(block.slot, block.root, Tristate.TRUE)

    assert chaindb.get_deposits_for_block(block.slot, block.root) == tuple(
        deposit._replace(canonical=Tristate.TRUE) for deposit in deposits
    )
    assert chaindb.get_voluntary_exits_for_block(block.slot, block.root) == tuple(
        voluntary_exit._replace(canonical=Tristate.TRUE) for voluntary_exit in exits
    )


def test_slashings(chaindb):
    block = BlockFactory(slot=50)
    chaindb.upsert_block(block)
    attester_slashing = AttesterSlashingFactory(**_included_in(block))
    proposer_slashing = ProposerSlashingFactory(**_included_in(block))
    chaindb.upsert_attester_slashings([attester_slashing])
    chaindb.upsert_proposer_slashings([proposer_slashing])

    assert chaindb.get_attester_slashings_for_block(block.slot, block.root) == (
        attester_slashing,
    )
    assert chaindb.get_proposer_slashings_for_block(block.slot, block.root) == (
        proposer_slashing,
    )

    chaindb.set_block_canonicality(block.slot, block.root, Tristate.FALSE)
    stored, = chaindb.get_proposer_slashings_for_block(block.slot, block.root)
    assert stored.canonical is Tristate.FALSE


#
# ETH1
#
def test_eth1_deposits_are_keyed_by_block_hash_and_log_index(chaindb):
    deposit = ETH1DepositFactory(eth1_block_number=100)
    chaindb.upsert_eth1_deposits([deposit])
    chaindb.upsert_eth1_deposits([deposit])

    assert chaindb.session.query(ETH1DepositRecord).count() == 1
    assert chaindb.get_eth1_deposits(100, 100) == (deposit,)


def test_eth1_deposits_in_range(chaindb):
    deposits = [
        ETH1DepositFactory(eth1_block_number=number, eth1_log_index=log_index)
        for number, log_index in ((12, 1), (10, 0), (12, 0), (15, 3))
    ]
    chaindb.upsert_eth1_deposits(deposits)

    in_range = chaindb.get_eth1_deposits(10, 12)
    assert tuple((d.eth1_block_number, d.eth1_log_index) for d in in_range) == (
        (10, 0), (12, 0), (12, 1),
    )


#
# Validators and duties
#
def test_validators_with_far_future_epochs(chaindb):
    validators = ValidatorFactory.create_batch(2)
    chaindb.upsert_validators(validators)
    chaindb.upsert_validators(validators)

    records = chaindb.session.query(ValidatorRecord).all()
    assert len(records) == 2
    assert all(record.exit_epoch == FAR_FUTURE_EPOCH for record in records)


def test_duties_and_committees(chaindb):
    chaindb.upsert_validator_balances([
        ValidatorBalance(index=1, epoch=0, balance=32 * 10 ** 9, effective_balance=32 * 10 ** 9),
    ])
    chaindb.upsert_beacon_committees([BeaconCommittee(slot=1, index=0, committee=(1, 2, 3))])
    chaindb.upsert_proposer_duties([ProposerDuty(slot=1, validator_index=2)])
    chaindb.upsert_attester_duties([
        AttesterDuty(slot=1, committee=0, validator_index=3, committee_index=2),
    ])
    chaindb.upsert_sync_committee(SyncCommittee(period=0, committee=(4, 5)))

    assert chaindb.session.query(ValidatorBalanceRecord).count() == 1
    assert chaindb.session.query(BeaconCommitteeRecord).one().committee == [1, 2, 3]
    assert chaindb.session.query(ProposerDutyRecord).one().validator_index == 2
    assert chaindb.session.query(AttesterDutyRecord).one().committee_index == 2
    assert chaindb.session.query(SyncCommitteeRecord).one().committee == [4, 5]


def test_aggregate_validator_balance_is_upserted_by_epoch(chaindb):
    first = AggregateValidatorBalanceFactory(epoch=3)
    chaindb.upsert_aggregate_validator_balance(first)
    chaindb.upsert_aggregate_validator_balance(AggregateValidatorBalanceFactory(epoch=4))

    replacement = first._replace(balance=first.balance + 1)
    chaindb.upsert_aggregate_validator_balance(replacement)

    records = chaindb.session.query(AggregateValidatorBalanceRecord).order_by(
        AggregateValidatorBalanceRecord.epoch,
    ).all()
    assert [record.epoch for record in records] == [3, 4]
    assert records[0].balance == replacement.balance
    assert records[0].effective_balance == first.effective_balance


#
# Summaries
#
def test_replace_validator_epoch_summaries(chaindb):
    first = ValidatorEpochSummaryFactory.create_batch(3, epoch=FAR_FUTURE_EPOCH)
    chaindb.replace_validator_epoch_summaries(FAR_FUTURE_EPOCH, first)
    assert chaindb.get_validator_epoch_summaries(FAR_FUTURE_EPOCH) == tuple(first)

    second = [ValidatorEpochSummaryFactory(
        epoch=FAR_FUTURE_EPOCH,
        attestation_target_correct=Tristate.UNKNOWN,
        attestation_inclusion_delay=None,
    )]
    chaindb.replace_validator_epoch_summaries(FAR_FUTURE_EPOCH, second)
    assert chaindb.get_validator_epoch_summaries(FAR_FUTURE_EPOCH) == tuple(second)


def test_replace_validator_epoch_summaries_rejects_other_epochs(chaindb):
    existing = ValidatorEpochSummaryFactory.create_batch(2, epoch=1)
    chaindb.replace_validator_epoch_summaries(1, existing)

    with pytest.raises(ValueError):
        chaindb.replace_validator_epoch_summaries(1, [ValidatorEpochSummaryFactory(epoch=2)])

    # rolled back, the previous summaries are still there
    assert chaindb.get_validator_epoch_summaries(1) == tuple(existing)


def test_block_and_epoch_summaries(chaindb):
    assert chaindb.get_block_summary(1) is None
    assert chaindb.get_epoch_summary(1) is None

    block_summary = BlockSummaryFactory(slot=1, votes_for_block=10)
    epoch_summary = EpochSummaryFactory(epoch=1, canonical_blocks=31)
    chaindb.replace_block_summary(block_summary)
    chaindb.replace_epoch_summary(epoch_summary)
    assert chaindb.get_block_summary(1) == block_summary
    assert chaindb.get_epoch_summary(1) == epoch_summary

    chaindb.replace_block_summary(block_summary._replace(votes_for_block=11))
    assert chaindb.get_block_summary(1).votes_for_block == 11

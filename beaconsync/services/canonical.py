from typing import Callable, Dict, Optional, Sequence, Tuple

from eth_utils import humanize_hash

from beaconsync._utils.logging import get_logger
from beaconsync.chaindb.abc import ChainDBAPI
from beaconsync.chaindb.types import Attestation, Block
from beaconsync.exceptions import BlockNotFound, CanonicalityConflict
from beaconsync.typing import Epoch, Root, Slot, Tristate

# (is the status known, latest canonical root at or before the slot)
CanonicalRootLookup = Tuple[bool, Optional[Root]]

UNKNOWN_ROOT: CanonicalRootLookup = (False, None)


def _find_block(blocks: Sequence[Block], slot: Slot, root: Root, operation: str) -> Block:
    for block in blocks:
        if block.root == root:
            return block
    raise BlockNotFound(
        "No block found",
        operation=operation,
        slot=slot,
        root=humanize_hash(root),
    )


def _conflict(operation: str, block: Block, requested: Tristate) -> CanonicalityConflict:
    return CanonicalityConflict(
        f"Block is already {block.canonical}, refusing to mark it {requested}",
        operation=operation,
        slot=block.slot,
        root=humanize_hash(block.root),
    )


class CanonicalityService:
    """
    Classifies stored blocks as canonical or orphaned.

    A block starts out ``UNKNOWN`` and moves to ``TRUE`` or ``FALSE`` exactly once.
    Inclusion records have no flag of their own, they report the flag of their block.
    """
    logger = get_logger('beaconsync.services.canonical.CanonicalityService')

    def __init__(self, chaindb: ChainDBAPI, slots_per_epoch: int) -> None:
        if slots_per_epoch <= 0:
            raise ValueError(f"`slots_per_epoch` must be positive: {slots_per_epoch}")
        self._chaindb = chaindb
        self.slots_per_epoch = slots_per_epoch

    def epoch_start_slot(self, epoch: Epoch) -> Slot:
        return Slot(epoch * self.slots_per_epoch)

    def set_canonical(self, slot: Slot, root: Root) -> None:
        """
        Mark the block at ``(slot, root)`` canonical and every other block at ``slot``
        orphaned. Nothing is written if any of them would have to change a known status.
        """
        operation = "set canonical"
        blocks = self._chaindb.get_blocks_by_slot(slot)
        block = _find_block(blocks, slot, root, operation)

        if block.canonical is Tristate.FALSE:
            raise _conflict(operation, block, Tristate.TRUE)
        competitors = tuple(other for other in blocks if other.root != root)
        for competitor in competitors:
            if competitor.canonical is Tristate.TRUE:
                raise _conflict(operation, competitor, Tristate.FALSE)

        already_classified = block.canonical is Tristate.TRUE and all(
            competitor.canonical is Tristate.FALSE for competitor in competitors
        )
        if already_classified:
            self.logger.debug2("Slot %d already has canonical block %s", slot, humanize_hash(root))
            return

        self._chaindb.set_slot_canonicality(slot, root)
        self.logger.debug(
            "Marked block %s canonical at slot %d, orphaned %d competing blocks",
            humanize_hash(root),
            slot,
            len(competitors),
        )

    def set_orphaned(self, slot: Slot, root: Root) -> None:
        operation = "set orphaned"
        block = _find_block(self._chaindb.get_blocks_by_slot(slot), slot, root, operation)
        if block.canonical is Tristate.TRUE:
            raise _conflict(operation, block, Tristate.FALSE)
        elif block.canonical is Tristate.FALSE:
            return

        self._chaindb.set_block_canonicality(slot, root, Tristate.FALSE)
        self.logger.debug("Marked block %s orphaned at slot %d", humanize_hash(root), slot)

    def reset(self, from_slot: Slot) -> int:
        num_blocks = self._chaindb.reset_canonicality(from_slot)
        self.logger.info(
            "Reset canonical status of %d blocks from slot %d onwards",
            num_blocks,
            from_slot,
        )
        return num_blocks

    #
    # Attestation correctness
    #
    def _lookup_canonical_root(self,
                               slot: Slot,
                               highest_classified: Optional[Slot]) -> CanonicalRootLookup:
        if highest_classified is None or slot > highest_classified:
            return UNKNOWN_ROOT

        latest = self._chaindb.get_latest_canonical_block(slot)
        gap_start = Slot(0) if latest is None else Slot(latest.slot + 1)
        if gap_start <= slot:
            # every block between the canonical one and `slot` must be known to be orphaned
            for block in self._chaindb.get_blocks_in_slot_range(gap_start, slot):
                if block.canonical is Tristate.UNKNOWN:
                    return UNKNOWN_ROOT

        if latest is None:
            return (True, None)
        return (True, latest.root)

    @staticmethod
    def _check(lookup: CanonicalRootLookup, voted_root: Root) -> Tristate:
        is_known, canonical_root = lookup
        if not is_known:
            return Tristate.UNKNOWN
        return Tristate.from_optional(canonical_root == voted_root)

    def update_attestation_correctness(self, from_slot: Slot, to_slot: Slot) -> int:
        """
        Fill in the unknown head and target correctness of attestations included
        between ``from_slot`` and ``to_slot``. Flags whose slots have not been
        classified yet stay unknown. Return the number of attestations updated.
        """
        attestations = self._chaindb.get_attestations_in_slot_range(from_slot, to_slot)
        highest_classified = self._chaindb.get_highest_classified_slot()
        lookups: Dict[Slot, CanonicalRootLookup] = {}

        def lookup(slot: Slot) -> CanonicalRootLookup:
            if slot not in lookups:
                lookups[slot] = self._lookup_canonical_root(slot, highest_classified)
            return lookups[slot]

        num_updated = 0
        for attestation in attestations:
            head_correct, target_correct = self._correctness(attestation, lookup)
            if (head_correct, target_correct) == (
                    attestation.head_correct, attestation.target_correct):
                continue
            self._chaindb.set_attestation_correctness(attestation, target_correct, head_correct)
            num_updated += 1

        self.logger.debug(
            "Updated correctness of %d/%d attestations included in slots %d-%d",
            num_updated,
            len(attestations),
            from_slot,
            to_slot,
        )
        return num_updated

    def _correctness(self,
                     attestation: Attestation,
                     lookup: Callable[[Slot], CanonicalRootLookup]) -> Tuple[Tristate, Tristate]:
        head_correct = attestation.head_correct
        if not head_correct.is_known:
            head_correct = self._check(lookup(attestation.slot), attestation.beacon_block_root)

        target_correct = attestation.target_correct
        if not target_correct.is_known:
            target_slot = self.epoch_start_slot(attestation.target_epoch)
            target_correct = self._check(lookup(target_slot), attestation.target_root)

        return head_correct, target_correct

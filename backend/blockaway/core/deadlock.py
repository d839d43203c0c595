"""Deadlock chain tracing: why every stuck piece is stuck."""
import logging
from typing import AbstractSet, Dict, List, Optional, Tuple

from ..models.geometry import GridGeometry, grid_key, key_set
from ..models.level import (
    DeadlockInfo,
    Piece,
    RootCause,
    StuckReason,
    StuckType,
    index_pieces,
)
from .clearability import is_clearable, is_waiting
from .path_resolver import resolve_path

logger = logging.getLogger(__name__)

CAUSE_LABELS = {
    RootCause.MUTUAL_BLOCK: "mutual block",
    RootCause.CIRCULAR_CHAIN: "circular chain",
}


class DeadlockTracer:
    """
    Traces blocking chains on a board with no clearable pieces.

    Each stuck piece follows its "blocked by" edges until the chain either
    reaches a piece that is not stuck (edge_blocked), or revisits one of its
    own members. A cycle of two pieces is a mutual block, a longer cycle is
    a circular chain.
    """

    def __init__(
        self,
        occupancy: Dict[str, Piece],
        holes: AbstractSet[str],
        move_count: int,
        geometry: GridGeometry,
        pauses: AbstractSet[str] = frozenset(),
    ):
        self.occupancy = occupancy
        self.holes = holes
        self.move_count = move_count
        self.geometry = geometry
        self.pauses = pauses

        # stuck key -> blocker key, None when nothing is in the way
        self.immediate_blocker: Dict[str, Optional[str]] = {}
        self.waiting = set()
        self._classify()

    def _classify(self) -> None:
        for key, piece in self.occupancy.items():
            if is_clearable(piece, self.occupancy, self.holes, self.move_count,
                            self.geometry, self.pauses):
                continue

            if is_waiting(piece, self.occupancy, self.move_count, self.geometry):
                self.waiting.add(key)
                continue

            outcome = resolve_path(piece, self.occupancy, self.holes, self.geometry, self.pauses)
            if outcome.pause is not None:
                # Can still slide onto a pause cell
                self.waiting.add(key)
                continue

            if outcome.blocked and outcome.blocker is not None:
                self.immediate_blocker[key] = grid_key(outcome.blocker)
            else:
                self.immediate_blocker[key] = None

    @property
    def stuck_keys(self) -> List[str]:
        return list(self.immediate_blocker.keys())

    def trace_chain(self, start_key: str) -> Tuple[List[str], RootCause, Optional[str], int]:
        """
        Follow blockers from start_key.

        Returns:
            (chain, root_cause, root_key, cycle_start). cycle_start is the
            index in chain where the cycle begins, or -1 for edge chains.
        """
        chain = [start_key]
        visited = {start_key}
        current = start_key

        while True:
            blocker = self.immediate_blocker.get(current)

            if blocker is None:
                return chain, RootCause.EDGE_BLOCKED, current, -1

            if blocker in visited:
                cycle_start = chain.index(blocker)
                cycle_length = len(chain) - cycle_start
                if cycle_length == 1:
                    return chain, RootCause.EDGE_BLOCKED, current, -1
                if cycle_length == 2:
                    return chain, RootCause.MUTUAL_BLOCK, None, cycle_start
                return chain, RootCause.CIRCULAR_CHAIN, None, cycle_start

            if blocker not in self.immediate_blocker:
                # Blocker is not stuck itself; the chain ends there
                return chain, RootCause.EDGE_BLOCKED, blocker, -1

            chain.append(blocker)
            visited.add(blocker)
            current = blocker

    def explain(self, key: str) -> StuckReason:
        chain, root_cause, root_key, cycle_start = self.trace_chain(key)
        blocked_by = self.immediate_blocker.get(key)

        if root_cause == RootCause.EDGE_BLOCKED:
            if len(chain) == 1 and blocked_by is None:
                stuck_type = StuckType.EDGE_BLOCKED
                message = "Points at edge, cannot exit"
            else:
                stuck_type = StuckType.BLOCKED_BY
                message = f"Chain of {len(chain)} pieces ends at ({root_key})"
        elif cycle_start > 0:
            # Upstream of the cycle, not part of it
            stuck_type = StuckType.BLOCKED_BY
            message = f"Blocked by ({blocked_by}), caught in a {CAUSE_LABELS[root_cause]}"
        elif root_cause == RootCause.MUTUAL_BLOCK:
            stuck_type = StuckType.MUTUAL_BLOCK
            message = f"Mutual block with ({blocked_by})"
        else:
            stuck_type = StuckType.CIRCULAR_CHAIN
            message = f"Circular chain of {len(chain)} pieces"

        return StuckReason(
            type=stuck_type,
            blocking_chain=chain,
            root_cause=root_cause,
            message=message,
            blocked_by=blocked_by,
            root_key=root_key,
        )

    def explain_one_hop(self, key: str) -> StuckReason:
        """Single-step check: is my blocker blocked by me?"""
        blocked_by = self.immediate_blocker.get(key)
        if blocked_by is None:
            return StuckReason(
                type=StuckType.EDGE_BLOCKED,
                blocking_chain=[key],
                root_cause=RootCause.EDGE_BLOCKED,
                message="Points at edge, cannot exit",
                root_key=key,
            )
        if self.immediate_blocker.get(blocked_by) == key:
            return StuckReason(
                type=StuckType.MUTUAL_BLOCK,
                blocking_chain=[key, blocked_by],
                root_cause=RootCause.MUTUAL_BLOCK,
                message=f"Mutual block with ({blocked_by})",
                blocked_by=blocked_by,
            )
        return StuckReason(
            type=StuckType.BLOCKED_BY,
            blocking_chain=[key, blocked_by],
            root_cause=RootCause.EDGE_BLOCKED,
            message=f"Blocked by ({blocked_by})",
            blocked_by=blocked_by,
            root_key=blocked_by,
        )

    def trace(self, full_chain: bool = True) -> DeadlockInfo:
        """Explain every stuck piece and collect the blockers."""
        info = DeadlockInfo(waiting=set(self.waiting))
        for key in self.stuck_keys:
            reason = self.explain(key) if full_chain else self.explain_one_hop(key)
            info.stuck[key] = reason
            info.blockers.update(reason.blocking_chain[1:])

        if info.has_deadlock:
            logger.debug(
                "Deadlock: %d stuck, %d blockers, %d waiting",
                len(info.stuck), len(info.blockers), len(info.waiting),
            )
        return info


def compute_deadlock_info(
    pieces,
    holes,
    move_count: int,
    geometry: GridGeometry,
    pauses=(),
    finished: bool = False,
    full_chain: bool = True,
) -> DeadlockInfo:
    """
    Diagnose a deadlock on the live board.

    Args:
        pieces: Occupancy mapping keyed by coordinate key, or an iterable of pieces.
        holes: Void cells as coordinates or keys.
        move_count: Global move counter.
        geometry: Board topology and extent.
        pauses: Pause cells (hex only).
        finished: True once the game is won or lost; nothing is traced then.
        full_chain: Walk whole blocking chains. False gives the 1-hop check.

    Returns:
        DeadlockInfo, empty unless no piece is clearable and pieces remain.
    """
    occupancy = index_pieces(pieces)
    if finished or not occupancy:
        return DeadlockInfo()

    hole_keys = key_set(holes)
    pause_keys = key_set(pauses)
    tracer = DeadlockTracer(occupancy, hole_keys, move_count, geometry, pause_keys)

    # Any clearable piece means there is no deadlock yet
    if len(tracer.immediate_blocker) + len(tracer.waiting) < len(occupancy):
        return DeadlockInfo()

    return tracer.trace(full_chain=full_chain)

"""
Recursive-doubling schedule of the binary tree merge.

No tree is ever built: at round ``step`` every rank works out from its own
rank alone whether it receives, sends or sits the round out. Receivers are the
multiples of ``2*step``; they absorb ``rank + step``. Every other rank sends
once to ``rank - step`` and leaves the merge. Rank 0 is never eliminated.
"""

from __future__ import annotations

from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .molecule import Molecule
from .sequential_topk import reduce_top_k


class Role(Enum):
    RECEIVE = "receive"
    SEND = "send"
    IDLE = "idle"


class MergeAction(NamedTuple):
    role: Role
    partner: Optional[int] = None


def merge_action(rank: int, step: int, size: int) -> MergeAction:
    """What ``rank`` does at round ``step`` of a merge over ``size`` ranks."""
    if rank % (2 * step) == 0:
        partner = rank + step
        if partner < size:
            return MergeAction(Role.RECEIVE, partner)
        # No partner this round (size is not a power of two): carry the set forward
        return MergeAction(Role.IDLE)
    return MergeAction(Role.SEND, rank - step)


def merge_steps(size: int) -> List[int]:
    steps = []
    step = 1
    while step < size:
        steps.append(step)
        step *= 2
    return steps


def merge_rounds(size: int) -> List[List[Tuple[int, int]]]:
    """The whole schedule as one list of ``(receiver, sender)`` pairs per round."""
    rounds = []
    for step in merge_steps(size):
        pairs = []
        for rank in range(0, size, 2 * step):
            action = merge_action(rank, step, size)
            if action.role is Role.RECEIVE:
                pairs.append((rank, action.partner))
        rounds.append(pairs)
    return rounds


def simulate_tree_merge(working_sets: Sequence[List[Molecule]], k: int) -> List[Molecule]:
    """Run the merge schedule over in-memory per-rank sets and return rank 0's.

    Each set must already be reduced. The sets are mutated exactly as the
    ranks would mutate their own working sets.
    """
    size = len(working_sets)
    if size == 0:
        return []
    for pairs in merge_rounds(size):
        for receiver, sender in pairs:
            working = working_sets[receiver]
            working.extend(working_sets[sender])
            reduce_top_k(working, k)
    return working_sets[0]

"""
The distributed selection protocol: scatter, local reduction, tree merge.

Every function takes the communicator explicitly. Anything exposing the
lowercase mpi4py API (``Get_rank``, ``Get_size``, ``bcast``, ``scatter``,
``send``, ``recv``) works, so the same code runs on ``MPI.COMM_WORLD`` and on
the pipe mesh of the multiprocessing backend.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from .config import ROOT, TAG_MERGE
from .molecule import Molecule, score
from .sequential_topk import reduce_top_k, top_k_count
from .tree import Role, merge_action, merge_steps

logger = logging.getLogger(__name__)


def chunkify(data: List[Molecule], chunks: int) -> List[List[Molecule]]:
    """Split data into ``chunks`` contiguous shards of ``len(data) // chunks``.

    Items past ``chunks * shard_size`` are left out of every shard.
    """
    size = len(data) // chunks
    return [data[i * size : (i + 1) * size] for i in range(chunks)]


def distribute(data: Optional[List[Molecule]], comm) -> Tuple[int, List[Molecule]]:
    """Broadcast the item count from the root, then scatter equal shards.

    Returns ``(num_data, local_shard)`` on every rank. ``data`` is only read
    on the root.
    """
    rank = comm.Get_rank()
    size = comm.Get_size()

    num_data = comm.bcast(len(data) if rank == ROOT else None, root=ROOT)

    chunks = None
    if rank == ROOT:
        dropped = num_data % size
        if dropped:
            logger.warning(
                "%d molecules do not divide evenly over %d ranks; the last %d are left out",
                num_data, size, dropped,
            )
        chunks = chunkify(data, size)
    local: List[Molecule] = comm.scatter(chunks, root=ROOT)
    logger.debug("Received shard of %d molecules (N = %d)", len(local), num_data)
    return num_data, local


def local_reduce(shard: List[Molecule], k: int, scorer: Callable[[Molecule], None] = score) -> List[Molecule]:
    """Score the shard in place and cut it down to its own top-k."""
    for molecule in shard:
        scorer(molecule)
    return reduce_top_k(shard, k)


def tree_merge(working: List[Molecule], k: int, comm) -> Optional[List[Molecule]]:
    """Recursive-doubling merge of the per-rank working sets onto rank 0.

    Returns the global top-k on rank 0 and ``None`` on every rank that handed
    its set on.
    """
    rank = comm.Get_rank()
    size = comm.Get_size()

    for step in merge_steps(size):
        action = merge_action(rank, step, size)
        if action.role is Role.RECEIVE:
            # Message length is whatever the sender holds, possibly fewer than k
            incoming: List[Molecule] = comm.recv(source=action.partner, tag=TAG_MERGE)
            logger.debug("step %d: received %d molecules from rank %d", step, len(incoming), action.partner)
            working.extend(incoming)
            reduce_top_k(working, k)
        elif action.role is Role.SEND:
            logger.debug("step %d: sending %d molecules to rank %d", step, len(working), action.partner)
            comm.send(working, dest=action.partner, tag=TAG_MERGE)
            return None
        else:
            logger.debug("step %d: no partner, carrying %d molecules forward", step, len(working))
    return working


def select_top_k(
    data: Optional[List[Molecule]],
    comm,
    scorer: Callable[[Molecule], None] = score,
) -> Optional[List[Molecule]]:
    """Full pipeline. Rank 0 gets the global top-k, other ranks get ``None``."""
    num_data, local = distribute(data, comm)
    k = top_k_count(num_data)
    if comm.Get_rank() == ROOT:
        logger.info(
            "Selecting top %d of %d molecules over %d ranks (%d rounds)",
            k, num_data, comm.Get_size(), len(merge_steps(comm.Get_size())),
        )
    local_reduce(local, k, scorer)
    return tree_merge(local, k, comm)

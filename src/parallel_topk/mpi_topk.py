"""
MPI-based top-1% selection using mpi4py.

Run with something like:
    mpiexec -n 4 python -m parallel_topk.mpi_topk 100000 --verify
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from mpi4py import MPI

from .config import ROOT, configure_logging, parse_count
from .molecule import Molecule, generate_data, print_data
from .protocol import select_top_k
from .sequential_topk import sequential_top_k, top_k_count

logger = logging.getLogger(__name__)


def mpi_top_k(data: Optional[List[Molecule]], comm: MPI.Comm = MPI.COMM_WORLD) -> Optional[List[Molecule]]:
    """Distributed top-k: scatter -> local reduce -> tree merge onto rank 0.

    Any failure on any rank aborts the whole communicator.
    """
    try:
        return select_top_k(data, comm)
    except Exception:
        logger.exception("Top-k selection failed, aborting all ranks")
        comm.Abort(1)
        raise


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MPI top-1% molecule selection")
    parser.add_argument("num_data", nargs="?", help="Number of molecules to generate (read on rank 0 only).")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility.")
    parser.add_argument("--verify", action="store_true", help="Check the result against a sequential selection on rank 0.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG shows every merge round).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    size = comm.Get_size()
    args = parse_args(argv)
    configure_logging(rank, args.log_level)

    logger.debug("MPI %s, thread level %d, %d ranks", MPI.Get_version(), MPI.Query_thread(), size)

    data: Optional[List[Molecule]] = None
    if rank == ROOT:
        try:
            num_data = parse_count(args.num_data)
        except ValueError as exc:
            logger.error("Error: %s (usage: %s num_data)", exc, sys.argv[0])
            comm.Abort(1)
        data = generate_data(num_data, seed=args.seed)

    comm.barrier()
    t0 = MPI.Wtime()
    top = mpi_top_k(data, comm=comm)
    comm.barrier()
    t1 = MPI.Wtime()

    if rank == ROOT:
        print_data(top)
        logger.info("Selected %d of %d molecules across %d ranks in %.3f s.", len(top), len(data), size, t1 - t0)
        if args.verify:
            kept = data[: len(data) - len(data) % size]
            if top != sequential_top_k(kept, k=top_k_count(len(data))):
                raise AssertionError("Distributed top-k does not match the sequential selection")
            logger.info("Verified against sequential selection.")


if __name__ == "__main__":
    main()

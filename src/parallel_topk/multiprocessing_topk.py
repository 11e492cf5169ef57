"""
Top-1% selection over local processes, without an MPI installation.

Every rank is a separate process; ranks only talk through a full mesh of
pipes, so the exact same protocol code as the MPI version runs here.

Run with something like:
    python -m parallel_topk.multiprocessing_topk 100000 --processes 6 --verify
"""

from __future__ import annotations

import argparse
import logging
import multiprocessing as mp
import os
import time
from multiprocessing.connection import Connection, wait
from typing import Any, Callable, Dict, List, Optional

from .config import ROOT, TAG_BARRIER, TAG_BCAST, TAG_SCATTER, configure_logging, parse_count
from .molecule import Molecule, generate_data, print_data, score
from .protocol import select_top_k
from .sequential_topk import sequential_top_k, top_k_count

logger = logging.getLogger(__name__)


class GroupAborted(RuntimeError):
    """A rank exited abnormally and the whole group was torn down."""


class PipeComm:
    """Communicator over pipes, mirroring the lowercase mpi4py API.

    ``links`` maps every other rank to the connection leading to it. Messages
    between two ranks are delivered in order; a receive blocks until the
    matching send arrives.
    """

    def __init__(self, rank: int, size: int, links: Dict[int, Connection]):
        self._rank = rank
        self._size = size
        self._links = links

    def Get_rank(self) -> int:
        return self._rank

    def Get_size(self) -> int:
        return self._size

    def _peers(self) -> List[int]:
        return [r for r in range(self._size) if r != self._rank]

    def send(self, obj: Any, dest: int, tag: int = 0) -> None:
        self._links[dest].send((tag, obj))

    def recv(self, source: int, tag: int = 0) -> Any:
        got_tag, obj = self._links[source].recv()
        if got_tag != tag:
            raise RuntimeError(f"rank {self._rank}: expected tag {tag} from rank {source}, got {got_tag}")
        return obj

    def bcast(self, obj: Any, root: int = 0) -> Any:
        if self._rank == root:
            for peer in self._peers():
                self.send(obj, peer, tag=TAG_BCAST)
            return obj
        return self.recv(root, tag=TAG_BCAST)

    def scatter(self, sendobj: Optional[List[Any]], root: int = 0) -> Any:
        if self._rank == root:
            if sendobj is None or len(sendobj) != self._size:
                raise ValueError(f"scatter needs exactly {self._size} items on the root")
            for peer in self._peers():
                self.send(sendobj[peer], peer, tag=TAG_SCATTER)
            return sendobj[root]
        return self.recv(root, tag=TAG_SCATTER)

    def barrier(self) -> None:
        if self._rank == ROOT:
            for peer in self._peers():
                self.recv(peer, tag=TAG_BARRIER)
        else:
            self.send(None, ROOT, tag=TAG_BARRIER)
        self.bcast(None, root=ROOT)

    def Abort(self, errorcode: int = 1) -> None:
        # The parent notices the non-zero exit code and terminates the rest
        os._exit(errorcode)


def mesh(size: int) -> List[Dict[int, Connection]]:
    """One duplex pipe per pair of ranks; entry ``r`` holds rank r's ends."""
    links: List[Dict[int, Connection]] = [{} for _ in range(size)]
    for a in range(size):
        for b in range(a + 1, size):
            links[a][b], links[b][a] = mp.Pipe()
    return links


def _rank_main(
    rank: int,
    size: int,
    links: Dict[int, Connection],
    data: Optional[List[Molecule]],
    scorer: Callable[[Molecule], None],
    result_link: Optional[Connection],
    log_level: str,
) -> None:
    configure_logging(rank, log_level)
    comm = PipeComm(rank, size, links)
    try:
        top = select_top_k(data, comm, scorer=scorer)
    except Exception:
        logger.exception("Rank %d failed, aborting the group", rank)
        comm.Abort(1)
    if rank == ROOT:
        result_link.send(top)


def _terminate(workers: List[mp.Process]) -> None:
    for w in workers:
        if w.is_alive():
            w.terminate()
    for w in workers:
        w.join()


def parallel_top_k(
    data: List[Molecule],
    processes: int = 4,
    scorer: Callable[[Molecule], None] = score,
    log_level: Optional[str] = None,
) -> List[Molecule]:
    """Run the distributed selection on ``processes`` local ranks.

    Every rank logs under its own tag at ``log_level``, which defaults to the
    caller's root logger level. Returns rank 0's top-k. Raises GroupAborted
    if any rank dies.
    """
    if processes < 1:
        raise ValueError("need at least one process")
    if log_level is None:
        log_level = logging.getLevelName(logging.getLogger().getEffectiveLevel())

    links = mesh(processes)
    result_recv, result_send = mp.Pipe(duplex=False)
    workers = [
        mp.Process(
            target=_rank_main,
            args=(
                rank,
                processes,
                links[rank],
                data if rank == ROOT else None,
                scorer,
                result_send if rank == ROOT else None,
                log_level,
            ),
            name=f"topk-rank-{rank}",
        )
        for rank in range(processes)
    ]
    for w in workers:
        w.start()
    # Children hold their own copies of the pipe ends
    for rank_links in links:
        for conn in rank_links.values():
            conn.close()
    result_send.close()

    result: Optional[List[Molecule]] = None
    received = False
    pending = {w.sentinel: w for w in workers}
    try:
        while pending:
            waitables = list(pending) + ([] if received else [result_recv])
            for ready in wait(waitables):
                if ready is result_recv:
                    result = result_recv.recv()
                    received = True
                    continue
                worker = pending.pop(ready)
                worker.join()
                if worker.exitcode != 0:
                    raise GroupAborted(f"{worker.name} exited with code {worker.exitcode}")
        if not received:
            if not result_recv.poll():
                raise GroupAborted("rank 0 exited without a result")
            result = result_recv.recv()
    finally:
        _terminate(workers)
        result_recv.close()
    return result


def positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive number of processes, got {value}")
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Multiprocessing top-1% molecule selection")
    parser.add_argument("num_data", help="Number of molecules to generate.")
    parser.add_argument("--processes", type=positive_int, default=4, help="Number of ranks to start.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility.")
    parser.add_argument("--verify", action="store_true", help="Check the result against a sequential selection.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG shows every merge round).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(ROOT, args.log_level)
    try:
        num_data = parse_count(args.num_data)
    except ValueError as exc:
        raise SystemExit(f"Error: {exc}")

    data = generate_data(num_data, seed=args.seed)
    start = time.time()
    top = parallel_top_k(data, processes=args.processes, log_level=args.log_level)
    end = time.time()

    print_data(top)
    logger.info("Selected %d of %d molecules across %d processes in %.3f s.", len(top), num_data, args.processes, end - start)
    if args.verify:
        kept = data[: num_data - num_data % args.processes]
        if top != sequential_top_k(kept, k=top_k_count(num_data)):
            raise AssertionError("Parallel top-k does not match the sequential selection")
        logger.info("Verified against sequential selection.")


if __name__ == "__main__":
    main()

"""
Single-process top-k selection.

This is both the local reduction step every rank runs on its shard and the
reference used to verify the distributed result.

Run with something like:
    python -m parallel_topk.sequential_topk
"""

from __future__ import annotations

import heapq
import time
from typing import Callable, List, Optional

from .config import TOP_PERCENT
from .molecule import Molecule, generate_data, score, sort_key


def top_k_count(num_data: int) -> int:
    """Number of molecules kept out of ``num_data`` (never less than one)."""
    return max(num_data * TOP_PERCENT // 100, 1)


def reduce_top_k(A: List[Molecule], k: int) -> List[Molecule]:
    """Shrink A in place to its k best molecules, sorted ascending by key."""
    if len(A) > k:
        # Partial selection: only the k winners get ordered
        A[:] = heapq.nsmallest(k, A, key=sort_key)
    else:
        A.sort(key=sort_key)
    return A


def sequential_top_k(
    data: List[Molecule],
    k: Optional[int] = None,
    scorer: Callable[[Molecule], None] = score,
) -> List[Molecule]:
    """Score every molecule and return the top-k as a new list.

    k defaults to the top-1% count of ``len(data)``.
    """
    if k is None:
        k = top_k_count(len(data))
    for molecule in data:
        scorer(molecule)
    return reduce_top_k(list(data), k)


def benchmark_sequential() -> None:
    """Performance profiling for increasing input sizes."""
    print("\n=== Sequential Top-k Selection Performance ===")
    sizes = [10_000, 100_000, 1_000_000]

    for n in sizes:
        data = generate_data(n, seed=n)
        start = time.time()
        sequential_top_k(data)
        end = time.time()
        print(f"n = {n:>10,}  ->  k = {top_k_count(n):>6,}  time = {end - start:.3f} s")


if __name__ == "__main__":
    benchmark_sequential()

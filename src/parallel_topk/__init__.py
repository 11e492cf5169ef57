"""Distributed top-1% selection over message passing."""

from .molecule import Molecule, generate_data, print_data, score, sort_key
from .protocol import distribute, local_reduce, select_top_k, tree_merge
from .sequential_topk import reduce_top_k, sequential_top_k, top_k_count
from .tree import MergeAction, Role, merge_action, merge_rounds, simulate_tree_merge

__all__ = [
    "Molecule",
    "MergeAction",
    "Role",
    "distribute",
    "generate_data",
    "local_reduce",
    "merge_action",
    "merge_rounds",
    "print_data",
    "reduce_top_k",
    "score",
    "select_top_k",
    "sequential_top_k",
    "simulate_tree_merge",
    "sort_key",
    "top_k_count",
    "tree_merge",
]

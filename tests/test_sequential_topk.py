import random

import pytest

from parallel_topk.molecule import Molecule, generate_data, score, sort_key
from parallel_topk.sequential_topk import reduce_top_k, sequential_top_k, top_k_count


def scored(n, seed=0):
    data = generate_data(n, seed=seed)
    for m in data:
        score(m)
    return data


@pytest.mark.parametrize(
    "n, k",
    [(0, 1), (1, 1), (99, 1), (100, 1), (199, 1), (200, 2), (1000, 10), (12_345, 123)],
)
def test_top_k_count(n, k):
    assert top_k_count(n) == k


@pytest.mark.parametrize("length, k", [(0, 3), (1, 3), (3, 3), (4, 3), (50, 1), (50, 10), (7, 20)])
def test_reduce_matches_sort_then_truncate(length, k):
    data = scored(length, seed=length)
    expected = sorted(data, key=sort_key)[: min(length, k)]

    result = reduce_top_k(list(data), k)

    assert result == expected
    assert len(result) == min(length, k)


def test_reduce_is_in_place():
    data = scored(40)
    same = reduce_top_k(data, 5)
    assert same is data
    assert len(data) == 5


def test_short_shard_is_fully_sorted():
    data = scored(6)
    random.Random(1).shuffle(data)
    reduce_top_k(data, 10)
    assert [sort_key(m) for m in data] == sorted(sort_key(m) for m in data)
    assert len(data) == 6


def test_score_ties_broken_by_ident():
    data = [Molecule(ident=i, descriptors=(), score=1.0) for i in (5, 2, 9, 0)]
    assert [m.ident for m in reduce_top_k(data, 2)] == [0, 2]


def test_score_is_deterministic_and_idempotent():
    a, b = generate_data(10, seed=3), generate_data(10, seed=3)
    for m in a + b:
        score(m)
    first = [m.score for m in a]
    for m in a:
        score(m)
    assert [m.score for m in a] == first == [m.score for m in b]


def test_sequential_top_k_is_best_one_percent():
    data = generate_data(1000, seed=11)
    top = sequential_top_k(data)
    assert len(top) == 10
    assert top == sorted(data, key=sort_key)[:10]


def test_sequential_top_k_explicit_k():
    data = generate_data(30, seed=2)
    assert len(sequential_top_k(data, k=4)) == 4

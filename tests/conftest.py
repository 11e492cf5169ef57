import threading

import pytest

from parallel_topk.multiprocessing_topk import PipeComm, mesh


def run_ranks(size, target, comm_class=PipeComm):
    """Run ``target(comm)`` once per simulated rank, each on its own thread."""
    links = mesh(size)
    comms = [comm_class(rank, size, links[rank]) for rank in range(size)]
    results = [None] * size
    errors = []

    def body(rank):
        try:
            results[rank] = target(comms[rank])
        except Exception as exc:  # surfaced below in the test thread
            errors.append((rank, exc))

    threads = [threading.Thread(target=body, args=(rank,), daemon=True) for rank in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    if errors:
        raise errors[0][1]
    assert not any(t.is_alive() for t in threads), "a rank is still blocked"
    for rank_links in links:
        for conn in rank_links.values():
            conn.close()
    return results


@pytest.fixture
def ranks():
    return run_ranks

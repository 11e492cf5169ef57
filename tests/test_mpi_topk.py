import pytest

MPI = pytest.importorskip("mpi4py.MPI")

from parallel_topk.molecule import generate_data  # noqa: E402
from parallel_topk.mpi_topk import main, mpi_top_k, parse_args  # noqa: E402
from parallel_topk.sequential_topk import sequential_top_k  # noqa: E402


def test_single_rank_selection():
    comm = MPI.COMM_WORLD
    if comm.Get_size() != 1:
        pytest.skip("runs on a single-rank world")
    top = mpi_top_k(generate_data(500, seed=7), comm=comm)
    assert top == sequential_top_k(generate_data(500, seed=7))


def test_parse_args_count_is_optional():
    args = parse_args(["--seed", "4"])
    assert args.num_data is None
    assert args.seed == 4
    assert not args.verify


def test_main_single_rank(capsys):
    if MPI.COMM_WORLD.Get_size() != 1:
        pytest.skip("runs on a single-rank world")
    main(["300", "--seed", "1", "--verify"])
    assert len(capsys.readouterr().out.splitlines()) == 3

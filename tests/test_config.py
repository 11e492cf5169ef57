import logging

import pytest

from parallel_topk.config import configure_logging, parse_count


@pytest.mark.parametrize("text, value", [("0", 0), ("100", 100), (" 1000 ", 1000)])
def test_parse_count(text, value):
    assert parse_count(text) == value


@pytest.mark.parametrize("text", [None, "", "abc", "12abc", "-5", "1.5"])
def test_parse_count_rejects(text):
    with pytest.raises(ValueError):
        parse_count(text)


def test_configure_logging_tags_rank():
    configure_logging(3, "debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any("[Rank 3]" in h.formatter._fmt for h in root.handlers if h.formatter)


@pytest.mark.parametrize("text", ["1_000", "+5", "0x10", "1e3", "١٢"])
def test_parse_count_only_plain_digits(text):
    with pytest.raises(ValueError, match="unable to understand"):
        parse_count(text)

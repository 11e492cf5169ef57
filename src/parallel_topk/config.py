"""
Configuration settings for the distributed top-k selection.
"""

from __future__ import annotations

import logging
import sys

# Rank that owns the raw data and ends up holding the result
ROOT = 0

# Size of the selection, as a percentage of the global item count
TOP_PERCENT = 1

# Number of descriptors carried by each generated molecule
DESCRIPTOR_COUNT = 8

# Message tags
TAG_MERGE = 0
TAG_BCAST = 101
TAG_SCATTER = 102
TAG_BARRIER = 103

LOG_FORMAT = "%(asctime)s [%(levelname)s] [Rank {rank}] %(message)s"


def configure_logging(rank: int, level: str = "INFO") -> None:
    """Send log records to stderr, tagged with the process rank."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT.format(rank=rank),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def parse_count(text: str | None) -> int:
    """Parse the item count given on the command line."""
    if text is None:
        raise ValueError("missing item count")
    digits = text.strip()
    # Plain ASCII digits only: no sign, no underscores
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError(f'unable to understand the number "{text}"')
    return int(digits)

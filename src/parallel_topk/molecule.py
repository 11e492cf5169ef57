"""
Molecule records plus the default data source, scoring function and result sink.

The selection protocol only relies on ``sort_key``; everything else here can be
swapped for a real generator or scorer.
"""

from __future__ import annotations

import math
import random
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO, Tuple

from .config import DESCRIPTOR_COUNT

# Per-descriptor weights of the linear part of the score
WEIGHTS = (0.9, -1.3, 0.4, 2.1, -0.7, 1.6, -2.4, 0.8)


@dataclass
class Molecule:
    ident: int
    descriptors: Tuple[float, ...]
    score: float = math.inf


def sort_key(molecule: Molecule) -> Tuple[float, int]:
    """Ascending key: lower score ranks better, ident breaks ties."""
    return (molecule.score, molecule.ident)


def generate_data(n: int, seed: Optional[int] = None) -> List[Molecule]:
    """Produce ``n`` unscored molecules with idents ``0..n-1``."""
    rng = random.Random(seed)
    return [
        Molecule(ident=i, descriptors=tuple(rng.uniform(-1.0, 1.0) for _ in range(DESCRIPTOR_COUNT)))
        for i in range(n)
    ]


def score(molecule: Molecule) -> None:
    """Assign a binding-energy-like score in place. Pure in the descriptors."""
    d = molecule.descriptors
    linear = sum(w * x for w, x in zip(WEIGHTS, d))
    strain = sum(x * x for x in d) / max(len(d), 1)
    molecule.score = linear + math.sin(3.0 * linear) + 0.5 * strain


def print_data(molecules: Iterable[Molecule], stream: Optional[TextIO] = None) -> None:
    out = stream if stream is not None else sys.stdout
    for position, molecule in enumerate(molecules, start=1):
        print(f"{position:>6}  molecule {molecule.ident:>10}  score {molecule.score: .6f}", file=out)

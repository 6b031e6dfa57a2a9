from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from .channel import QubitRound
from .errors import InsufficientKeyMaterialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiftedKey:
    """Bob's bits from the rounds where both parties used the same basis.

    ``reference_bits`` holds Alice's bits at the same positions; it stands in for
    the values she reveals when a sample is compared publicly.
    """

    bits: str
    reference_bits: str
    round_indices: Tuple[int, ...]
    initial_length: int

    def __len__(self) -> int:
        return len(self.bits)

    @property
    def efficiency(self) -> float:
        if self.initial_length == 0:
            return 0.0
        return len(self.bits) / self.initial_length

    @property
    def mismatches(self) -> int:
        return sum(1 for a, b in zip(self.reference_bits, self.bits) if a != b)


class Sifter:
    def __init__(self, min_length: int = 10):
        if min_length < 0:
            raise ValueError("min_length must be non-negative")
        self.min_length = min_length

    def sift(self, rounds: Sequence[QubitRound]) -> SiftedKey:
        kept = [r for r in rounds if r.bases_match]
        sifted = SiftedKey(
            bits="".join(str(r.bob_bit) for r in kept),
            reference_bits="".join(str(r.alice_bit) for r in kept),
            round_indices=tuple(r.index for r in kept),
            initial_length=len(rounds),
        )
        logger.debug("Sifted %d of %d rounds (%.1f%%)", len(sifted), len(rounds), sifted.efficiency * 100)

        if len(sifted) == 0 or len(sifted) < self.min_length:
            raise InsufficientKeyMaterialError(
                f"Sifted key has {len(sifted)} bits, at least {max(self.min_length, 1)} required",
                sifted_key=sifted,
            )
        return sifted

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from numpy.random import Generator

from .sifting import SiftedKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EavesdropCheckResult:
    sample_indices: Tuple[int, ...]
    sample_size: int
    errors: int
    error_rate: float
    threshold: float
    eavesdrop_detected: bool


@dataclass(frozen=True)
class RetainedKey:
    """Key material left after the public sample has been discarded."""

    bits: str
    reference_bits: str

    def __len__(self) -> int:
        return len(self.bits)

    @property
    def agrees(self) -> bool:
        return self.bits == self.reference_bits


def remove_indices(bits: str, indices) -> str:
    dropped = set(indices)
    return "".join(bit for i, bit in enumerate(bits) if i not in dropped)


class EavesdropDetector:
    def __init__(self, sample_fraction: float, threshold: float):
        if not 0.0 <= sample_fraction <= 1.0:
            raise ValueError("sample_fraction must be between 0 and 1")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.sample_fraction = sample_fraction
        self.threshold = threshold

    def sample_size_for(self, key_length: int) -> int:
        # halves round up
        return min(math.floor(self.sample_fraction * key_length + 0.5), key_length)

    def check(self, sifted_key: SiftedKey, rng: Generator) -> Tuple[EavesdropCheckResult, RetainedKey]:
        length = len(sifted_key)
        sample_size = self.sample_size_for(length)
        drawn = rng.choice(length, size=sample_size, replace=False) if sample_size else []
        sample_indices = tuple(sorted(int(i) for i in drawn))

        errors = sum(1 for i in sample_indices if sifted_key.bits[i] != sifted_key.reference_bits[i])
        error_rate = errors / sample_size if sample_size else 0.0
        detected = error_rate > self.threshold

        result = EavesdropCheckResult(
            sample_indices=sample_indices,
            sample_size=sample_size,
            errors=errors,
            error_rate=error_rate,
            threshold=self.threshold,
            eavesdrop_detected=detected,
        )
        retained = RetainedKey(
            bits=remove_indices(sifted_key.bits, sample_indices),
            reference_bits=remove_indices(sifted_key.reference_bits, sample_indices),
        )

        if detected:
            logger.warning("Sample QBER %.4f exceeds threshold %.4f", error_rate, self.threshold)
        else:
            logger.debug("Sample QBER %.4f over %d bits", error_rate, sample_size)
        return result, retained


def detection_probability(qber: float, sample_size: int) -> float:
    """Chance that a sample of ``sample_size`` bits contains at least one error."""
    if sample_size <= 0:
        return 0.0
    return 1.0 - (1.0 - qber) ** sample_size


class EavesdropStrategy(str, Enum):
    INTERCEPT_RESEND = "intercept_resend"
    PARTIAL_INTERCEPT = "partial_intercept"
    ENTANGLING_PROBE = "entangling_probe"
    COLLECTIVE = "collective"


@dataclass(frozen=True)
class EveInformation:
    strategy: EavesdropStrategy
    mutual_information: float
    correct_guess_probability: float
    expected_qber: float

    def detectable(self, threshold: float) -> bool:
        return self.expected_qber > threshold


def analyze_eve_information(strategy: EavesdropStrategy, probability: float = 1.0) -> EveInformation:
    """Textbook bounds on what an eavesdropper learns and the QBER she causes.

    Intercept-resend gives Eve half a bit per sifted bit at 25% QBER; intercepting
    only a fraction ``probability`` of the rounds scales both linearly. The
    entangling probe figures are the optimal individual attack, and a collective
    attack with quantum memory is bounded by Holevo but introduces no errors.
    """
    strategy = EavesdropStrategy(strategy)
    if strategy is EavesdropStrategy.INTERCEPT_RESEND:
        return EveInformation(strategy, 0.5, 0.75, 0.25)
    if strategy is EavesdropStrategy.PARTIAL_INTERCEPT:
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be between 0 and 1")
        return EveInformation(strategy, 0.5 * probability, 0.5 + 0.25 * probability, 0.25 * probability)
    if strategy is EavesdropStrategy.ENTANGLING_PROBE:
        return EveInformation(strategy, 0.415, 0.71, 0.146)
    return EveInformation(strategy, 0.5, 0.75, 0.0)

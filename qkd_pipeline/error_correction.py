from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.random import Generator

from .eavesdrop import RetainedKey

logger = logging.getLogger(__name__)

# A sample without errors does not rule out errors in the rest of the key.
MIN_QBER_ESTIMATE = 0.01


@dataclass(frozen=True)
class ReconciliationResult:
    original_key: str
    corrected_key: str
    errors_detected: int
    errors_corrected: int
    information_leaked: float
    success: bool
    passes_run: int
    residual_errors: int


@dataclass
class _PassLayout:
    blocks: List[np.ndarray]
    block_of: np.ndarray
    reference_parities: List[int]


class CascadeReconciler:
    """Multi-pass block parity reconciliation.

    Pass one splits the key in natural order, later passes shuffle positions with
    the session generator. A block whose parity disagrees is bisected down to one
    wrong bit, and flipping that bit re-opens the blocks of the other passes that
    contain it. Every parity the reference side discloses counts as one leaked bit.
    """

    def __init__(
        self,
        block_sizes: Optional[Sequence[int]] = None,
        max_passes: int = 8,
        estimated_qber: Optional[float] = None,
    ):
        if max_passes <= 0:
            raise ValueError("max_passes must be positive")
        if block_sizes is not None:
            block_sizes = tuple(int(size) for size in block_sizes)
            if not block_sizes or any(size <= 0 for size in block_sizes):
                raise ValueError("block_sizes must be a non-empty sequence of positive sizes")
        self.block_sizes = block_sizes
        self.max_passes = max_passes
        self.estimated_qber = estimated_qber

    def reconcile(self, retained_key: RetainedKey, rng: Generator) -> ReconciliationResult:
        if not isinstance(retained_key, RetainedKey):
            raise TypeError("reconciliation runs on the key retained after sampling")
        return self.correct(retained_key.reference_bits, retained_key.bits, rng)

    def block_schedule(self, length: int) -> List[int]:
        if self.block_sizes is not None:
            sizes = list(self.block_sizes[: self.max_passes])
        else:
            qber = max(self.estimated_qber or 0.0, MIN_QBER_ESTIMATE)
            sizes = [max(4, int(0.73 / qber))]
        while len(sizes) < self.max_passes:
            sizes.append(sizes[-1] * 2)
        return [max(1, min(size, length)) for size in sizes]

    def correct(self, reference_key: str, noisy_key: str, rng: Generator) -> ReconciliationResult:
        if len(reference_key) != len(noisy_key):
            raise ValueError("Keys must be of equal length for Cascade")

        reference = np.fromiter((int(bit) for bit in reference_key), dtype=np.uint8, count=len(reference_key))
        noisy = np.fromiter((int(bit) for bit in noisy_key), dtype=np.uint8, count=len(noisy_key))
        length = len(reference)

        layouts: List[_PassLayout] = []
        leaked = 0
        errors_detected = 0
        errors_corrected = 0
        success = False

        for pass_index, block_size in enumerate(self.block_schedule(length)):
            order = np.arange(length) if pass_index == 0 else rng.permutation(length)
            layout = self._layout(order, block_size, reference)
            layouts.append(layout)
            leaked += len(layout.blocks)

            pending = [
                (pass_index, block)
                for block, positions in enumerate(layout.blocks)
                if self._parity(noisy, positions) != layout.reference_parities[block]
            ]
            logger.debug("Cascade pass %d: block size %d, %d mismatching blocks", pass_index + 1, block_size, len(pending))
            if not pending:
                success = True
                break

            while pending:
                owner, block = pending.pop()
                owner_layout = layouts[owner]
                positions = owner_layout.blocks[block]
                if self._parity(noisy, positions) == owner_layout.reference_parities[block]:
                    continue

                errors_detected += 1
                idx, leak = self._binary_search(reference, noisy, positions)
                leaked += leak
                noisy[idx] ^= 1
                errors_corrected += 1

                for other, other_layout in enumerate(layouts):
                    if other != owner:
                        pending.append((other, int(other_layout.block_of[idx])))

        residual_errors = int(np.count_nonzero(reference != noisy))
        if not success:
            logger.warning("Cascade left mismatching blocks after %d passes", len(layouts))
        return ReconciliationResult(
            original_key=noisy_key,
            corrected_key="".join(str(int(bit)) for bit in noisy),
            errors_detected=errors_detected,
            errors_corrected=errors_corrected,
            information_leaked=float(leaked),
            success=success,
            passes_run=len(layouts),
            residual_errors=residual_errors,
        )

    def _layout(self, order: np.ndarray, block_size: int, reference: np.ndarray) -> _PassLayout:
        blocks = [order[start : start + block_size] for start in range(0, len(order), block_size)]
        block_of = np.empty(len(order), dtype=np.intp)
        for block, positions in enumerate(blocks):
            block_of[positions] = block
        return _PassLayout(blocks, block_of, [self._parity(reference, positions) for positions in blocks])

    def _binary_search(self, reference: np.ndarray, noisy: np.ndarray, positions: np.ndarray) -> Tuple[int, int]:
        leakage = 0
        while len(positions) > 1:
            mid = len(positions) // 2
            leakage += 1
            if self._parity(reference, positions[:mid]) != self._parity(noisy, positions[:mid]):
                positions = positions[:mid]
            else:
                positions = positions[mid:]
        return int(positions[0]), leakage

    @staticmethod
    def _parity(bits: np.ndarray, positions: np.ndarray) -> int:
        return int(bits[positions].sum()) & 1

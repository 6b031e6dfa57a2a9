from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from numpy.random import Generator

logger = logging.getLogger(__name__)

TOEPLITZ = "toeplitz"
SHAKE_256 = "shake-256"

# float64 elements held per chunk of Toeplitz rows
TOEPLITZ_CHUNK_ELEMENTS = 1 << 21


@dataclass(frozen=True)
class PrivacyAmplificationResult:
    final_key: str
    hash_function: str
    original_length: int
    final_length: int
    compression_ratio: float
    security_parameter: int
    hash_seed: Optional[str] = None

    @property
    def underflow(self) -> bool:
        return self.final_length == 0


class PrivacyAmplifier:
    """Compresses a reconciled key to erase what the public discussion leaked.

    The output keeps ``n - ceil(leaked) - security_parameter`` bits. The default
    family is a random Toeplitz matrix over GF(2) whose seed is drawn from the
    session generator and published alongside the result.
    """

    HASH_FUNCTIONS = {TOEPLITZ, SHAKE_256}

    def __init__(self, security_parameter: int = 40, hash_function: str = TOEPLITZ):
        if security_parameter < 0:
            raise ValueError("security_parameter must be non-negative")
        if hash_function not in self.HASH_FUNCTIONS:
            raise ValueError(f"Unsupported hash function '{hash_function}'")
        self.security_parameter = security_parameter
        self.hash_function = hash_function

    def output_length(self, key_length: int, information_leaked: float) -> int:
        return max(key_length - math.ceil(information_leaked) - self.security_parameter, 0)

    def amplify(self, key: str, information_leaked: float, rng: Generator) -> PrivacyAmplificationResult:
        if information_leaked < 0:
            raise ValueError("information_leaked must be non-negative")
        original_length = len(key)
        target_length = self.output_length(original_length, information_leaked)

        if target_length <= 0:
            logger.warning(
                "Privacy amplification underflow: %d bits, %.1f leaked, %d security margin",
                original_length,
                information_leaked,
                self.security_parameter,
            )
            return PrivacyAmplificationResult(
                final_key="",
                hash_function=self.hash_function,
                original_length=original_length,
                final_length=0,
                compression_ratio=0.0,
                security_parameter=self.security_parameter,
            )

        hash_seed: Optional[str] = None
        if self.hash_function == TOEPLITZ:
            seed = rng.integers(0, 2, size=original_length + target_length - 1, dtype=np.uint8)
            final_key = self._toeplitz_bits(key, seed)
            hash_seed = "".join(str(int(bit)) for bit in seed)
        else:
            final_key = self._shake_bits(key, target_length)

        logger.debug("Amplified %d bits down to %d with %s", original_length, target_length, self.hash_function)
        return PrivacyAmplificationResult(
            final_key=final_key,
            hash_function=self.hash_function,
            original_length=original_length,
            final_length=target_length,
            compression_ratio=target_length / original_length,
            security_parameter=self.security_parameter,
            hash_seed=hash_seed,
        )

    @staticmethod
    def toeplitz_hash(key_bits: np.ndarray, seed: np.ndarray) -> np.ndarray:
        """Multiply ``key_bits`` by the Toeplitz matrix defined by ``seed`` over GF(2).

        Row ``i`` of the matrix is ``seed[i : i + n]`` reversed, so rows are read
        as windows over the seed and reduced a chunk at a time.
        """
        cols = len(key_bits)
        rows = len(seed) - cols + 1
        if cols == 0 or rows <= 0:
            raise ValueError("Toeplitz seed must have rows + cols - 1 bits")
        windows = sliding_window_view(seed, cols)
        reversed_key = key_bits[::-1].astype(np.float64)
        step = max(1, TOEPLITZ_CHUNK_ELEMENTS // cols)
        product = np.empty(rows, dtype=np.uint8)
        for start in range(0, rows, step):
            chunk = windows[start : start + step].astype(np.float64)
            product[start : start + step] = (chunk @ reversed_key).astype(np.int64) & 1
        return product

    def _toeplitz_bits(self, key: str, seed: np.ndarray) -> str:
        key_bits = np.fromiter((int(bit) for bit in key), dtype=np.uint8, count=len(key))
        return "".join(str(int(bit)) for bit in self.toeplitz_hash(key_bits, seed))

    def _shake_bits(self, key: str, bit_length: int) -> str:
        byte_data = bits_to_bytes(key)
        digest = hashlib.shake_256(byte_data).digest((bit_length + 7) // 8)
        return "".join(f"{byte:08b}" for byte in digest)[:bit_length]


def bits_to_bytes(bits: str) -> bytes:
    padding = (8 - len(bits) % 8) % 8
    padded = bits + "0" * padding
    return bytes(int(padded[i : i + 8], 2) for i in range(0, len(padded), 8))

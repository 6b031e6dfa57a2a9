from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from numpy.random import Generator
from qiskit import QuantumCircuit
from qiskit_aer import AerSimulator

logger = logging.getLogger(__name__)

_SEED_BOUND = 2**31 - 1


class Basis(str, Enum):
    RECTILINEAR = "Z"
    DIAGONAL = "X"


@dataclass(frozen=True)
class QubitRound:
    index: int
    alice_bit: int
    alice_basis: Basis
    bob_bit: int
    bob_basis: Basis
    intercepted: bool = False
    eve_basis: Optional[Basis] = None
    noise_flipped: bool = False

    @property
    def bases_match(self) -> bool:
        return self.alice_basis == self.bob_basis


def choose_basis(rng: Generator) -> Basis:
    return Basis.DIAGONAL if rng.random() < 0.5 else Basis.RECTILINEAR


def random_bit(rng: Generator) -> int:
    return int(rng.integers(0, 2))


class SampledMeasurement:
    """Measurement outcomes drawn directly from the session generator.

    A state measured in the basis it was prepared in returns the encoded bit;
    a conjugate-basis measurement returns a uniformly random bit.
    """

    name = "sampled"

    def measure(self, bit: int, prepared_basis: Basis, measured_basis: Basis, rng: Generator) -> int:
        if prepared_basis == measured_basis:
            return bit
        return random_bit(rng)


class AerMeasurement:
    """Measurement outcomes from single-shot circuits on ``AerSimulator``.

    Each shot is seeded from the session generator so a seeded session stays
    reproducible.
    """

    name = "aer"

    def __init__(self, backend: Optional[AerSimulator] = None):
        self._backend = backend or AerSimulator(method="statevector")

    def measure(self, bit: int, prepared_basis: Basis, measured_basis: Basis, rng: Generator) -> int:
        circuit = self.build_circuit(bit, prepared_basis, measured_basis)
        shot_seed = int(rng.integers(0, _SEED_BOUND))
        job = self._backend.run(circuit, shots=1, seed_simulator=shot_seed)
        counts = job.result().get_counts()
        bit_string = max(counts, key=counts.get)
        return int(bit_string)

    @staticmethod
    def build_circuit(bit: int, prepared_basis: Basis, measured_basis: Basis) -> QuantumCircuit:
        circuit = QuantumCircuit(1, 1)
        if bit == 1:
            circuit.x(0)
        if prepared_basis == Basis.DIAGONAL:
            circuit.h(0)
        if measured_basis == Basis.DIAGONAL:
            circuit.h(0)
        circuit.measure(0, 0)
        return circuit


MEASUREMENTS = {
    SampledMeasurement.name: SampledMeasurement,
    AerMeasurement.name: AerMeasurement,
}


def make_measurement(name: str):
    try:
        return MEASUREMENTS[name]()
    except KeyError:
        raise ValueError(f"Unsupported measurement '{name}'") from None


class QuantumChannel:
    """BB84 preparation, optional intercept-resend eavesdropping and measurement."""

    def __init__(self, measurement=None, intercept_probability: float = 1.0):
        if not 0.0 <= intercept_probability <= 1.0:
            raise ValueError("intercept_probability must be between 0 and 1")
        self.measurement = measurement or SampledMeasurement()
        self.intercept_probability = intercept_probability

    def transmit(
        self,
        num_qubits: int,
        noise_rate: float,
        eavesdropper_present: bool,
        rng: Generator,
    ) -> Tuple[QubitRound, ...]:
        if num_qubits <= 0:
            raise ValueError("num_qubits must be positive")
        if not 0.0 <= noise_rate <= 1.0:
            raise ValueError("noise_rate must be between 0 and 1")

        rounds: List[QubitRound] = []
        for idx in range(num_qubits):
            alice_bit = random_bit(rng)
            alice_basis = choose_basis(rng)

            sent_bit = alice_bit
            sent_basis = alice_basis
            intercepted = False
            eve_basis: Optional[Basis] = None

            if eavesdropper_present and self._intercepts(rng):
                intercepted = True
                eve_basis = choose_basis(rng)
                sent_bit = self.measurement.measure(alice_bit, alice_basis, eve_basis, rng)
                sent_basis = eve_basis

            bob_basis = choose_basis(rng)
            bob_bit = self.measurement.measure(sent_bit, sent_basis, bob_basis, rng)

            noise_flipped = noise_rate > 0.0 and rng.random() < noise_rate
            if noise_flipped:
                bob_bit ^= 1

            rounds.append(
                QubitRound(
                    index=idx,
                    alice_bit=alice_bit,
                    alice_basis=alice_basis,
                    bob_bit=bob_bit,
                    bob_basis=bob_basis,
                    intercepted=intercepted,
                    eve_basis=eve_basis,
                    noise_flipped=bool(noise_flipped),
                )
            )

        logger.debug(
            "Transmitted %d qubits (%s measurement, %d intercepted)",
            num_qubits,
            self.measurement.name,
            sum(1 for r in rounds if r.intercepted),
        )
        return tuple(rounds)

    def _intercepts(self, rng: Generator) -> bool:
        if self.intercept_probability >= 1.0:
            return True
        return rng.random() < self.intercept_probability

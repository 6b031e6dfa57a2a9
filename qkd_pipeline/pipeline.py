"""Session orchestration: channel, sifting, sampling, reconciliation, amplification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from numpy.random import Generator, default_rng

from .channel import MEASUREMENTS, QuantumChannel, QubitRound, make_measurement
from .eavesdrop import EavesdropCheckResult, EavesdropDetector, RetainedKey
from .error_correction import CascadeReconciler, ReconciliationResult
from .errors import FailureKind, InsufficientKeyMaterialError, error_for
from .privacy import TOEPLITZ, PrivacyAmplificationResult, PrivacyAmplifier
from .sifting import SiftedKey, Sifter

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    TRANSMITTING = "transmitting"
    SIFTING = "sifting"
    SAMPLING = "sampling"
    RECONCILING = "reconciling"
    AMPLIFYING = "amplifying"
    ABORTED = "aborted"
    SECURED = "secured"


@dataclass(frozen=True)
class QKDConfig:
    initial_qubits: int
    qber_threshold: float
    noise_rate: float = 0.0
    eavesdropper_present: bool = False
    intercept_probability: float = 1.0
    sample_fraction: float = 0.15
    security_parameter: int = 40
    do_error_correction: bool = True
    block_sizes: Optional[Tuple[int, ...]] = None
    max_passes: int = 8
    min_sifted_length: int = 10
    hash_function: str = TOEPLITZ
    measurement: str = "sampled"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.initial_qubits <= 0:
            raise ValueError("initial_qubits must be positive")
        for name in ("qber_threshold", "noise_rate", "intercept_probability", "sample_fraction"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1")
        if self.security_parameter < 0:
            raise ValueError("security_parameter must be non-negative")
        if self.max_passes <= 0:
            raise ValueError("max_passes must be positive")
        if self.min_sifted_length < 0:
            raise ValueError("min_sifted_length must be non-negative")
        if self.hash_function not in PrivacyAmplifier.HASH_FUNCTIONS:
            raise ValueError(f"Unsupported hash function: {self.hash_function}")
        if self.measurement not in MEASUREMENTS:
            raise ValueError(f"Unknown measurement: {self.measurement}")
        if self.block_sizes is not None:
            block_sizes = tuple(self.block_sizes)
            if not block_sizes or any(size <= 0 for size in block_sizes):
                raise ValueError("block_sizes must be a non-empty sequence of positive sizes")
            object.__setattr__(self, "block_sizes", block_sizes)


@dataclass(frozen=True)
class QKDResult:
    config: QKDConfig
    initial_qubits_sent: int
    rounds: Tuple[QubitRound, ...]
    sifted_key: Optional[SiftedKey]
    eavesdrop_check: Optional[EavesdropCheckResult]
    retained_key: Optional[RetainedKey]
    reconciliation: Optional[ReconciliationResult]
    privacy_amplification: Optional[PrivacyAmplificationResult]
    final_key: str
    final_key_length: int
    end_to_end_efficiency: float
    total_information_leaked: float
    security_level: int
    state: SessionState
    failure: Optional[FailureKind]
    success: bool

    @property
    def sifted_key_length(self) -> int:
        return len(self.sifted_key) if self.sifted_key is not None else 0

    @property
    def qber(self) -> float:
        return self.eavesdrop_check.error_rate if self.eavesdrop_check is not None else 0.0

    @property
    def eavesdrop_detected(self) -> bool:
        return self.eavesdrop_check is not None and self.eavesdrop_check.eavesdrop_detected

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise error_for(self.failure, f"QKD session aborted: {self.failure.value}")


class QKDPipeline:
    def __init__(self, config: QKDConfig):
        self.config = config
        self.channel = QuantumChannel(
            measurement=make_measurement(config.measurement),
            intercept_probability=config.intercept_probability,
        )
        self.sifter = Sifter(min_length=config.min_sifted_length)
        self.detector = EavesdropDetector(config.sample_fraction, config.qber_threshold)
        self.amplifier = PrivacyAmplifier(config.security_parameter, config.hash_function)

    def run(self, rng: Optional[Generator] = None) -> QKDResult:
        config = self.config
        rng = rng if rng is not None else default_rng(config.seed)
        stages = _SessionRecord(config)

        logger.debug("Session state: %s", SessionState.TRANSMITTING.value)
        stages.rounds = self.channel.transmit(
            config.initial_qubits, config.noise_rate, config.eavesdropper_present, rng
        )

        logger.debug("Session state: %s", SessionState.SIFTING.value)
        try:
            stages.sifted_key = self.sifter.sift(stages.rounds)
        except InsufficientKeyMaterialError as exc:
            logger.warning("Aborting session: %s", exc)
            stages.sifted_key = exc.sifted_key
            return stages.abort(FailureKind.INSUFFICIENT_KEY_MATERIAL)

        logger.debug("Session state: %s", SessionState.SAMPLING.value)
        stages.eavesdrop_check, stages.retained_key = self.detector.check(stages.sifted_key, rng)
        if stages.eavesdrop_check.eavesdrop_detected:
            return stages.abort(FailureKind.EAVESDROP_DETECTED)

        corrected_key = stages.retained_key.bits
        if config.do_error_correction:
            logger.debug("Session state: %s", SessionState.RECONCILING.value)
            reconciler = CascadeReconciler(
                block_sizes=config.block_sizes,
                max_passes=config.max_passes,
                estimated_qber=stages.eavesdrop_check.error_rate,
            )
            stages.reconciliation = reconciler.reconcile(stages.retained_key, rng)
            if not stages.reconciliation.success:
                return stages.abort(FailureKind.RECONCILIATION_FAILED)
            corrected_key = stages.reconciliation.corrected_key
        elif not stages.retained_key.agrees:
            logger.warning("Error correction disabled and retained keys disagree")
            return stages.abort(FailureKind.RECONCILIATION_FAILED)

        logger.debug("Session state: %s", SessionState.AMPLIFYING.value)
        stages.privacy_amplification = self.amplifier.amplify(corrected_key, stages.information_leaked, rng)
        if stages.privacy_amplification.underflow:
            return stages.abort(FailureKind.PRIVACY_AMPLIFICATION_UNDERFLOW)

        return stages.secure()


class _SessionRecord:
    """Stage outputs collected while a session runs."""

    def __init__(self, config: QKDConfig):
        self.config = config
        self.rounds: Tuple[QubitRound, ...] = ()
        self.sifted_key: Optional[SiftedKey] = None
        self.eavesdrop_check: Optional[EavesdropCheckResult] = None
        self.retained_key: Optional[RetainedKey] = None
        self.reconciliation: Optional[ReconciliationResult] = None
        self.privacy_amplification: Optional[PrivacyAmplificationResult] = None

    @property
    def information_leaked(self) -> float:
        return self.reconciliation.information_leaked if self.reconciliation is not None else 0.0

    def abort(self, failure: FailureKind) -> QKDResult:
        logger.info("QKD session aborted: %s", failure.value)
        return self._build(SessionState.ABORTED, failure, final_key="", security_level=0)

    def secure(self) -> QKDResult:
        amplified = self.privacy_amplification
        logger.info(
            "QKD session secured: %d bit key from %d qubits", amplified.final_length, self.config.initial_qubits
        )
        return self._build(
            SessionState.SECURED,
            None,
            final_key=amplified.final_key,
            security_level=amplified.security_parameter,
        )

    def _build(self, state: SessionState, failure: Optional[FailureKind], final_key: str, security_level: int) -> QKDResult:
        sent = self.config.initial_qubits
        return QKDResult(
            config=self.config,
            initial_qubits_sent=sent,
            rounds=self.rounds,
            sifted_key=self.sifted_key,
            eavesdrop_check=self.eavesdrop_check,
            retained_key=self.retained_key,
            reconciliation=self.reconciliation,
            privacy_amplification=self.privacy_amplification,
            final_key=final_key,
            final_key_length=len(final_key),
            end_to_end_efficiency=len(final_key) / sent,
            total_information_leaked=self.information_leaked,
            security_level=security_level,
            state=state,
            failure=failure,
            success=failure is None,
        )


def run_qkd(
    initial_qubits: int,
    noise_rate: float,
    eavesdropper_present: bool,
    sample_fraction: float,
    qber_threshold: float,
    security_parameter: int,
    do_error_correction: bool = True,
    seed: Optional[int] = None,
    **options,
) -> QKDResult:
    config = QKDConfig(
        initial_qubits=initial_qubits,
        qber_threshold=qber_threshold,
        noise_rate=noise_rate,
        eavesdropper_present=eavesdropper_present,
        sample_fraction=sample_fraction,
        security_parameter=security_parameter,
        do_error_correction=do_error_correction,
        seed=seed,
        **options,
    )
    return QKDPipeline(config).run()

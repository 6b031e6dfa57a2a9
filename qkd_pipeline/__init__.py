"""BB84 key exchange simulation with classical QKD post-processing."""

from .channel import AerMeasurement, Basis, QuantumChannel, QubitRound, SampledMeasurement
from .sifting import SiftedKey, Sifter
from .eavesdrop import (
	EavesdropCheckResult,
	EavesdropDetector,
	EavesdropStrategy,
	EveInformation,
	RetainedKey,
	analyze_eve_information,
	detection_probability,
)
from .error_correction import CascadeReconciler, ReconciliationResult
from .privacy import PrivacyAmplifier, PrivacyAmplificationResult
from .errors import (
	EavesdropDetectedError,
	FailureKind,
	InsufficientKeyMaterialError,
	PrivacyAmplificationUnderflowError,
	QKDError,
	ReconciliationFailedError,
)
from .pipeline import QKDConfig, QKDPipeline, QKDResult, SessionState, run_qkd

__all__ = [
	"AerMeasurement",
	"Basis",
	"QuantumChannel",
	"QubitRound",
	"SampledMeasurement",
	"SiftedKey",
	"Sifter",
	"EavesdropCheckResult",
	"EavesdropDetector",
	"EavesdropStrategy",
	"EveInformation",
	"RetainedKey",
	"analyze_eve_information",
	"detection_probability",
	"CascadeReconciler",
	"ReconciliationResult",
	"PrivacyAmplifier",
	"PrivacyAmplificationResult",
	"EavesdropDetectedError",
	"FailureKind",
	"InsufficientKeyMaterialError",
	"PrivacyAmplificationUnderflowError",
	"QKDError",
	"ReconciliationFailedError",
	"QKDConfig",
	"QKDPipeline",
	"QKDResult",
	"SessionState",
	"run_qkd",
]

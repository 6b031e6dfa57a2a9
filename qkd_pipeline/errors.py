from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    INSUFFICIENT_KEY_MATERIAL = "insufficient_key_material"
    EAVESDROP_DETECTED = "eavesdrop_detected"
    RECONCILIATION_FAILED = "reconciliation_failed"
    PRIVACY_AMPLIFICATION_UNDERFLOW = "privacy_amplification_underflow"


class QKDError(Exception):
    kind: Optional[FailureKind] = None


class InsufficientKeyMaterialError(QKDError):
    kind = FailureKind.INSUFFICIENT_KEY_MATERIAL

    def __init__(self, message: str, sifted_key=None):
        super().__init__(message)
        self.sifted_key = sifted_key


class EavesdropDetectedError(QKDError):
    kind = FailureKind.EAVESDROP_DETECTED


class ReconciliationFailedError(QKDError):
    kind = FailureKind.RECONCILIATION_FAILED


class PrivacyAmplificationUnderflowError(QKDError):
    kind = FailureKind.PRIVACY_AMPLIFICATION_UNDERFLOW


_ERRORS_BY_KIND = {
    FailureKind.INSUFFICIENT_KEY_MATERIAL: InsufficientKeyMaterialError,
    FailureKind.EAVESDROP_DETECTED: EavesdropDetectedError,
    FailureKind.RECONCILIATION_FAILED: ReconciliationFailedError,
    FailureKind.PRIVACY_AMPLIFICATION_UNDERFLOW: PrivacyAmplificationUnderflowError,
}


def error_for(kind: FailureKind, message: str) -> QKDError:
    return _ERRORS_BY_KIND[kind](message)

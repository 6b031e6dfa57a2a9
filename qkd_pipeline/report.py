"""Serialization and display helpers for QKD session results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from .pipeline import QKDResult

PathLike = Union[str, Path]


def result_to_record(result: QKDResult) -> Dict[str, Any]:
    """Flatten a session result into the field names the CLI reports use."""
    amplification = result.privacy_amplification
    reconciliation = result.reconciliation
    return {
        "initialQubits": result.initial_qubits_sent,
        "seed": result.config.seed,
        "siftedKeyLength": result.sifted_key_length,
        "qber": result.qber,
        "eavesdropDetected": result.eavesdrop_detected,
        "errorsDetected": reconciliation.errors_detected if reconciliation else 0,
        "errorsCorrected": reconciliation.errors_corrected if reconciliation else 0,
        "privacyAmplificationInput": amplification.original_length if amplification else 0,
        "privacyAmplificationOutput": amplification.final_length if amplification else 0,
        "finalKeyLength": result.final_key_length,
        "endToEndEfficiency": result.end_to_end_efficiency,
        "infoLeaked": result.total_information_leaked,
        "securityLevel": result.security_level,
        "success": result.success,
        "failure": result.failure.value if result.failure else None,
    }


def results_to_dataframe(results: Iterable[QKDResult]) -> pd.DataFrame:
    return pd.DataFrame([result_to_record(result) for result in results])


def rounds_to_dataframe(result: QKDResult) -> pd.DataFrame:
    sifted = set(result.sifted_key.round_indices) if result.sifted_key is not None else set()
    rows: List[Dict[str, Any]] = []
    for qubit in result.rounds:
        rows.append(
            {
                "Pos": qubit.index,
                "Bit_Alice": qubit.alice_bit,
                "Base_A": qubit.alice_basis.value,
                "Base_B": qubit.bob_basis.value,
                "Bit_Bob": qubit.bob_bit,
                "Sifted": qubit.index in sifted,
                "Eve": qubit.eve_basis.value if qubit.intercepted else "-",
                "Noise": qubit.noise_flipped,
            }
        )
    return pd.DataFrame(rows)


def write_csv(results: Iterable[QKDResult], path: PathLike) -> Path:
    path = Path(path)
    results_to_dataframe(results).to_csv(path, index=False)
    return path


def write_json(results: Iterable[QKDResult], path: PathLike) -> Path:
    path = Path(path)
    records = [result_to_record(result) for result in results]
    path.write_text(json.dumps(records, indent=2))
    return path


def format_key_hex(bits: str, max_bits: int = 64) -> str:
    shown = bits[:max_bits]
    chunks = [shown[i : i + 8] for i in range(0, len(shown), 8)]
    return " ".join(f"{int(chunk.ljust(8, '0'), 2):02X}" for chunk in chunks)


def format_result(result: QKDResult) -> str:
    lines = [
        "QKD PIPELINE RESULT",
        "------------------------------------------",
        "Stage 1: BB84 quantum exchange",
        f"  Initial qubits   : {result.initial_qubits_sent}",
        f"  Sifted key       : {result.sifted_key_length} bits",
    ]
    check = result.eavesdrop_check
    if check is not None:
        status = "DETECTED" if check.eavesdrop_detected else "PASS"
        lines += [
            f"  Sample           : {check.sample_size} bits, {check.errors} errors",
            f"  QBER             : {check.error_rate:.2%} (threshold {check.threshold:.1%})",
            f"  Eavesdrop check  : {status}",
        ]

    reconciliation = result.reconciliation
    if reconciliation is not None:
        lines += [
            "Stage 2: Error correction (Cascade)",
            f"  Errors detected  : {reconciliation.errors_detected}",
            f"  Errors corrected : {reconciliation.errors_corrected}",
            f"  Passes           : {reconciliation.passes_run}",
            f"  Info leaked      : {reconciliation.information_leaked:.1f} bits",
        ]
    else:
        lines.append("Stage 2: Error correction - SKIPPED")

    amplification = result.privacy_amplification
    if amplification is not None:
        lines += [
            "Stage 3: Privacy amplification",
            f"  Hash function    : {amplification.hash_function}",
            f"  Input length     : {amplification.original_length} bits",
            f"  Output length    : {amplification.final_length} bits",
            f"  Compression      : {amplification.compression_ratio:.1%}",
        ]
    else:
        lines.append("Stage 3: Privacy amplification - SKIPPED")

    lines += [
        "Final result",
        f"  Final key length : {result.final_key_length} bits",
        f"  Final key (hex)  : {format_key_hex(result.final_key) or '-'}",
        f"  Efficiency       : {result.end_to_end_efficiency:.2%}",
        f"  Security level   : {result.security_level} bits",
        f"  Status           : {'SECURE KEY ESTABLISHED' if result.success else 'FAILED (' + result.failure.value + ')'}",
    ]
    return "\n".join(lines)

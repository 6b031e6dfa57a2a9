"""Lightweight manual smoke run of the QKD pipeline."""

import logging

from .pipeline import QKDConfig, QKDPipeline
from .report import format_result


def run_demo(initial_qubits: int = 512, eavesdropper_present: bool = False) -> None:
    config = QKDConfig(
        initial_qubits=initial_qubits,
        qber_threshold=0.11,
        noise_rate=0.02,
        eavesdropper_present=eavesdropper_present,
        seed=42,
    )
    result = QKDPipeline(config).run()
    print(format_result(result))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s")
    run_demo()
    run_demo(eavesdropper_present=True)

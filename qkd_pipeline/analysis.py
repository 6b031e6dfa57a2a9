"""Helpers for running many sessions and plotting how they behave."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

import matplotlib.pyplot as plt

from .eavesdrop import detection_probability
from .pipeline import QKDConfig, QKDPipeline, QKDResult

logger = logging.getLogger(__name__)


def _run_session(config: QKDConfig) -> QKDResult:
    return QKDPipeline(config).run()


def run_seeds(config: QKDConfig, seeds: Iterable[int], max_workers: Optional[int] = 1) -> List[QKDResult]:
    """Run one independent session per seed, in seed order.

    Sessions share no state, so with ``max_workers`` other than 1 they are
    spread over a process pool.
    """
    configs = [replace(config, seed=seed) for seed in seeds]
    if max_workers == 1 or len(configs) <= 1:
        return [_run_session(c) for c in configs]
    logger.debug("Running %d sessions on a process pool", len(configs))
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(_run_session, configs))


def detection_rate(results: Iterable[QKDResult]) -> float:
    results = list(results)
    if not results:
        return 0.0
    return sum(1 for result in results if result.eavesdrop_detected) / len(results)


def sweep_noise(config: QKDConfig, values: Iterable[float]) -> List[Dict[str, float]]:
    """Sweep the channel noise rate and collect QBER and detection statistics."""
    data = []
    for value in values:
        result = _run_session(replace(config, noise_rate=value))
        sample = result.eavesdrop_check.sample_size if result.eavesdrop_check else 0
        data.append(
            {
                "value": value,
                "qber": result.qber,
                "p_detect": detection_probability(result.qber, sample),
                "final_key_length": result.final_key_length,
                "success": result.success,
            }
        )
    return data


def render_noise_curves(data: List[Dict[str, float]], qber_threshold: Optional[float] = None):
    """Plot a noise sweep: sampled QBER on top, final key length below.

    Sessions that did not end with a key are drawn as red crosses on both
    panels. ``qber_threshold`` adds the abort line to the QBER panel.
    """
    if not data:
        return None
    values = [item["value"] for item in data]
    failed = [item for item in data if not item["success"]]

    fig, (qber_ax, key_ax) = plt.subplots(2, 1, sharex=True, figsize=(6, 5))
    qber_ax.plot(values, [item["qber"] for item in data], marker="o", color="#1f77b4", label="sampled QBER")
    if qber_threshold is not None:
        qber_ax.axhline(qber_threshold, linestyle="--", color="#555555", label="abort threshold")
    qber_ax.set_ylabel("QBER")

    key_ax.step(values, [item["final_key_length"] for item in data], where="mid", color="#2e7d32", label="final key")
    key_ax.set_ylabel("Final key bits")
    key_ax.set_xlabel("Channel noise rate")

    if failed:
        qber_ax.scatter([item["value"] for item in failed], [item["qber"] for item in failed],
                        marker="x", color="#c62828", zorder=3, label="no key")
        key_ax.scatter([item["value"] for item in failed], [0] * len(failed), marker="x", color="#c62828", zorder=3)
    for ax in (qber_ax, key_ax):
        ax.grid(alpha=0.25)
        ax.legend(loc="best")
    fig.tight_layout()
    return fig

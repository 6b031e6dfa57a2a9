import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from qkd_pipeline import QKDConfig
from qkd_pipeline.analysis import detection_rate, render_noise_curves, run_seeds, sweep_noise


def test_run_seeds_keeps_seed_order():
    config = QKDConfig(initial_qubits=256, qber_threshold=0.11)
    results = run_seeds(config, [3, 1, 2])

    assert [r.config.seed for r in results] == [3, 1, 2]
    assert all(r.success for r in results)


def test_process_pool_matches_sequential_runs():
    config = QKDConfig(initial_qubits=256, qber_threshold=0.11, noise_rate=0.02)
    seeds = list(range(4))

    assert run_seeds(config, seeds, max_workers=2) == run_seeds(config, seeds)


def test_detection_rate_under_attack():
    config = QKDConfig(initial_qubits=2048, qber_threshold=0.11, eavesdropper_present=True)
    results = run_seeds(config, range(5))

    assert detection_rate(results) == pytest.approx(1.0)
    assert detection_rate([]) == 0.0


def test_sweep_noise_and_render_curves():
    config = QKDConfig(initial_qubits=512, qber_threshold=0.11, seed=9)
    data = sweep_noise(config, [0.0, 0.05, 0.3])

    assert [item["value"] for item in data] == [0.0, 0.05, 0.3]
    assert data[0]["qber"] == 0.0
    assert data[0]["success"]
    assert data[-1]["qber"] > data[0]["qber"]
    assert 0.0 <= data[-1]["p_detect"] <= 1.0

    assert not data[-1]["success"]

    fig = render_noise_curves(data, qber_threshold=0.11)
    qber_ax, key_ax = fig.axes

    assert list(qber_ax.lines[1].get_ydata()) == [0.11, 0.11]
    assert list(key_ax.lines[0].get_ydata()) == [item["final_key_length"] for item in data]
    assert len(qber_ax.collections) == 1
    assert len(key_ax.collections) == 1
    plt.close(fig)

    assert render_noise_curves([]) is None

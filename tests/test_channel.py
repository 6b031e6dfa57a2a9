import pytest
from numpy.random import default_rng

from qkd_pipeline import AerMeasurement, Basis, QuantumChannel, SampledMeasurement


def _matched(rounds):
    return [r for r in rounds if r.alice_basis == r.bob_basis]


@pytest.mark.parametrize("num_qubits, seed", [(64, 1234), (256, 2024)])
def test_clean_channel_agrees_on_matching_bases(num_qubits, seed):
    rounds = QuantumChannel().transmit(num_qubits, 0.0, False, default_rng(seed))

    assert len(rounds) == num_qubits
    assert [r.index for r in rounds] == list(range(num_qubits))
    assert all(r.bob_bit == r.alice_bit for r in _matched(rounds))
    assert not any(r.intercepted or r.noise_flipped for r in rounds)


def test_intercept_resend_pushes_error_rate_towards_a_quarter():
    rounds = QuantumChannel().transmit(4096, 0.0, True, default_rng(7))
    matched = _matched(rounds)
    errors = sum(1 for r in matched if r.bob_bit != r.alice_bit)

    assert all(r.intercepted and r.eve_basis is not None for r in rounds)
    assert errors / len(matched) == pytest.approx(0.25, abs=0.04)


def test_partial_interception_only_touches_some_rounds():
    rounds = QuantumChannel(intercept_probability=0.5).transmit(2048, 0.0, True, default_rng(11))
    intercepted = sum(1 for r in rounds if r.intercepted)

    assert intercepted / len(rounds) == pytest.approx(0.5, abs=0.05)
    assert all(r.eve_basis is None for r in rounds if not r.intercepted)


def test_zero_intercept_probability_leaves_channel_clean():
    rounds = QuantumChannel(intercept_probability=0.0).transmit(128, 0.0, True, default_rng(3))

    assert not any(r.intercepted for r in rounds)
    assert all(r.bob_bit == r.alice_bit for r in _matched(rounds))


def test_full_noise_flips_every_outcome():
    rounds = QuantumChannel().transmit(128, 1.0, False, default_rng(5))

    assert all(r.noise_flipped for r in rounds)
    assert all(r.bob_bit != r.alice_bit for r in _matched(rounds))


def test_same_seed_reproduces_rounds():
    channel = QuantumChannel()
    first = channel.transmit(200, 0.1, True, default_rng(99))
    second = channel.transmit(200, 0.1, True, default_rng(99))

    assert first == second


@pytest.mark.parametrize("num_qubits, noise_rate", [(0, 0.0), (-5, 0.0), (10, 1.5), (10, -0.1)])
def test_transmit_rejects_invalid_arguments(num_qubits, noise_rate):
    with pytest.raises(ValueError):
        QuantumChannel().transmit(num_qubits, noise_rate, False, default_rng(0))


def test_channel_rejects_invalid_intercept_probability():
    with pytest.raises(ValueError):
        QuantumChannel(intercept_probability=1.2)


def test_sampled_measurement_is_exact_in_matching_basis():
    measurement = SampledMeasurement()
    rng = default_rng(0)

    for bit in (0, 1):
        for basis in Basis:
            assert measurement.measure(bit, basis, basis, rng) == bit


def test_aer_circuit_encodes_basis_rotations():
    circuit = AerMeasurement.build_circuit(1, Basis.DIAGONAL, Basis.RECTILINEAR)
    names = [instruction.operation.name for instruction in circuit.data]

    assert names == ["x", "h", "measure"]


def test_aer_measurement_channel_agrees_on_matching_bases():
    channel = QuantumChannel(measurement=AerMeasurement())
    rounds = channel.transmit(24, 0.0, False, default_rng(21))

    assert all(r.bob_bit == r.alice_bit for r in _matched(rounds))
    assert rounds == channel.transmit(24, 0.0, False, default_rng(21))

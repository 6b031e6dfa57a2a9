import pytest
from numpy.random import default_rng

from qkd_pipeline import (
    EavesdropDetector,
    EavesdropStrategy,
    SiftedKey,
    analyze_eve_information,
    detection_probability,
)


def _sifted(bits, reference_bits):
    return SiftedKey(
        bits=bits,
        reference_bits=reference_bits,
        round_indices=tuple(range(len(bits))),
        initial_length=2 * len(bits),
    )


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_sample_indices_are_distinct_and_in_bounds(seed):
    rng = default_rng(seed)
    bits = "".join(str(int(b)) for b in rng.integers(0, 2, size=200))
    sifted = _sifted(bits, bits)

    check, retained = EavesdropDetector(0.15, 0.11).check(sifted, rng)

    assert check.sample_size == 30
    assert len(set(check.sample_indices)) == check.sample_size
    assert all(0 <= i < len(sifted) for i in check.sample_indices)
    assert len(retained) == len(sifted) - check.sample_size


@pytest.mark.parametrize("length, expected", [(10, 3), (6, 2), (14, 4), (9, 2), (4, 1)])
def test_sample_size_rounds_halves_up(length, expected):
    assert EavesdropDetector(0.25, 0.11).sample_size_for(length) == expected


def test_retained_key_preserves_order_of_unsampled_bits():
    bits = "0110100111010010"
    sifted = _sifted(bits, bits)

    check, retained = EavesdropDetector(0.25, 0.11).check(sifted, default_rng(8))
    expected = "".join(bit for i, bit in enumerate(bits) if i not in set(check.sample_indices))

    assert retained.bits == expected
    assert retained.reference_bits == expected
    assert retained.agrees


def test_disagreeing_sample_is_flagged():
    sifted = _sifted("1" * 20, "0" * 20)

    check, retained = EavesdropDetector(0.5, 0.11).check(sifted, default_rng(0))

    assert check.sample_size == 10
    assert check.errors == 10
    assert check.error_rate == pytest.approx(1.0)
    assert check.eavesdrop_detected
    assert len(retained) == 10


def test_error_rate_at_threshold_is_not_detection():
    sifted = _sifted("1000000000", "0000000000")

    check, _ = EavesdropDetector(1.0, 0.1).check(sifted, default_rng(0))

    assert check.error_rate == pytest.approx(0.1)
    assert not check.eavesdrop_detected


def test_zero_sample_fraction_keeps_whole_key():
    sifted = _sifted("10110", "10110")

    check, retained = EavesdropDetector(0.0, 0.11).check(sifted, default_rng(0))

    assert check.sample_indices == ()
    assert check.error_rate == 0.0
    assert not check.eavesdrop_detected
    assert retained.bits == "10110"


@pytest.mark.parametrize("fraction, threshold", [(-0.1, 0.1), (1.1, 0.1), (0.1, 1.5)])
def test_detector_rejects_invalid_configuration(fraction, threshold):
    with pytest.raises(ValueError):
        EavesdropDetector(fraction, threshold)


def test_detection_probability():
    assert detection_probability(0.25, 0) == 0.0
    assert detection_probability(0.25, 12) == pytest.approx(1.0 - 0.75**12)


def test_eve_information_for_intercept_resend():
    info = analyze_eve_information(EavesdropStrategy.INTERCEPT_RESEND)

    assert info.mutual_information == pytest.approx(0.5)
    assert info.expected_qber == pytest.approx(0.25)
    assert info.detectable(0.11)


def test_eve_information_scales_with_interception():
    info = analyze_eve_information("partial_intercept", probability=0.4)

    assert info.mutual_information == pytest.approx(0.2)
    assert info.expected_qber == pytest.approx(0.1)
    assert not info.detectable(0.11)

    with pytest.raises(ValueError):
        analyze_eve_information(EavesdropStrategy.PARTIAL_INTERCEPT, probability=2.0)


def test_collective_attack_introduces_no_errors():
    info = analyze_eve_information(EavesdropStrategy.COLLECTIVE)

    assert info.expected_qber == 0.0
    assert not info.detectable(0.0)

import pytest

from qkd_pipeline import Basis, InsufficientKeyMaterialError, QubitRound, Sifter

Z = Basis.RECTILINEAR
X = Basis.DIAGONAL


def _round(index, alice_bit, alice_basis, bob_bit, bob_basis):
    return QubitRound(index=index, alice_bit=alice_bit, alice_basis=alice_basis, bob_bit=bob_bit, bob_basis=bob_basis)


def test_sifter_keeps_only_matching_bases():
    rounds = [
        _round(0, 1, Z, 1, Z),
        _round(1, 0, Z, 1, X),
        _round(2, 1, X, 0, X),
        _round(3, 0, X, 0, X),
        _round(4, 1, X, 1, Z),
    ]
    sifted = Sifter(min_length=1).sift(rounds)

    assert sifted.bits == "100"
    assert sifted.reference_bits == "110"
    assert sifted.round_indices == (0, 2, 3)
    assert sifted.initial_length == 5
    assert sifted.efficiency == pytest.approx(0.6)
    assert sifted.mismatches == 1


def test_sifter_rejects_empty_key():
    rounds = [_round(0, 1, Z, 1, X), _round(1, 0, X, 0, Z)]

    with pytest.raises(InsufficientKeyMaterialError) as excinfo:
        Sifter(min_length=0).sift(rounds)

    assert excinfo.value.sifted_key is not None
    assert len(excinfo.value.sifted_key) == 0


def test_sifter_enforces_minimum_length():
    rounds = [_round(i, i % 2, Z, i % 2, Z) for i in range(5)]

    with pytest.raises(InsufficientKeyMaterialError) as excinfo:
        Sifter(min_length=10).sift(rounds)

    assert len(excinfo.value.sifted_key) == 5


def test_sifter_rejects_negative_minimum():
    with pytest.raises(ValueError):
        Sifter(min_length=-1)

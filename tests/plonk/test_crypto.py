"""
Crypto module tests: srs.py, kzg.py, transcript.py
"""
import pytest

from privtx.plonk.field import FR, G1, G2, ec_mul, ec_add, ec_eq, is_infinity
from privtx.plonk.polynomial import Polynomial
from privtx.plonk.srs import SRS
from privtx.plonk.kzg import commit
from privtx.plonk.transcript import Transcript


@pytest.fixture(scope="module")
def srs():
    return SRS.generate(max_degree=8, seed=42)


# =====================================================================
# SRS
# =====================================================================

class TestSRS:
    def test_sizes(self, srs):
        assert srs.max_degree == 8
        assert len(srs.g1_powers) == 9
        assert len(srs.g2_powers) == 2

    def test_first_power_is_generator(self, srs):
        assert ec_eq(srs.g1_powers[0], G1)
        assert ec_eq(srs.g2_powers[0], G2)

    def test_seed_is_deterministic(self, srs):
        again = SRS.generate(max_degree=8, seed=42)
        assert all(ec_eq(p, q) for p, q in zip(srs.g1_powers, again.g1_powers))

    def test_different_seed_differs(self, srs):
        other = SRS.generate(max_degree=8, seed=43)
        assert not ec_eq(srs.g1_powers[1], other.g1_powers[1])

    def test_consistency_check_passes(self, srs):
        assert srs.check_consistency()

    def test_consistency_check_detects_corruption(self, srs):
        powers = list(srs.g1_powers)
        powers[1] = ec_add(powers[1], G1)
        broken = SRS(powers, srs.g2_powers, srs.max_degree)
        assert not broken.check_consistency()


# =====================================================================
# KZG commit
# =====================================================================

class TestKZGCommit:
    def test_constant_polynomial(self, srs):
        assert ec_eq(commit(Polynomial([7]), srs), ec_mul(G1, 7))

    def test_zero_polynomial_is_infinity(self, srs):
        assert is_infinity(commit(Polynomial.zero(), srs))

    def test_linearity(self, srs):
        p = Polynomial([1, 2, 3])
        q = Polynomial([4, 0, 5, 6])
        lhs = commit(p + q, srs)
        rhs = ec_add(commit(p, srs), commit(q, srs))
        assert ec_eq(lhs, rhs)

    def test_scalar_homomorphism(self, srs):
        p = Polynomial([3, 1, 4, 1, 5])
        assert ec_eq(commit(p * FR(9), srs), ec_mul(commit(p, srs), 9))

    def test_degree_too_large(self, srs):
        with pytest.raises(ValueError):
            commit(Polynomial([1] * 10), srs)


# =====================================================================
# Transcript
# =====================================================================

class TestTranscript:
    def test_deterministic(self):
        t1, t2 = Transcript(), Transcript()
        for t in (t1, t2):
            t.append_scalar(b"x", FR(5))
            t.append_point(b"P", ec_mul(G1, 3))
        assert t1.challenge_scalar(b"c") == t2.challenge_scalar(b"c")

    def test_projective_representation_does_not_matter(self):
        t1, t2 = Transcript(), Transcript()
        t1.append_point(b"P", ec_mul(G1, 5))
        t2.append_point(b"P", ec_add(ec_mul(G1, 2), ec_mul(G1, 3)))
        assert t1.challenge_scalar(b"c") == t2.challenge_scalar(b"c")

    def test_different_input_different_challenge(self):
        t1, t2 = Transcript(), Transcript()
        t1.append_scalar(b"x", FR(5))
        t2.append_scalar(b"x", FR(6))
        assert t1.challenge_scalar(b"c") != t2.challenge_scalar(b"c")

    def test_challenges_chain(self):
        t = Transcript()
        t.append_scalar(b"x", FR(1))
        c1 = t.challenge_scalar(b"c")
        c2 = t.challenge_scalar(b"c")
        assert c1 != c2

    def test_label_separates_domains(self):
        t1, t2 = Transcript(b"a"), Transcript(b"b")
        assert t1.challenge_scalar(b"c") != t2.challenge_scalar(b"c")

    def test_challenge_in_field(self):
        t = Transcript()
        c = t.challenge_scalar(b"c")
        assert isinstance(c, FR)

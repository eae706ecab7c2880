"""
PLONK Verifier & End-to-End Integration Tests
===============================================

전체 파이프라인(CircuitBuilder -> SRS -> preprocess -> prove -> verify)을 테스트한다.

테스트 범위:
  - E2E 파이프라인: x^3 + x + 5 = 35 (x=3), 공개 입력 out
  - 공개 입력이 여러 개인 회로
  - 건전성(soundness): 조작된 공개 입력, 평가값, 커밋먼트로 검증 실패
  - 증명 직렬화 (24개 원소)
  - 만족하지 않는 witness, 작은 SRS
"""

import pytest

from privtx.plonk.field import FR, G1, CURVE_ORDER, FIELD_MODULUS, ec_mul, to_affine
from privtx.plonk.circuit import CircuitBuilder
from privtx.plonk.srs import SRS
from privtx.plonk.preprocessor import preprocess
from privtx.plonk.prover import Proof, prove
from privtx.plonk.verifier import verify


MINUS_ONE = CURVE_ORDER - 1


def x3_builder(x=3, out=35):
    """x³ + x + 5 = out (out 공개)."""
    builder = CircuitBuilder()
    out_var = builder.var(out)
    builder.public_input(out_var)
    x_var = builder.var(x)
    x2 = builder.var(x * x)
    x3 = builder.var(x ** 3)
    v = builder.var(x ** 3 + x)
    builder.add_gate(x_var, x_var, x2, q_m=1, q_o=MINUS_ONE)
    builder.add_gate(x2, x_var, x3, q_m=1, q_o=MINUS_ONE)
    builder.add_gate(x3, x_var, v, q_l=1, q_r=1, q_o=MINUS_ONE)
    builder.add_gate(v, None, out_var, q_l=1, q_o=MINUS_ONE, q_c=5)
    return builder


def product_builder(p=4, q=5):
    """공개 입력 p, q와 비공개 r = p·q, r + 1 = s."""
    builder = CircuitBuilder()
    p_var, q_var = builder.var(p), builder.var(q)
    builder.public_input(p_var)
    builder.public_input(q_var)
    r = builder.var(p * q)
    s = builder.var(p * q + 1)
    builder.add_gate(p_var, q_var, r, q_m=1, q_o=MINUS_ONE)
    builder.add_gate(r, None, s, q_l=1, q_o=MINUS_ONE, q_c=1)
    return builder


def run_pipeline(builder, public_inputs, seed=12345):
    circuit = builder.build()
    a, b, c = builder.wire_values()
    srs = SRS.generate(max_degree=circuit.n + 10, seed=seed)
    pp = preprocess(circuit, srs)
    proof = prove(a, b, c, public_inputs, pp, srs)
    return proof, pp.verifying_key(srs)


# ─────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="module")
def x3_proof():
    """(proof, vk) 한 쌍. 모듈 전체에서 재사용한다."""
    return run_pipeline(x3_builder(), [35])


def tampered(proof, index, value):
    elements = proof.to_elements()
    elements[index] = value
    return Proof.from_elements(elements)


# =====================================================================
# E2E
# =====================================================================

class TestEndToEnd:
    def test_valid_proof_verifies(self, x3_proof):
        proof, vk = x3_proof
        assert verify(proof, [35], vk) is True

    def test_public_input_as_fr(self, x3_proof):
        proof, vk = x3_proof
        assert verify(proof, [FR(35)], vk) is True

    def test_multiple_public_inputs(self):
        proof, vk = run_pipeline(product_builder(), [4, 5], seed=7)
        assert verify(proof, [4, 5], vk)
        assert not verify(proof, [5, 4], vk)

    def test_proofs_are_randomized(self):
        builder = x3_builder()
        circuit = builder.build()
        a, b, c = builder.wire_values()
        srs = SRS.generate(max_degree=circuit.n + 10, seed=1)
        pp = preprocess(circuit, srs)
        p1 = prove(a, b, c, [35], pp, srs)
        p2 = prove(a, b, c, [35], pp, srs)
        # 블라인딩 때문에 같은 witness라도 증명이 다르다
        assert p1.to_elements() != p2.to_elements()
        vk = pp.verifying_key(srs)
        assert verify(p1, [35], vk) and verify(p2, [35], vk)

    def test_verifying_key_carries_digest(self, x3_proof):
        _, vk = x3_proof
        assert vk.circuit_digest == x3_builder().build().digest()


# =====================================================================
# Soundness
# =====================================================================

class TestSoundness:
    def test_wrong_public_input(self, x3_proof):
        proof, vk = x3_proof
        assert verify(proof, [36], vk) is False

    def test_wrong_public_input_count(self, x3_proof):
        proof, vk = x3_proof
        assert verify(proof, [], vk) is False
        assert verify(proof, [35, 0], vk) is False

    def test_public_input_out_of_field(self, x3_proof):
        proof, vk = x3_proof
        assert verify(proof, [35 + CURVE_ORDER], vk) is False

    @pytest.mark.parametrize("index", range(18, 24))
    def test_tampered_evaluation(self, x3_proof, index):
        proof, vk = x3_proof
        elements = proof.to_elements()
        bad = tampered(proof, index, (elements[index] + 1) % CURVE_ORDER)
        assert verify(bad, [35], vk) is False

    @pytest.mark.parametrize("name", ["a_comm", "z_comm", "t_hi_comm", "W_zeta_comm"])
    def test_tampered_commitment(self, x3_proof, name):
        proof, vk = x3_proof
        elements = proof.to_elements()
        i = 2 * Proof.POINTS.index(name)
        elements[i:i + 2] = to_affine(ec_mul(G1, 5))
        assert verify(Proof.from_elements(elements), [35], vk) is False

    def test_proof_under_other_srs(self, x3_proof):
        _, vk = x3_proof
        other, _ = run_pipeline(x3_builder(), [35], seed=999)
        assert verify(other, [35], vk) is False


# =====================================================================
# Proof serialization
# =====================================================================

class TestProofElements:
    def test_length(self, x3_proof):
        proof, _ = x3_proof
        assert len(proof.to_elements()) == Proof.NUM_ELEMENTS == 24

    def test_roundtrip_still_verifies(self, x3_proof):
        proof, vk = x3_proof
        restored = Proof.from_elements(proof.to_elements())
        assert verify(restored, [35], vk)

    def test_wrong_length(self, x3_proof):
        proof, _ = x3_proof
        with pytest.raises(ValueError):
            Proof.from_elements(proof.to_elements()[:-1])

    def test_off_curve_point(self, x3_proof):
        proof, _ = x3_proof
        with pytest.raises(ValueError):
            tampered(proof, 1, (proof.to_elements()[1] + 1) % FIELD_MODULUS)

    def test_scalar_out_of_range(self, x3_proof):
        proof, _ = x3_proof
        with pytest.raises(ValueError):
            tampered(proof, 23, CURVE_ORDER)


# =====================================================================
# Prover/preprocess 실패 케이스
# =====================================================================

class TestFailures:
    def test_unsatisfied_witness_raises(self):
        with pytest.raises(ValueError):
            run_pipeline(x3_builder(x=3, out=36), [36])

    def test_public_input_not_matching_witness_raises(self):
        with pytest.raises(ValueError):
            run_pipeline(x3_builder(), [36])

    def test_wrong_public_input_count_raises(self):
        with pytest.raises(ValueError):
            run_pipeline(x3_builder(), [35, 1])

    def test_srs_too_small(self):
        circuit = x3_builder().build()
        with pytest.raises(ValueError):
            preprocess(circuit, SRS.generate(max_degree=circuit.n + 4, seed=1))

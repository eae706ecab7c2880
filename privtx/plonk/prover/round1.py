"""
PLONK Prover Round 1: 배선(Witness) 다항식 커밋먼트
=====================================================

  ┌─────────────────────────────────────────────────┐
  │  Prover → Verifier: [a]₁, [b]₁, [c]₁          │
  └─────────────────────────────────────────────────┘

**과정**:
  1. witness 벡터(a, b, c)를 IFFT로 다항식으로 보간
  2. 블라인딩(blinding): a'(x) = a(x) + (b₁·x + b₂)·Z_H(x)
     도메인 위에서는 Z_H(ωⁱ) = 0이므로 값이 변하지 않고,
     도메인 밖의 평가값(ā 등)이 잔액이나 송금액을 드러내지 않게 한다.
  3. KZG 커밋: [a']₁ = commit(a', srs)
"""

import secrets

from privtx.plonk.field import FR, CURVE_ORDER
from privtx.plonk.polynomial import Polynomial
from privtx.plonk.kzg import commit


def execute(state):
    """Round 1을 실행한다.

    Args:
        state: ProverState: a_vals, b_vals, c_vals를 읽고,
               a_poly, b_poly, c_poly와 커밋먼트를 기록한다.
    """
    omega = state.omega
    zh = Polynomial.vanishing(state.n)

    # ── 1. 배선 다항식 보간 + 블라인딩 ──
    state.a_poly = add_blinding(Polynomial.from_evaluations(state.a_vals, omega), zh, 2)
    state.b_poly = add_blinding(Polynomial.from_evaluations(state.b_vals, omega), zh, 2)
    state.c_poly = add_blinding(Polynomial.from_evaluations(state.c_vals, omega), zh, 2)

    # ── 2. KZG 커밋 ──
    state.proof.a_comm = commit(state.a_poly, state.srs)
    state.proof.b_comm = commit(state.b_poly, state.srs)
    state.proof.c_comm = commit(state.c_poly, state.srs)

    # ── 3. 트랜스크립트에 커밋먼트 추가 ──
    state.transcript.append_point(b"a_comm", state.proof.a_comm)
    state.transcript.append_point(b"b_comm", state.proof.b_comm)
    state.transcript.append_point(b"c_comm", state.proof.c_comm)


def add_blinding(poly, zh, num_blinds):
    """다항식에 블라인딩 항 (r₁ + r₂·x + ...) · Z_H(x) 를 더한다."""
    blind_coeffs = [FR(secrets.randbelow(CURVE_ORDER)) for _ in range(num_blinds)]
    return poly + Polynomial(blind_coeffs) * zh

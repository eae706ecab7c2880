"""
PLONK Prover Round 3: 몫 다항식 t(x) 커밋먼트
================================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: α  (Fiat-Shamir)           │
  │  Prover → Verifier: [t_lo]₁, [t_mid]₁, [t_hi]₁│
  └─────────────────────────────────────────────────┘

**세 가지 제약 항**:

  Term 1: 게이트 제약:
    q_L·a + q_R·b + q_O·c + q_M·a·b + q_C + PI

  Term 2: 순열 제약 (α 배수):
    α · [ (a + βx + γ)(b + βK1x + γ)(c + βK2x + γ) · z(x)
        - (a + βS_σ1 + γ)(b + βS_σ2 + γ)(c + βS_σ3 + γ) · z(ωx) ]

  Term 3: 경계 제약 (α² 배수):
    α² · (z(x) - 1) · L₁(x)

  t(x) = (Term1 + Term2 + Term3) / Z_H(x)

**구현 방식**:
  계수 표현에서 직접 다항식 곱셈과 나눗셈을 수행한다.
  곱셈은 Polynomial.__mul__의 FFT 경로를, 나눗셈은 x^n - 1 전용의
  divide_by_vanishing을 사용한다.

**t(x) 3-분할**:
  t(x) = t_lo(x) + x^n · t_mid(x) + x^{2n} · t_hi(x)
  블라인딩 때문에 t_hi는 n개보다 몇 개 많은 계수를 가질 수 있다.
"""

from privtx.plonk.field import FR
from privtx.plonk.polynomial import Polynomial
from privtx.plonk.kzg import commit
from privtx.plonk.permutation import K1, K2


def execute(state):
    """Round 3을 실행한다.

    Raises:
        ValueError: 제약 다항식이 Z_H(x)로 나누어 떨어지지 않을 때
                    (witness가 회로를 만족하지 않음)
    """
    # ── 1. α 챌린지 ──
    state.alpha = state.transcript.challenge_scalar(b"alpha")

    n = state.n
    alpha = state.alpha
    beta = state.beta
    gamma = state.gamma
    pp = state.preprocessed

    a = state.a_poly
    b = state.b_poly
    c = state.c_poly
    z = state.z_poly

    # ── 2. 보조 다항식 ──
    z_omega = z.scale_input(state.omega)
    gamma_poly = Polynomial([gamma])

    # L₁(x): 첫 번째 Lagrange 기저 (평가값 [1, 0, ..., 0]의 보간)
    l1 = Polynomial.from_evaluations([FR(1)] + [FR(0)] * (n - 1), state.omega)

    # ── 3. 제약 다항식 C(x) ──

    # Term 1: 게이트 제약
    term1 = (
        pp.q_l_poly * a
        + pp.q_r_poly * b
        + pp.q_o_poly * c
        + pp.q_m_poly * (a * b)
        + pp.q_c_poly
        + state.pi_poly
    )

    # Term 2: 순열 제약
    perm_num = (
        (a + Polynomial([gamma, beta]))
        * (b + Polynomial([gamma, beta * K1]))
        * (c + Polynomial([gamma, beta * K2]))
        * z
    )
    perm_den = (
        (a + pp.s_sigma1_poly * beta + gamma_poly)
        * (b + pp.s_sigma2_poly * beta + gamma_poly)
        * (c + pp.s_sigma3_poly * beta + gamma_poly)
        * z_omega
    )
    term2 = (perm_num - perm_den) * alpha

    # Term 3: 경계 제약
    term3 = (z - Polynomial.one()) * l1 * (alpha * alpha)

    constraint = term1 + term2 + term3

    # ── 4. Z_H(x)로 나누기 ──
    t_poly = constraint.divide_by_vanishing(n)

    # ── 5. t(x) 3-분할 ──
    t_coeffs = list(t_poly.coeffs)
    while len(t_coeffs) < 3 * n:
        t_coeffs.append(FR(0))

    state.t_lo_poly = Polynomial(t_coeffs[:n])
    state.t_mid_poly = Polynomial(t_coeffs[n:2 * n])
    state.t_hi_poly = Polynomial(t_coeffs[2 * n:])

    # ── 6. KZG 커밋 + 트랜스크립트 업데이트 ──
    state.proof.t_lo_comm = commit(state.t_lo_poly, state.srs)
    state.proof.t_mid_comm = commit(state.t_mid_poly, state.srs)
    state.proof.t_hi_comm = commit(state.t_hi_poly, state.srs)

    state.transcript.append_point(b"t_lo_comm", state.proof.t_lo_comm)
    state.transcript.append_point(b"t_mid_comm", state.proof.t_mid_comm)
    state.transcript.append_point(b"t_hi_comm", state.proof.t_hi_comm)

"""
PLONK Prover Round 5: 선형화 + KZG 열기 증명
===============================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: v  (Fiat-Shamir)           │
  │  Prover → Verifier: [W_ζ]₁, [W_ζω]₁           │
  └─────────────────────────────────────────────────┘

**선형화 다항식 r(x)**:
  Round 4의 평가값을 제약 다항식에 대입하여, 커밋먼트의 선형결합으로
  계산 가능한 형태로 만든다.

  게이트: ā·b̄·q_M(x) + ā·q_L(x) + b̄·q_R(x) + c̄·q_O(x) + q_C(x) + PI(ζ)
  순열:   α·(ā+βζ+γ)(b̄+βK1ζ+γ)(c̄+βK2ζ+γ)·z(x)
        - α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·β·z̄ω·S_σ3(x)
        - α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·(c̄+γ)·z̄ω
  경계:   α²·L₁(ζ)·z(x) - α²·L₁(ζ)

**몫 다항식 흡수**:
  r'(x) = r(x) - Z_H(ζ)·(t_lo(x) + ζⁿ·t_mid(x) + ζ²ⁿ·t_hi(x))

  제약이 만족되면 r(ζ) = Z_H(ζ)·t(ζ) 이므로 r'(ζ) = 0 이다.
  따라서 r(ζ)나 t(ζ)를 증명에 따로 담을 필요가 없고,
  증명은 9개의 점과 6개의 평가값(24개 원소)으로 끝난다.

**일괄 열기**:
  W_ζ(x)  = [r'(x) + v(a-ā) + v²(b-b̄) + v³(c-c̄) + v⁴(S_σ1-s̄1) + v⁵(S_σ2-s̄2)] / (x - ζ)
  W_ζω(x) = (z(x) - z̄ω) / (x - ζω)
"""

from privtx.plonk.field import FR
from privtx.plonk.polynomial import Polynomial, poly_div
from privtx.plonk.kzg import commit
from privtx.plonk.permutation import K1, K2
from privtx.plonk.utils import vanishing_poly_eval, lagrange_basis_eval


def execute(state):
    """Round 5를 실행한다.

    Raises:
        ValueError: r'(ζ) ≠ 0 인 경우 (앞 라운드의 계산이 어긋남)
    """
    # ── 1. v 챌린지 ──
    state.v = state.transcript.challenge_scalar(b"v")
    v = state.v

    n = state.n
    zeta = state.zeta
    omega = state.omega
    alpha = state.alpha
    beta = state.beta
    gamma = state.gamma
    pp = state.preprocessed
    proof = state.proof

    a_eval = proof.a_eval
    b_eval = proof.b_eval
    c_eval = proof.c_eval
    s_sigma1_eval = proof.s_sigma1_eval
    s_sigma2_eval = proof.s_sigma2_eval
    z_omega_eval = proof.z_omega_eval

    # ── 2. 공개 값 ──
    pi_zeta = state.pi_poly.evaluate(zeta)
    l1_zeta = lagrange_basis_eval(0, n, omega, zeta)
    zh_zeta = vanishing_poly_eval(n, zeta)

    # ── 3. 선형화 다항식 r(x) ──
    # 게이트 제약
    r_poly = (
        pp.q_m_poly * (a_eval * b_eval)
        + pp.q_l_poly * a_eval
        + pp.q_r_poly * b_eval
        + pp.q_o_poly * c_eval
        + pp.q_c_poly
    )

    # 순열 제약
    perm_z_scalar = (
        alpha
        * (a_eval + beta * zeta + gamma)
        * (b_eval + beta * K1 * zeta + gamma)
        * (c_eval + beta * K2 * zeta + gamma)
    )
    ab_factor = (
        (a_eval + beta * s_sigma1_eval + gamma)
        * (b_eval + beta * s_sigma2_eval + gamma)
    )
    perm_s3_scalar = alpha * ab_factor * beta * z_omega_eval

    # 경계 제약 z(x) 계수는 순열 z(x) 계수와 합친다
    r_poly = r_poly + state.z_poly * (perm_z_scalar + alpha * alpha * l1_zeta)
    r_poly = r_poly - pp.s_sigma3_poly * perm_s3_scalar

    # 상수 항 r₀
    r_0 = (
        pi_zeta
        - alpha * ab_factor * z_omega_eval * (c_eval + gamma)
        - alpha * alpha * l1_zeta
    )
    r_poly = r_poly + Polynomial([r_0])

    # ── 4. r'(x) = r(x) - Z_H(ζ)·t_ζ(x) ──
    zeta_n = zeta ** n
    zeta_2n = zeta_n * zeta_n
    t_combined = (
        state.t_lo_poly
        + state.t_mid_poly * zeta_n
        + state.t_hi_poly * zeta_2n
    )
    r_prime = r_poly - t_combined * zh_zeta

    if r_prime.evaluate(zeta) != FR(0):
        raise ValueError("선형화 다항식이 ζ에서 0이 아닙니다")

    # ── 5. 일괄 열기 증명 W_ζ ──
    numerator = r_prime
    v_power = FR(1)
    for poly, value in (
        (state.a_poly, a_eval),
        (state.b_poly, b_eval),
        (state.c_poly, c_eval),
        (pp.s_sigma1_poly, s_sigma1_eval),
        (pp.s_sigma2_poly, s_sigma2_eval),
    ):
        v_power = v_power * v
        numerator = numerator + (poly - Polynomial([value])) * v_power

    W_zeta_poly, _ = poly_div(numerator, Polynomial([FR(0) - zeta, FR(1)]))

    # ── 6. z(x) 열기 증명 W_ζω ──
    W_zeta_omega_poly, _ = poly_div(
        state.z_poly - Polynomial([z_omega_eval]),
        Polynomial([FR(0) - zeta * omega, FR(1)]),
    )

    # ── 7. KZG 커밋 ──
    proof.W_zeta_comm = commit(W_zeta_poly, state.srs)
    proof.W_zeta_omega_comm = commit(W_zeta_omega_poly, state.srs)

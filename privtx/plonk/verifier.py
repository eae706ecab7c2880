"""
PLONK Verifier
================

PLONK 증명을 검증한다.

**검증 과정**:
  1. 공개 입력 흡수 + Fiat-Shamir 재생 → β, γ, α, ζ, v, u 챌린지 복원
  2. Z_H(ζ), L₁(ζ), PI(ζ) 계산
  3. 선형화 커밋먼트 [r']₁ = [D]₁ + r₀·G₁ - Z_H(ζ)·[t_ζ]₁
  4. 결합 커밋먼트 [F]₁, 스칼라 E 구성
  5. 페어링 검사

**핵심 방정식**:
  [F]₁ = [r']₁ + v·[a]₁ + v²·[b]₁ + v³·[c]₁ + v⁴·[S_σ1]₁ + v⁵·[S_σ2]₁
  E    = v·ā + v²·b̄ + v³·c̄ + v⁴·s̄_σ1 + v⁵·s̄_σ2 + u·z̄_ω

  [A]₁ = [W_ζ]₁ + u·[W_ζω]₁
  [B]₁ = ζ·[W_ζ]₁ + u·ζω·[W_ζω]₁ + [F]₁ + u·[z]₁ - E·G₁

  e([A]₁, [τ]₂) == e([B]₁, [1]₂)

  공개 입력은 PI(ζ)를 통해 r₀에, 그리고 트랜스크립트를 통해 모든 챌린지에
  들어가므로, 공개 신호가 하나라도 다르면 검증은 실패한다.

사용 예시:
    >>> from privtx.plonk.verifier import verify
    >>> result = verify(proof, public_inputs, verifying_key)
"""

from privtx.plonk.field import FR, G1, CURVE_ORDER, ec_mul, ec_add, ec_neg, ec_pairing
from privtx.plonk.transcript import Transcript
from privtx.plonk.permutation import K1, K2
from privtx.plonk.prover import absorb_public_inputs
from privtx.plonk.utils import (
    vanishing_poly_eval,
    lagrange_basis_eval,
    public_input_poly_eval,
)


def verify(proof, public_inputs, vk):
    """PLONK 증명을 검증한다.

    Args:
        proof: Proof 객체
        public_inputs: 공개 입력 값 리스트 (정수 또는 FR)
        vk: VerifyingKey (또는 같은 속성을 가진 PreprocessedData + g2_powers)

    Returns:
        bool: 검증 성공 여부
    """
    if len(public_inputs) != vk.num_public_inputs:
        return False
    for value in public_inputs:
        if not 0 <= int(value) < CURVE_ORDER:
            return False
    public_inputs = [v if isinstance(v, FR) else FR(v) for v in public_inputs]

    n = vk.n
    omega = vk.omega

    # ── Step 1: Fiat-Shamir 트랜스크립트 재생 ──
    transcript = Transcript()
    absorb_public_inputs(transcript, public_inputs)

    transcript.append_point(b"a_comm", proof.a_comm)
    transcript.append_point(b"b_comm", proof.b_comm)
    transcript.append_point(b"c_comm", proof.c_comm)

    beta = transcript.challenge_scalar(b"beta")
    gamma = transcript.challenge_scalar(b"gamma")

    transcript.append_point(b"z_comm", proof.z_comm)

    alpha = transcript.challenge_scalar(b"alpha")

    transcript.append_point(b"t_lo_comm", proof.t_lo_comm)
    transcript.append_point(b"t_mid_comm", proof.t_mid_comm)
    transcript.append_point(b"t_hi_comm", proof.t_hi_comm)

    zeta = transcript.challenge_scalar(b"zeta")

    transcript.append_scalar(b"a_eval", proof.a_eval)
    transcript.append_scalar(b"b_eval", proof.b_eval)
    transcript.append_scalar(b"c_eval", proof.c_eval)
    transcript.append_scalar(b"s_sigma1_eval", proof.s_sigma1_eval)
    transcript.append_scalar(b"s_sigma2_eval", proof.s_sigma2_eval)
    transcript.append_scalar(b"z_omega_eval", proof.z_omega_eval)

    v = transcript.challenge_scalar(b"v")

    # u는 열기 증명 이후에 뽑아야 W_ζ, W_ζω에 대해 무작위가 된다
    transcript.append_point(b"W_zeta_comm", proof.W_zeta_comm)
    transcript.append_point(b"W_zeta_omega_comm", proof.W_zeta_omega_comm)
    u = transcript.challenge_scalar(b"u")

    # ── Step 2: 공개 값 계산 ──
    a_eval = proof.a_eval
    b_eval = proof.b_eval
    c_eval = proof.c_eval
    s_sigma1_eval = proof.s_sigma1_eval
    s_sigma2_eval = proof.s_sigma2_eval
    z_omega_eval = proof.z_omega_eval

    zh_zeta = vanishing_poly_eval(n, zeta)
    l1_zeta = lagrange_basis_eval(0, n, omega, zeta)
    pi_zeta = public_input_poly_eval(public_inputs, n, omega, zeta)

    # ── Step 3: 선형화 커밋먼트 ──
    # 게이트: ā·b̄·[q_M] + ā·[q_L] + b̄·[q_R] + c̄·[q_O] + [q_C]
    D = ec_mul(vk.q_m_comm, a_eval * b_eval)
    D = ec_add(D, ec_mul(vk.q_l_comm, a_eval))
    D = ec_add(D, ec_mul(vk.q_r_comm, b_eval))
    D = ec_add(D, ec_mul(vk.q_o_comm, c_eval))
    D = ec_add(D, vk.q_c_comm)

    # 순열 + 경계: (α·(ā+βζ+γ)(b̄+βK1ζ+γ)(c̄+βK2ζ+γ) + α²·L₁(ζ))·[z]
    perm_z_scalar = (
        alpha
        * (a_eval + beta * zeta + gamma)
        * (b_eval + beta * K1 * zeta + gamma)
        * (c_eval + beta * K2 * zeta + gamma)
    )
    D = ec_add(D, ec_mul(proof.z_comm, perm_z_scalar + alpha * alpha * l1_zeta))

    # 순열 S_σ3: -α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·β·z̄ω·[S_σ3]
    ab_factor = (
        (a_eval + beta * s_sigma1_eval + gamma)
        * (b_eval + beta * s_sigma2_eval + gamma)
    )
    D = ec_add(D, ec_neg(ec_mul(vk.s_sigma3_comm, alpha * ab_factor * beta * z_omega_eval)))

    # r₀ = PI(ζ) - α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·(c̄+γ)·z̄ω - α²·L₁(ζ)
    r_0 = (
        pi_zeta
        - alpha * ab_factor * z_omega_eval * (c_eval + gamma)
        - alpha * alpha * l1_zeta
    )

    # [t_ζ] = [t_lo] + ζⁿ·[t_mid] + ζ²ⁿ·[t_hi]
    zeta_n = zeta ** n
    t_comm = ec_add(
        proof.t_lo_comm,
        ec_add(
            ec_mul(proof.t_mid_comm, zeta_n),
            ec_mul(proof.t_hi_comm, zeta_n * zeta_n)
        )
    )

    # [r'] = [D] + r₀·G₁ - Z_H(ζ)·[t_ζ]
    r_prime = ec_add(D, ec_mul(G1, r_0))
    r_prime = ec_add(r_prime, ec_neg(ec_mul(t_comm, zh_zeta)))

    # ── Step 4: [F]₁ 및 E ──
    F = r_prime
    e_scalar = FR(0)
    v_pow = FR(1)
    for comm, value in (
        (proof.a_comm, a_eval),
        (proof.b_comm, b_eval),
        (proof.c_comm, c_eval),
        (vk.s_sigma1_comm, s_sigma1_eval),
        (vk.s_sigma2_comm, s_sigma2_eval),
    ):
        v_pow = v_pow * v
        F = ec_add(F, ec_mul(comm, v_pow))
        e_scalar = e_scalar + v_pow * value
    e_scalar = e_scalar + u * z_omega_eval

    E = ec_mul(G1, e_scalar)

    # ── Step 5: 페어링 검사 ──
    A = ec_add(proof.W_zeta_comm, ec_mul(proof.W_zeta_omega_comm, u))

    B = ec_mul(proof.W_zeta_comm, zeta)
    B = ec_add(B, ec_mul(proof.W_zeta_omega_comm, u * zeta * omega))
    B = ec_add(B, F)
    B = ec_add(B, ec_mul(proof.z_comm, u))
    B = ec_add(B, ec_neg(E))

    lhs = ec_pairing(vk.g2_powers[1], A)
    rhs = ec_pairing(vk.g2_powers[0], B)

    return lhs == rhs

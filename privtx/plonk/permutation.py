"""
PLONK 순열 인자 (Permutation Argument)
========================================

배선 복사 제약(copy constraint)을 순열(permutation)로 인코딩하고,
Grand Product 논증으로 증명하는 모듈.

**코셋 식별자 K1, K2**:
  3n개의 배선 위치를 3개의 코셋으로 분리:
  - a 배선: {ω⁰, ω¹, ..., ω^{n-1}}       (코셋 1·H)
  - b 배선: {K1·ω⁰, ..., K1·ω^{n-1}}    (코셋 K1·H)
  - c 배선: {K2·ω⁰, ..., K2·ω^{n-1}}    (코셋 K2·H)

**Grand Product (순열 누적자 z(x))**:
  z(ω⁰) = 1
  z(ωⁱ⁺¹) = z(ωⁱ) · ∏ₖ (wₖ(ωⁱ) + β·id_k(ωⁱ) + γ) / (wₖ(ωⁱ) + β·σₖ(ωⁱ) + γ)
"""

from privtx.plonk.field import FR


# H, K1·H, K2·H가 서로소인 코셋이 되도록 선택
K1 = FR(2)
K2 = FR(3)


def build_permutation_polynomials(sigma, n, domain):
    """순열 σ를 3개의 평가 벡터 S_σ1, S_σ2, S_σ3으로 인코딩한다.

    Args:
        sigma: 순열 배열 (길이 3n, build_copy_constraints()의 결과)
        n: 게이트 수
        domain: 도메인 [ω⁰, ω¹, ..., ω^{n-1}]

    Returns:
        tuple: (S_sigma1_evals, S_sigma2_evals, S_sigma3_evals)
               각각 길이 n의 FR 원소 리스트 (평가값)
    """
    def position_to_value(pos):
        if pos < n:
            return domain[pos]
        elif pos < 2 * n:
            return K1 * domain[pos - n]
        else:
            return K2 * domain[pos - 2 * n]

    s_sigma1_evals = [position_to_value(sigma[i]) for i in range(n)]
    s_sigma2_evals = [position_to_value(sigma[n + i]) for i in range(n)]
    s_sigma3_evals = [position_to_value(sigma[2 * n + i]) for i in range(n)]

    return s_sigma1_evals, s_sigma2_evals, s_sigma3_evals


def compute_accumulator(a_vals, b_vals, c_vals, sigma, n, domain, beta, gamma):
    """순열 누적자(grand product accumulator) z의 평가값을 계산한다.

    분모의 역원은 행마다 따로 구하지 않고, 전체 분모 곱을 한 번만
    역원 계산한 뒤 누적 곱으로 되돌리는 배치 역원(batch inversion)을 쓴다.

    Args:
        a_vals, b_vals, c_vals: 배선 값 리스트 (길이 n)
        sigma: 순열 배열 (길이 3n)
        n: 게이트 수
        domain: [ω⁰, ..., ω^{n-1}]
        beta: β 챌린지 (FR)
        gamma: γ 챌린지 (FR)

    Returns:
        list[FR]: z의 평가값 [z(ω⁰)=1, z(ω¹), ..., z(ω^{n-1})]

    Raises:
        ValueError: 복사 제약이 만족되지 않아 z(ω^n) ≠ 1 인 경우
    """
    s1, s2, s3 = build_permutation_polynomials(sigma, n, domain)

    nums = []
    dens = []
    for i in range(n):
        nums.append(
            (a_vals[i] + beta * domain[i] + gamma)
            * (b_vals[i] + beta * K1 * domain[i] + gamma)
            * (c_vals[i] + beta * K2 * domain[i] + gamma)
        )
        dens.append(
            (a_vals[i] + beta * s1[i] + gamma)
            * (b_vals[i] + beta * s2[i] + gamma)
            * (c_vals[i] + beta * s3[i] + gamma)
        )

    # 배치 역원
    prefix = [FR(1)]
    for d in dens:
        prefix.append(prefix[-1] * d)
    inv = FR(1) / prefix[-1]
    dens_inv = [None] * n
    for i in range(n - 1, -1, -1):
        dens_inv[i] = inv * prefix[i]
        inv = inv * dens[i]

    z_evals = [FR(1)]
    for i in range(n - 1):
        z_evals.append(z_evals[-1] * nums[i] * dens_inv[i])

    if z_evals[-1] * nums[n - 1] * dens_inv[n - 1] != FR(1):
        raise ValueError("순열 누적자가 1로 닫히지 않습니다 (복사 제약 불만족)")

    return z_evals

"""
PLONK 공유 유틸리티
===================

여러 PLONK 모듈에서 공유되는 수학적 유틸리티 함수를 제공한다.

**주요 기능**:
  - vanishing_poly_eval: 소거 다항식 Z_H(ζ) = ζ^n - 1 평가
  - lagrange_basis_eval: i번째 Lagrange 기저 L_i(ζ) 평가
  - public_input_polynomial: 공개 입력(public input) 다항식 PI(x) 구성
  - public_input_poly_eval: PI(ζ)를 다항식 없이 평가 (Verifier용)
  - next_power_of_2: 도메인 크기 계산

**공개 입력 부호 규약**:
  공개 입력 게이트는 q_O = 1 이고 나머지 셀렉터가 0 이므로
  게이트 제약이 c + PI(ωⁱ) = 0 이 된다.
  따라서 PI(ωⁱ) = -xᵢ 로 두면 c = xᵢ 가 강제된다.
  이 모듈의 함수들은 공개 입력 값 xᵢ를 받아 내부에서 부호를 뒤집는다.
"""

from privtx.plonk.field import FR
from privtx.plonk.polynomial import Polynomial


def vanishing_poly_eval(n, zeta):
    """소거 다항식 Z_H(ζ) = ζ^n - 1 을 평가한다.

    Args:
        n: 도메인 크기
        zeta: 평가 점 (FR 원소)

    Returns:
        FR: ζ^n - 1
    """
    return zeta ** n - FR(1)


def lagrange_basis_eval(i, n, omega, zeta):
    """i번째 Lagrange 기저 다항식 L_i(ζ)를 평가한다.

    공식:
        L_i(ζ) = (ω^i / n) · (ζ^n - 1) / (ζ - ω^i)

    성질: L_i(ω^j) = δ_{ij} (크로네커 델타)

    Args:
        i: 기저 인덱스 (0 ≤ i < n)
        n: 도메인 크기
        omega: n차 원시 단위근
        zeta: 평가 점

    Returns:
        FR: L_i(ζ)
    """
    if not isinstance(zeta, FR):
        zeta = FR(zeta)

    omega_i = omega ** i
    denominator = zeta - omega_i
    if denominator == FR(0):
        return FR(1)

    # ζ가 다른 도메인 점이면 Z_H(ζ) = 0 이므로 결과도 0
    zh_zeta = vanishing_poly_eval(n, zeta)
    n_inv = FR(1) / FR(n)
    return n_inv * zh_zeta * omega_i / denominator


def public_input_polynomial(pub_inputs, n, omega):
    """공개 입력(public input) 다항식 PI(x)를 구성한다.

    PI(x) = Σᵢ (-xᵢ) · Lᵢ(x)    (i = 0, ..., |pub_inputs|-1)

    공개 입력은 회로의 첫 |pub_inputs|개 행(공개 입력 게이트)에 놓인다.

    Args:
        pub_inputs: 공개 입력 값 리스트 [x₀, x₁, ...]
        n: 도메인 크기
        omega: n차 원시 단위근

    Returns:
        Polynomial: PI(x)
    """
    if not pub_inputs:
        return Polynomial.zero()
    if len(pub_inputs) > n:
        raise ValueError(f"공개 입력 수({len(pub_inputs)})가 도메인 크기({n})를 초과합니다")

    evals = [FR(0)] * n
    for i, val in enumerate(pub_inputs):
        if not isinstance(val, FR):
            val = FR(val)
        evals[i] = FR(0) - val

    return Polynomial.from_evaluations(evals, omega)


def public_input_poly_eval(pub_inputs, n, omega, zeta):
    """공개 입력 다항식 PI(ζ)를 효율적으로 평가한다.

    PI(ζ) = Σᵢ (-xᵢ) · Lᵢ(ζ)

    다항식 전체를 구성하지 않고 Lagrange 기저의 평가값만 사용한다.

    Args:
        pub_inputs: 공개 입력 값 리스트
        n: 도메인 크기
        omega: n차 원시 단위근
        zeta: 평가 점

    Returns:
        FR: PI(ζ)
    """
    result = FR(0)
    for i, val in enumerate(pub_inputs):
        if not isinstance(val, FR):
            val = FR(val)
        result = result - val * lagrange_basis_eval(i, n, omega, zeta)
    return result


def next_power_of_2(n):
    """n 이상의 가장 작은 2의 거듭제곱을 반환한다.

    예시:
        >>> next_power_of_2(3)  # 4
        >>> next_power_of_2(4)  # 4
        >>> next_power_of_2(5)  # 8
    """
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p

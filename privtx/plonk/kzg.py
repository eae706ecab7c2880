"""
KZG 다항식 커밋먼트
====================

Kate-Zaverucha-Goldberg (KZG) 커밋먼트는 PLONK의 핵심 빌딩 블록이다.

  - 커밋먼트: C = p(τ)·G1 (τ는 SRS의 비밀 값)
  - 바인딩(binding): 한 번 커밋하면 다른 다항식으로 바꿀 수 없음

열기 증명(opening proof)은 별도 함수로 두지 않는다. Round 5가 여러 다항식을
한 번에 여는 일괄 열기 증명 W_ζ, W_ζω를 직접 구성하고, Verifier가 이를
하나의 페어링 등식으로 검사한다.

사용 예시:
    >>> from privtx.plonk.kzg import commit
    >>> C = commit(poly, srs)
"""

from privtx.plonk.field import FR, Z1, ec_mul, ec_add


def commit(poly, srs):
    """다항식을 KZG 커밋한다.

    C = Σᵢ cᵢ · [τⁱ]₁ = p(τ) · G1

    Args:
        poly: 커밋할 다항식 (Polynomial)
        srs: Structured Reference String (SRS)

    Returns:
        G1 점 (사영 좌표): 커밋먼트 C. 영 다항식은 무한원점.

    Raises:
        ValueError: 다항식 차수가 SRS 최대 차수를 초과할 때
    """
    if poly.degree > srs.max_degree:
        raise ValueError(
            f"다항식 차수 {poly.degree}가 SRS 최대 차수 {srs.max_degree}를 초과합니다"
        )

    zero = FR(0)
    result = Z1
    for i, coeff in enumerate(poly.coeffs):
        if coeff == zero:
            continue
        result = ec_add(result, ec_mul(srs.g1_powers[i], coeff))

    return result

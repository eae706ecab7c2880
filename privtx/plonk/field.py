"""
PLONK 기반 모듈: 유한체(Finite Field) 및 타원곡선 연산
========================================================

이 모듈은 PLONK 프로토콜과 송금 회로 전체에서 사용되는 기본 대수적 도구를 정의한다.

**유한체 FR**:
  bn128(BN254) 타원곡선의 스칼라 필드 (scalar field).
  잔액 커밋먼트, 널리파이어, 회로의 모든 배선 값이 이 필드의 원소이다.
  - 위수(order) p ≈ 2^254, 소수체(prime field)
  - p - 1 = 2^28 × m (m은 홀수) → 최대 2^28차 단위근(root of unity)을 지원

**타원곡선 연산**:
  KZG 다항식 커밋먼트와 검증을 위한 G1, G2 그룹 연산 및 페어링.
  py_ecc의 optimized_bn128 (사영 좌표, projective coordinates)을 사용한다.
  점은 (X, Y, Z) 튜플이며 무한원점은 Z = 0 인 점(Z1, Z2)이다.
  좌표를 외부로 내보낼 때는 반드시 to_affine()으로 정규화한다.

**단위근(Roots of Unity)**:
  FFT/IFFT와 다항식 보간에 필수적인 n차 원시 단위근.

사용 예시:
    >>> from privtx.plonk.field import FR, G1, ec_mul
    >>> a = FR(3)
    >>> b = FR(7)
    >>> c = a * b        # FR(21)
    >>> P = ec_mul(G1, 5)  # 5·G1
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import optimized_bn128 as bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    bn128.curve_order (≈ 2^254) 위의 모듈러 산술을 지원한다.
    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 등의 필드 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x * x          # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기)
CURVE_ORDER = bn128.curve_order

# 기저체(base field) 위수: G1 좌표의 범위
FIELD_MODULUS = bn128.field_modulus


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

# G1 그룹 생성자 (generator)
G1 = bn128.G1

# G2 그룹 생성자 (generator)
G2 = bn128.G2

# 영점 (point at infinity) - 항등원
Z1 = bn128.Z1
Z2 = bn128.Z2


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point.

    Args:
        point: G1 또는 G2 위의 점
        scalar: 정수 또는 FR 원소

    Returns:
        scalar · point (같은 그룹의 점)
    """
    if isinstance(scalar, FR):
        scalar = int(scalar)
    return bn128.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return bn128.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원 (negation): -point."""
    return bn128.neg(point)


def ec_eq(p1, p2):
    """두 점이 같은 점인지 비교한다.

    사영 좌표는 같은 점이라도 표현이 여러 개이므로
    튜플 비교(==) 대신 이 함수를 사용해야 한다.
    """
    return bn128.eq(p1, p2)


def is_infinity(point):
    """무한원점 여부."""
    return bn128.is_inf(point)


def to_affine(point):
    """G1 점을 정수 아핀 좌표 (x, y)로 변환한다.

    무한원점은 (0, 0)으로 표현한다 (EVM 프리컴파일 관례).
    """
    if bn128.is_inf(point):
        return 0, 0
    x, y = bn128.normalize(point)
    return int(x), int(y)


def g1_from_affine(x, y):
    """정수 아핀 좌표 (x, y)에서 G1 점을 만든다.

    Raises:
        ValueError: 좌표가 기저체 범위를 벗어나거나 점이 곡선 위에 없을 때
    """
    if not (0 <= x < FIELD_MODULUS and 0 <= y < FIELD_MODULUS):
        raise ValueError(f"G1 좌표가 기저체 범위를 벗어났습니다: ({x}, {y})")
    if x == 0 and y == 0:
        return Z1
    point = (bn128.FQ(x), bn128.FQ(y), bn128.FQ.one())
    if not bn128.is_on_curve(point, bn128.b):
        raise ValueError("G1 점이 곡선 위에 있지 않습니다")
    return point


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    주의:
        py_ecc.bn128.pairing의 인자 순서는 (G2, G1)이다.
    """
    return bn128.pairing(g2_point, g1_point)


# ─────────────────────────────────────────────────────────────────────
# 단위근 (Roots of Unity)
# ─────────────────────────────────────────────────────────────────────

def get_root_of_unity(n):
    """n차 원시 단위근(primitive n-th root of unity) ω를 반환한다.

    bn128 곡선의 경우:
        p - 1 = 2^28 × m (m은 홀수)
        생성자 g = FR(5)를 사용하여 ω = g^((p-1)/n)으로 계산한다.

    Args:
        n: 단위근의 차수 (2의 거듭제곱이어야 하며, ≤ 2^28)

    Returns:
        FR: n차 원시 단위근

    Raises:
        ValueError: n이 2의 거듭제곱이 아니거나 2^28을 초과할 때
    """
    if n < 1 or (n & (n - 1)) != 0:
        raise ValueError(f"n은 2의 거듭제곱이어야 합니다: {n}")
    if n > (1 << 28):
        raise ValueError(f"n은 2^28 이하여야 합니다: {n}")
    if n == 1:
        return FR(1)

    # ω = g^((p-1)/n)이면 ω^n = g^(p-1) = 1 (페르마 소정리)
    g = FR(5)
    exponent = (CURVE_ORDER - 1) // n
    return g ** exponent


def get_roots_of_unity(n):
    """n개의 단위근 리스트 [1, ω, ω², ..., ω^(n-1)]을 반환한다.

    이 리스트는 PLONK의 평가 도메인 H를 정의한다.
    """
    omega = get_root_of_unity(n)
    roots = []
    current = FR(1)
    for _ in range(n):
        roots.append(current)
        current = current * omega
    return roots

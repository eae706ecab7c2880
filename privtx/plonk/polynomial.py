"""
PLONK 기반 모듈: 다항식(Polynomial) 클래스 및 FFT
===================================================

이 모듈은 PLONK 프로토콜에서 사용되는 모든 다항식 연산을 제공한다.

**Polynomial 클래스**:
  계수(coefficient) 표현 기반 다항식. p(x) = c₀ + c₁·x + c₂·x² + ...
  산술 연산자(+, -, *, 스칼라곱)와 평가(evaluation)를 지원한다.

**FFT/IFFT (Number Theoretic Transform)**:
  유한체 위의 다항식을 평가 표현 ↔ 계수 표현으로 변환.
  - FFT: 계수 → n개의 단위근에서의 평가값
  - IFFT: 평가값 → 계수 (보간)
  재귀적 Cooley-Tukey radix-2 알고리즘을 사용한다.

**곱셈**:
  송금 회로는 수백 개의 게이트를 가지므로 O(n²) 나이브 곱셈으로는
  Round 3가 지나치게 느리다. 두 피연산자가 모두 FFT_THRESHOLD보다 길면
  FFT 기반 곱셈(O(n log n))을 사용한다.

**소거 다항식 나눗셈 (divide_by_vanishing)**:
  Z_H(x) = x^n - 1 은 항이 두 개뿐이므로 긴 나눗셈 대신
  계수 점화식으로 O(deg) 시간에 나눈다.

사용 예시:
    >>> from privtx.plonk.polynomial import Polynomial, fft, ifft
    >>> p = Polynomial([FR(1), FR(2), FR(3)])  # 1 + 2x + 3x²
    >>> p.evaluate(FR(2))  # 1 + 4 + 12 = FR(17)
"""

from privtx.plonk.field import FR, get_root_of_unity


# 이보다 짧은 피연산자가 있으면 나이브 곱셈이 더 빠르다
FFT_THRESHOLD = 32


# ─────────────────────────────────────────────────────────────────────
# Polynomial 클래스
# ─────────────────────────────────────────────────────────────────────

class Polynomial:
    """유한체 FR 위의 다항식.

    계수 리스트로 표현: coeffs = [c₀, c₁, c₂, ...] → c₀ + c₁x + c₂x² + ...

    PLONK 프로토콜에서의 역할:
    - 배선(witness) 다항식 a(x), b(x), c(x): 송금 회로의 배선 값을 인코딩
    - 셀렉터 다항식 q_L(x), q_R(x), ...: 게이트 유형을 인코딩
    - 순열 다항식 S_σ(x): 배선 연결 관계를 인코딩
    - 공개 입력 다항식 PI(x): 8개의 공개 신호를 인코딩
    - 몫 다항식 t(x): 모든 제약이 만족됨을 증명
    """

    def __init__(self, coeffs=None):
        """다항식 생성.

        Args:
            coeffs: FR 원소(또는 정수)의 리스트 [c₀, c₁, ...].
                    None이면 영 다항식(0)을 생성한다.
        """
        if coeffs is None:
            self.coeffs = [FR(0)]
        else:
            self.coeffs = [c if isinstance(c, FR) else FR(c) for c in coeffs]
            if not self.coeffs:
                self.coeffs = [FR(0)]
        self._trim()

    def _trim(self):
        """최고차 계수가 0인 항을 제거하여 정규화한다."""
        zero = FR(0)
        while len(self.coeffs) > 1 and self.coeffs[-1] == zero:
            self.coeffs.pop()

    @property
    def degree(self):
        """다항식의 차수. 영 다항식의 차수는 0으로 정의한다."""
        return len(self.coeffs) - 1

    def is_zero(self):
        """영 다항식인지 확인."""
        return len(self.coeffs) == 1 and self.coeffs[0] == FR(0)

    def evaluate(self, point):
        """다항식을 주어진 점에서 평가한다 (Horner's method).

        Args:
            point: 평가할 FR 원소

        Returns:
            FR: p(point) 값
        """
        if not isinstance(point, FR):
            point = FR(point)
        result = FR(0)
        for coeff in reversed(self.coeffs):
            result = result * point + coeff
        return result

    def __add__(self, other):
        """다항식 덧셈: p(x) + q(x)."""
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        if len(self.coeffs) < len(other.coeffs):
            longer, shorter = other.coeffs, self.coeffs
        else:
            longer, shorter = self.coeffs, other.coeffs
        result = list(longer)
        for i, c in enumerate(shorter):
            result[i] = result[i] + c
        return Polynomial(result)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        """다항식 뺄셈: p(x) - q(x)."""
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return self + (-other)

    def __rsub__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return other.__sub__(self)

    def __neg__(self):
        """다항식 부호 반전: -p(x)."""
        return Polynomial([FR(0) - c for c in self.coeffs])

    def __mul__(self, other):
        """다항식 곱셈: p(x) · q(x) 또는 스칼라곱.

        다항식 × 스칼라: 각 계수에 스칼라를 곱함
        다항식 × 다항식: 짧은 쪽이 FFT_THRESHOLD 이하이면 나이브 곱셈,
                         아니면 FFT 기반 곱셈
        """
        if isinstance(other, (int, FR)):
            if isinstance(other, int):
                other = FR(other)
            return Polynomial([c * other for c in self.coeffs])
        if self.is_zero() or other.is_zero():
            return Polynomial.zero()
        if min(len(self.coeffs), len(other.coeffs)) <= FFT_THRESHOLD:
            return Polynomial(_naive_mul(self.coeffs, other.coeffs))
        return Polynomial(_fft_mul(self.coeffs, other.coeffs))

    def __rmul__(self, other):
        return self.__mul__(other)

    def __eq__(self, other):
        """다항식 동등 비교."""
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        if not isinstance(other, Polynomial):
            return False
        return self.coeffs == other.coeffs

    def __repr__(self):
        terms = []
        for i, c in enumerate(self.coeffs):
            if c == FR(0):
                continue
            if i == 0:
                terms.append(str(int(c)))
            elif i == 1:
                terms.append(f"{int(c)}*x")
            else:
                terms.append(f"{int(c)}*x^{i}")
        return "Poly(" + " + ".join(terms) + ")" if terms else "Poly(0)"

    def __len__(self):
        """계수 개수 반환 (차수 + 1)."""
        return len(self.coeffs)

    def scale_input(self, factor):
        """p(factor · x)를 반환한다.

        계수 변환: cᵢ → factorⁱ · cᵢ
        Round 3에서 z(ω·x)를 구성할 때 사용한다.
        """
        if not isinstance(factor, FR):
            factor = FR(factor)
        result = []
        power = FR(1)
        for c in self.coeffs:
            result.append(c * power)
            power = power * factor
        return Polynomial(result)

    def divide_by_vanishing(self, n):
        """소거 다항식 Z_H(x) = x^n - 1 로 나눈다.

        C(x) = q(x)·(x^n - 1) 이면 계수 사이에
            c_i = q_{i-n} - q_i
        가 성립하므로, 최고차부터 q_{i-n} = c_i + q_i 로 복원한다.
        나머지 r_i = c_i + q_i (i < n)가 모두 0이어야 한다.

        Args:
            n: 도메인 크기 (Z_H(x) = x^n - 1의 n)

        Returns:
            Polynomial: 몫 다항식

        Raises:
            ValueError: 나머지가 0이 아닌 경우 (제약 불만족)
        """
        coeffs = self.coeffs
        deg = len(coeffs) - 1
        zero = FR(0)
        if deg < n:
            if self.is_zero():
                return Polynomial.zero()
            raise ValueError("소거 다항식으로 나누어 떨어지지 않습니다 (제약 불만족)")

        quotient = [zero] * (deg - n + 1)
        for k in range(deg - n, -1, -1):
            upper = quotient[k + n] if k + n <= deg - n else zero
            quotient[k] = coeffs[k + n] + upper

        for i in range(n):
            q_i = quotient[i] if i < len(quotient) else zero
            if coeffs[i] + q_i != zero:
                raise ValueError("소거 다항식으로 나누어 떨어지지 않습니다 (제약 불만족)")
        return Polynomial(quotient)

    @classmethod
    def zero(cls):
        """영 다항식 p(x) = 0."""
        return cls([FR(0)])

    @classmethod
    def one(cls):
        """상수 다항식 p(x) = 1."""
        return cls([FR(1)])

    @classmethod
    def vanishing(cls, n):
        """소거 다항식 Z_H(x) = x^n - 1.

        도메인 H = {1, ω, ..., ω^(n-1)} 위의 모든 점에서 0이 되는 다항식.
        """
        coeffs = [FR(0)] * (n + 1)
        coeffs[0] = FR(-1)
        coeffs[n] = FR(1)
        return cls(coeffs)

    @classmethod
    def from_evaluations(cls, evals, omega):
        """평가값에서 다항식을 복원한다 (IFFT 사용).

        도메인 {1, ω, ω², ..., ω^(n-1)}에서의 평가값이 주어지면,
        이 값들을 보간하는 유일한 (n-1)차 이하 다항식을 반환한다.

        Args:
            evals: [p(1), p(ω), p(ω²), ...] FR 원소 리스트
            omega: n차 원시 단위근

        Returns:
            Polynomial: 보간된 다항식
        """
        return cls(ifft(evals, omega))


def _naive_mul(a, b):
    result = [FR(0)] * (len(a) + len(b) - 1)
    for i, x in enumerate(a):
        for j, y in enumerate(b):
            result[i + j] = result[i + j] + x * y
    return result


def _fft_mul(a, b):
    """FFT 기반 다항식 곱셈.

    결과 길이 L = len(a) + len(b) - 1 이상인 2의 거듭제곱 m을 골라
    m차 단위근에서 두 다항식을 평가하고, 점별 곱을 IFFT로 되돌린다.
    """
    length = len(a) + len(b) - 1
    m = 1
    while m < length:
        m <<= 1
    omega = get_root_of_unity(m)
    zero = FR(0)
    a_vals = fft(list(a) + [zero] * (m - len(a)), omega)
    b_vals = fft(list(b) + [zero] * (m - len(b)), omega)
    product = [x * y for x, y in zip(a_vals, b_vals)]
    return ifft(product, omega)[:length]


# ─────────────────────────────────────────────────────────────────────
# FFT / IFFT (Number Theoretic Transform)
# ─────────────────────────────────────────────────────────────────────

def fft(coeffs, omega):
    """Fast Fourier Transform (NTT): 계수 → 평가값.

    재귀적 Cooley-Tukey radix-2 알고리즘.

    알고리즘:
        1. n=1이면 계수를 그대로 반환
        2. 짝수/홀수 인덱스로 분리: even = [c₀, c₂, ...], odd = [c₁, c₃, ...]
        3. 재귀 호출: FFT(even, ω²), FFT(odd, ω²)
        4. 버터플라이 결합: y[k] = even[k] + ω^k · odd[k]
                           y[k+n/2] = even[k] - ω^k · odd[k]

    Args:
        coeffs: [c₀, c₁, ..., c_{n-1}] FR 원소 리스트 (길이는 2의 거듭제곱)
        omega: n차 원시 단위근

    Returns:
        list[FR]: [p(1), p(ω), p(ω²), ..., p(ω^{n-1})]
    """
    n = len(coeffs)
    if n == 1:
        return [coeffs[0] if isinstance(coeffs[0], FR) else FR(coeffs[0])]

    omega_sq = omega * omega
    even_vals = fft(coeffs[0::2], omega_sq)
    odd_vals = fft(coeffs[1::2], omega_sq)

    result = [None] * n
    omega_k = FR(1)
    half = n // 2
    for k in range(half):
        t = omega_k * odd_vals[k]
        result[k] = even_vals[k] + t
        result[k + half] = even_vals[k] - t
        omega_k = omega_k * omega

    return result


def ifft(evals, omega):
    """Inverse FFT (INTT): 평가값 → 계수.

    역 단위근 ω^{-1}로 FFT를 수행한 후 n으로 나눈다.

    Args:
        evals: [p(1), p(ω), ..., p(ω^{n-1})] FR 원소 리스트
        omega: n차 원시 단위근

    Returns:
        list[FR]: [c₀, c₁, ..., c_{n-1}] 계수 리스트
    """
    n = len(evals)
    omega_inv = FR(1) / omega
    coeffs = fft(evals, omega_inv)
    n_inv = FR(1) / FR(n)
    return [c * n_inv for c in coeffs]


# ─────────────────────────────────────────────────────────────────────
# 다항식 나눗셈 (Polynomial Long Division)
# ─────────────────────────────────────────────────────────────────────

def poly_div(a, b):
    """다항식 나눗셈: a(x) = b(x) · q(x) + r(x).

    긴 나눗셈(long division) 알고리즘으로 몫 q(x)와 나머지 r(x)를 계산한다.
    Round 5에서 (p(x) - p(ζ)) / (x - ζ) 계산에 사용된다.

    Args:
        a: 피제수 다항식 (Polynomial)
        b: 제수 다항식 (Polynomial)

    Returns:
        tuple: (몫 Polynomial, 나머지 Polynomial)

    Raises:
        ValueError: 제수가 영 다항식인 경우
    """
    if b.is_zero():
        raise ValueError("0으로 나눌 수 없습니다")

    remainder = list(a.coeffs)
    divisor = b.coeffs
    deg_b = len(divisor) - 1
    deg_a = len(remainder) - 1

    if deg_a < deg_b:
        return Polynomial.zero(), Polynomial(remainder)

    quotient = [FR(0)] * (deg_a - deg_b + 1)
    lead_inv = FR(1) / divisor[-1]

    for i in range(deg_a - deg_b, -1, -1):
        coeff = remainder[i + deg_b] * lead_inv
        quotient[i] = coeff
        if coeff == FR(0):
            continue
        for j in range(deg_b + 1):
            remainder[i + j] = remainder[i + j] - coeff * divisor[j]

    return Polynomial(quotient), Polynomial(remainder[:deg_b] or [FR(0)])

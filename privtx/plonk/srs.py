"""
PLONK Structured Reference String (SRS)
=========================================

범용(universal) 신뢰 설정(trusted setup)을 생성한다.

  SRS = {
      G1 powers: [G1, τ·G1, τ²·G1, ..., τ^d·G1]
      G2 powers: [G2, τ·G2]
  }

**보안**:
  τ를 아는 사람은 임의의 거짓 증명을 만들 수 있다.
  seed를 주면 결정론적으로 생성되므로 테스트와 재현용으로만 써야 하며,
  운영 키는 seed 없이 (secrets 기반 τ) 생성한다.

사용 예시:
    >>> srs = SRS.generate(max_degree=16, seed=42)
    >>> len(srs.g1_powers)  # 17 (0차부터 16차까지)
"""

import hashlib
import secrets

from privtx.plonk.field import FR, G1, G2, ec_mul, ec_pairing, CURVE_ORDER


class SRS:
    """Structured Reference String: KZG 커밋먼트용 공개 파라미터.

    속성:
        g1_powers: [G1, τ·G1, τ²·G1, ..., τ^d·G1]
        g2_powers: [G2, τ·G2]
        max_degree: 지원하는 최대 다항식 차수 d
    """

    def __init__(self, g1_powers, g2_powers, max_degree):
        self.g1_powers = g1_powers
        self.g2_powers = g2_powers
        self.max_degree = max_degree

    @classmethod
    def generate(cls, max_degree, seed=None):
        """SRS를 생성한다.

        Args:
            max_degree: 지원할 최대 다항식 차수.
                        PLONK에서 필요한 최대 차수는 약 3n+5 (n: 게이트 수).
            seed: 결정론적 생성을 위한 시드 (테스트용). None이면 무작위 τ.

        Returns:
            SRS: 생성된 구조화 참조 문자열
        """
        if seed is not None:
            h = hashlib.sha256(str(seed).encode()).digest()
            tau_int = int.from_bytes(h, "big") % CURVE_ORDER
        else:
            tau_int = secrets.randbelow(CURVE_ORDER - 1) + 1
        tau = FR(tau_int)

        # τ^i·G1 = τ · (τ^{i-1}·G1) 로 누적하면 각 항이 한 번의 스칼라 곱이다
        g1_powers = [G1]
        for _ in range(max_degree):
            g1_powers.append(ec_mul(g1_powers[-1], tau))

        g2_powers = [G2, ec_mul(G2, tau)]

        return cls(g1_powers, g2_powers, max_degree)

    def check_consistency(self, samples=2):
        """처음 몇 개의 G1 거듭제곱이 같은 τ에서 나왔는지 페어링으로 확인한다.

        e(τ^{i+1}·G1, G2) == e(τ^i·G1, τ·G2)

        디스크에서 읽은 SRS가 손상되지 않았는지 가볍게 점검할 때 쓴다.
        """
        for i in range(min(samples, self.max_degree)):
            lhs = ec_pairing(self.g2_powers[0], self.g1_powers[i + 1])
            rhs = ec_pairing(self.g2_powers[1], self.g1_powers[i])
            if lhs != rhs:
                return False
        return True
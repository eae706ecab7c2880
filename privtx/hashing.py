"""
회로 친화적 해시 (MiMC-x⁵, Miyaguchi–Preneel 모드)
====================================================

잔액 커밋먼트, 널리파이어, 블라인드 수신자 태그에 쓰이는 2-입력 해시.

**키 순열 E_k(x)**:
  rounds번 반복:  x ← (x + k + cᵢ)^5

  BN254 스칼라 필드에서 gcd(5, p-1) = 1 이므로 x ↦ x^5 는 전단사이고,
  라운드당 곱셈 게이트 3개(제곱, 제곱, 곱)로 회로에 옮길 수 있다.

**압축 함수 (Miyaguchi–Preneel)**:
  H(x, k) = E_k(x) + x + k

**라운드 상수**:
  cᵢ = SHA-256(domain_tag ‖ i) mod p
  상수는 라운드 수와 무관하게 앞에서부터 같으므로, 테스트용 축소 라운드
  인스턴스도 같은 상수열의 앞부분을 쓴다.

**라운드 수**:
  기본 110 = ⌈log₅ p⌉. 라운드 수를 줄인 인스턴스는 테스트 전용이며,
  커밋먼트를 만드는 쪽과 회로가 반드시 같은 라운드 수를 써야 한다.

사용 예시:
    >>> h = MiMCHash()
    >>> h(FR(10), FR(7))
"""

import hashlib
from functools import lru_cache

from privtx.plonk.field import FR, CURVE_ORDER


DEFAULT_ROUNDS = 110
DOMAIN_TAG = b"privtx/mimc5"


@lru_cache(maxsize=8)
def round_constants(rounds, tag=DOMAIN_TAG):
    """라운드 상수 [c₀, ..., c_{rounds-1}] (FR 튜플)."""
    constants = []
    for i in range(rounds):
        digest = hashlib.sha256(tag + i.to_bytes(4, "big")).digest()
        constants.append(FR(int.from_bytes(digest, "big") % CURVE_ORDER))
    return tuple(constants)


class MiMCHash:
    """키 있는 MiMC-x⁵ 순열과 Miyaguchi–Preneel 압축 함수.

    속성:
        rounds: 라운드 수
        constants: 라운드 상수 튜플
    """

    def __init__(self, rounds=DEFAULT_ROUNDS):
        if rounds < 1:
            raise ValueError(f"라운드 수는 1 이상이어야 합니다: {rounds}")
        self.rounds = rounds
        self.constants = round_constants(rounds)

    def permute(self, x, k):
        """E_k(x)."""
        x = x if isinstance(x, FR) else FR(x)
        k = k if isinstance(k, FR) else FR(k)
        for c in self.constants:
            s = x + k + c
            s2 = s * s
            x = s2 * s2 * s
        return x

    def hash(self, x, k):
        """H(x, k) = E_k(x) + x + k."""
        x = x if isinstance(x, FR) else FR(x)
        k = k if isinstance(k, FR) else FR(k)
        return self.permute(x, k) + x + k

    __call__ = hash

    def __repr__(self):
        return f"MiMCHash(rounds={self.rounds})"

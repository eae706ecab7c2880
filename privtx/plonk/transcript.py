"""
PLONK Fiat-Shamir Transcript
==============================

비대화식(non-interactive) 변환을 위한 Fiat-Shamir 해싱 구현.

Prover와 Verifier는 같은 순서로 같은 데이터를 트랜스크립트에 넣고,
지금까지의 모든 메시지를 해시해서 챌린지를 얻는다.

**챌린지 순서**:
  공개 입력 → Round 1 → β, γ → Round 2 → α → Round 3 → ζ
  → Round 4 → v → (Verifier 전용) [W_ζ], [W_ζω] → u

공개 입력을 가장 먼저 흡수하므로, 공개 신호를 하나라도 바꾸면
모든 챌린지가 달라지고 증명은 검증을 통과하지 못한다.

사용 예시:
    >>> t = Transcript()
    >>> t.append_point(b"a_comm", commitment)
    >>> beta = t.challenge_scalar(b"beta")
"""

import hashlib

from privtx.plonk.field import FR, CURVE_ORDER, to_affine


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    속성:
        state: 현재까지 누적된 해시 입력 바이트열
    """

    def __init__(self, label=b"privtx-plonk"):
        self.state = bytearray()
        self.state.extend(label)

    def append_scalar(self, label, scalar):
        """FR 스칼라 값을 32바이트 빅엔디안으로 추가한다."""
        self.state.extend(label)
        val = int(scalar) % CURVE_ORDER
        self.state.extend(val.to_bytes(32, "big"))

    def append_point(self, label, point):
        """G1 점을 아핀 좌표 (x, y) 64바이트로 추가한다.

        사영 좌표는 같은 점에 대해 여러 표현을 가지므로 반드시 정규화한다.
        무한원점은 (0, 0), 즉 64바이트의 0이 된다.
        """
        self.state.extend(label)
        x, y = to_affine(point)
        self.state.extend(x.to_bytes(32, "big"))
        self.state.extend(y.to_bytes(32, "big"))

    def challenge_scalar(self, label):
        """트랜스크립트로부터 챌린지 스칼라를 생성한다.

        생성된 해시는 상태에 다시 추가된다 (체이닝).

        Returns:
            FR: 챌린지 스칼라
        """
        self.state.extend(label)
        h = hashlib.sha256(bytes(self.state)).digest()
        challenge = FR(int.from_bytes(h, "big") % CURVE_ORDER)
        self.state.extend(h)
        return challenge

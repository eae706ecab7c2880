"""
정산 페이로드 (Settlement Payload)
===================================

정산 원장이 받는 고정 길이 숫자 배열.

  proof:          24개 = 9개의 G1 점 (x, y) + 6개의 평가값
  public_signals: 8개  = transfer_circuit.PUBLIC_SIGNALS 순서

원소는 정수, 10진 문자열, 0x 16진 문자열 중 하나로 받는다.
형식이 맞지 않으면 추측하지 않고 MalformedProofError를 던진다.
"""

from collections import namedtuple

from privtx.plonk.field import CURVE_ORDER
from privtx.plonk.prover import Proof
from privtx.transfer_circuit import PUBLIC_SIGNALS, NUM_PUBLIC_SIGNALS
from privtx.errors import MalformedProofError


PROOF_LENGTH = Proof.NUM_ELEMENTS


def _parse_element(value, what, index):
    if isinstance(value, bool):
        raise MalformedProofError(f"{what}[{index}]가 정수가 아닙니다")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                result = int(text, 16)
            else:
                result = int(text, 10)
        except ValueError:
            raise MalformedProofError(f"{what}[{index}]를 정수로 읽을 수 없습니다") from None
    else:
        raise MalformedProofError(f"{what}[{index}]가 정수가 아닙니다")
    if result < 0:
        raise MalformedProofError(f"{what}[{index}]가 음수입니다")
    return result


def _parse_array(values, length, what):
    if isinstance(values, (str, bytes, dict)) or not hasattr(values, "__len__"):
        raise MalformedProofError(f"{what}는 길이 {length}의 배열이어야 합니다")
    if len(values) != length:
        raise MalformedProofError(
            f"{what}는 {length}개여야 합니다 (받은 개수: {len(values)})"
        )
    return [_parse_element(v, what, i) for i, v in enumerate(values)]


class SettlementPayload(namedtuple("SettlementPayload", ["proof", "public_signals"])):
    """(24개 증명 원소, 8개 공개 신호) 정수 튜플 쌍."""

    __slots__ = ()

    @classmethod
    def build(cls, proof, public_signals):
        """증명과 공개 신호를 정산 형식으로 변환한다.

        Args:
            proof: Proof 객체 또는 24개의 원소
            public_signals: 8개의 원소

        Raises:
            MalformedProofError: 길이·형식·범위가 맞지 않거나 점이 곡선 위에 없을 때
        """
        if isinstance(proof, Proof):
            elements = proof.to_elements()
        else:
            elements = _parse_array(proof, PROOF_LENGTH, "proof")
            try:
                Proof.from_elements(elements)
            except ValueError as e:
                raise MalformedProofError(str(e)) from e

        signals = _parse_array(public_signals, NUM_PUBLIC_SIGNALS, "publicSignals")
        for name, value in zip(PUBLIC_SIGNALS, signals):
            if value >= CURVE_ORDER:
                raise MalformedProofError(f"{name} 신호가 스칼라 필드 범위를 벗어났습니다")

        return cls(tuple(elements), tuple(signals))

    def signal(self, name):
        """이름으로 공개 신호를 읽는다."""
        return self.public_signals[PUBLIC_SIGNALS.index(name)]

    def to_proof(self):
        return Proof.from_elements(self.proof)

    def to_dict(self):
        return {
            "proof": [str(e) for e in self.proof],
            "publicSignals": [str(s) for s in self.public_signals],
        }

"""
커밋먼트 / 널리파이어 엔진
===========================

송금 회로가 증명하는 관계를 평문으로 계산하는 기준 구현.
오케스트레이터는 증명 전에 이 엔진으로 witness와 기대 공개 신호를 만들고,
백엔드가 돌려준 공개 신호를 이 결과와 대조한다.

**대수**:
  commit(B, S)          = H(B, S)
  derive_nullifier(C, S) = H(C, S)
  newCommitment          = commit(newBalance, S)

**송금 판정** (valid):
  transferAmount > 0
  transferAmount ≤ senderBalance
  transferAmount ≤ maxAmount
  assetId ≠ 0
  판정이 거짓이면 newBalance = senderBalance (잔액 불변)이며 예외가 아니다.

**무결성**:
  balanceCommitment ≠ commit(senderBalance, salt) 는 valid = 0 이 아니라
  CommitmentMismatchError로 즉시 중단한다. 회로에서도 이 등식은
  copy constraint로 강제되어, 만족하는 witness 자체가 존재하지 않는다.
"""

from collections import namedtuple

from privtx.plonk.field import FR, CURVE_ORDER
from privtx.hashing import MiMCHash, DEFAULT_ROUNDS
from privtx.errors import InputError, CommitmentMismatchError


TransferEvaluation = namedtuple(
    "TransferEvaluation", ["valid", "new_balance", "new_commitment", "nullifier"]
)


def _field_int(name, value):
    if isinstance(value, FR):
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(f"{name}은(는) 정수여야 합니다", field=name)
    if value < 0:
        raise InputError(f"{name}은(는) 음수일 수 없습니다", field=name)
    if value >= CURVE_ORDER:
        raise InputError(f"{name}이(가) 스칼라 필드 범위를 벗어났습니다", field=name)
    return value


class CommitmentEngine:
    """커밋먼트·널리파이어·송금 판정.

    Args:
        hasher: MiMCHash 인스턴스 (기본: 110 라운드)
    """

    def __init__(self, hasher=None, rounds=DEFAULT_ROUNDS):
        self.hasher = hasher or MiMCHash(rounds)

    def commit(self, balance, salt):
        """C = H(balance, salt). 같은 opening에 대해 결정론적이다."""
        balance = _field_int("balance", balance)
        salt = _field_int("salt", salt)
        return int(self.hasher(FR(balance), FR(salt)))

    def derive_nullifier(self, commitment, salt):
        """N = H(commitment, salt).

        커밋먼트 값만이 아니라 opening(salt)의 함수이므로,
        커밋먼트를 본 제3자는 널리파이어를 미리 계산할 수 없다.
        """
        commitment = _field_int("commitment", commitment)
        salt = _field_int("salt", salt)
        return int(self.hasher(FR(commitment), FR(salt)))

    def evaluate_transfer(self, sender_balance, transfer_amount, asset_id,
                          max_amount, balance_commitment, salt):
        """송금을 평가한다.

        Returns:
            TransferEvaluation(valid, new_balance, new_commitment, nullifier)

        Raises:
            InputError: 음수·비정수·필드 범위 밖의 입력
            CommitmentMismatchError: balance_commitment가 (sender_balance, salt)의
                                     커밋먼트가 아닐 때
        """
        sender_balance = _field_int("senderBalance", sender_balance)
        transfer_amount = _field_int("transferAmount", transfer_amount)
        asset_id = _field_int("assetId", asset_id)
        max_amount = _field_int("maxAmount", max_amount)
        balance_commitment = _field_int("balanceCommitment", balance_commitment)
        salt = _field_int("salt", salt)

        if self.commit(sender_balance, salt) != balance_commitment:
            raise CommitmentMismatchError(
                "balanceCommitment가 senderBalance와 salt의 커밋먼트와 일치하지 않습니다"
            )

        valid = (
            transfer_amount > 0
            and transfer_amount <= sender_balance
            and transfer_amount <= max_amount
            and asset_id != 0
        )
        new_balance = sender_balance - transfer_amount if valid else sender_balance

        return TransferEvaluation(
            valid=1 if valid else 0,
            new_balance=new_balance,
            new_commitment=self.commit(new_balance, salt),
            nullifier=self.derive_nullifier(balance_commitment, salt),
        )


_default_engine = None


def default_engine():
    global _default_engine
    if _default_engine is None:
        _default_engine = CommitmentEngine()
    return _default_engine


def commit(balance, salt):
    return default_engine().commit(balance, salt)


def derive_nullifier(commitment, salt):
    return default_engine().derive_nullifier(commitment, salt)


def evaluate_transfer(sender_balance, transfer_amount, asset_id, max_amount,
                      balance_commitment, salt):
    return default_engine().evaluate_transfer(
        sender_balance, transfer_amount, asset_id, max_amount, balance_commitment, salt
    )

"""
오류 계층 (Error Taxonomy)
===========================

모든 예외는 PrivateTransferError를 상속하고 두 개의 고정 문자열을 가진다.

  category  HTTP 상태와 재시도 정책을 정하는 상위 분류 (아래 표)
  kind      클라이언트가 분기하는 구체적인 사유. 정산 오류는 클래스마다
            다르고 (nullifier_replay, asset_not_whitelisted, malformed_proof ...),
            나머지는 category와 같다.

  | category    | 의미                                         |
  |-------------|----------------------------------------------|
  | input       | 암호 연산 전에 거부된 잘못된 요청             |
  | integrity   | 잔액·salt가 커밋먼트와 맞지 않음             |
  | backend     | 증명 백엔드 오류 (retryable로 일시/환경 구분) |
  | internal    | 회로와 백엔드의 불일치 (버그)                 |
  | settlement  | 정산 상태 전이 거부 (상태는 바뀌지 않음)      |

송금 조건 위반(valid = 0)은 예외가 아니라 ProofResult의 필드이다.
"""


class PrivateTransferError(Exception):
    """privtx 오류의 기반 클래스."""

    kind = "error"
    category = "error"

    def __init__(self, message="", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        """HTTP 응답용 표현."""
        body = {
            "error": self.kind,
            "category": self.category,
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class InputError(PrivateTransferError):
    """요청 형식 오류."""

    kind = "input"
    category = "input"

    def __init__(self, message, field=None):
        if field is not None:
            super().__init__(message, field=field)
        else:
            super().__init__(message)
        self.field = field


class CommitmentMismatchError(PrivateTransferError):
    """balanceCommitment ≠ commit(senderBalance, salt)."""

    kind = "integrity"
    category = "integrity"


# ── 백엔드 ──

class BackendError(PrivateTransferError):
    kind = "backend"
    category = "backend"
    retryable = False


class ArtifactError(BackendError):
    """증명/검증 키가 없거나 손상됨. 재시도해도 해결되지 않는다."""

    retryable = False


class ProvingError(BackendError):
    """증명 생성 중 일시적 실패."""

    retryable = True


class ProofTimeoutError(ProvingError):
    """증명 생성이 제한 시간을 넘김."""


class InternalInconsistencyError(PrivateTransferError):
    """생성 직후의 증명이 자체 검증에 실패했거나, 백엔드의 공개 신호가
    엔진 계산과 다르다. 회로나 키가 잘못된 경우에만 발생한다."""

    kind = "internal"
    category = "internal"


# ── 정산 ──

class SettlementError(PrivateTransferError):
    kind = "settlement"
    category = "settlement"


class MalformedProofError(SettlementError):
    """증명 원소 24개 / 공개 신호 8개 형식이 아님."""

    kind = "malformed_proof"


class InvalidProofError(SettlementError):
    """증명 검증 실패."""

    kind = "invalid_proof"


class TransferNotValidError(SettlementError):
    """valid 신호가 1이 아님."""

    kind = "transfer_not_valid"


class AssetNotWhitelistedError(SettlementError):
    kind = "asset_not_whitelisted"


class NullifierReplayError(SettlementError):
    """이미 사용된 널리파이어."""

    kind = "nullifier_replay"


class RecipientTagInUseError(SettlementError):
    """같은 수신자 태그로 대기 중인 송금이 이미 있음."""

    kind = "recipient_tag_in_use"


class EmptyTransferError(SettlementError):
    """송금 금액이 0."""

    kind = "empty_transfer"


class TransferNotFoundError(SettlementError):
    kind = "transfer_not_found"


class AlreadyClaimedError(SettlementError):
    kind = "already_claimed"


class UnauthorizedClaimError(SettlementError):
    """청구자가 수신자 태그를 열지 못함."""

    kind = "unauthorized_claim"


class InsufficientFundsError(SettlementError):
    kind = "insufficient_funds"


class InsufficientReserveError(SettlementError):
    """원장 적립금이 청구 금액보다 적음."""

    kind = "insufficient_reserve"

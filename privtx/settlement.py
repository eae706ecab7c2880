"""
정산 상태 기계 (Settlement Ledger)
===================================

증명을 받아 원장 상태를 바꾸는 유일한 주체. TinyDB에 저장한다.

**상태**:
  널리파이어      Unused → Consumed          (되돌릴 수 없음)
  대기 송금       Created → Claimed          (되돌릴 수 없음, 삭제하지 않음)
  금액이 0인 대기 송금은 존재하지 않는 것으로 본다.

**submit_transfer 검사 순서**:
  1. 형식 (24 + 8)          MalformedProofError
  2. 증명 검증              InvalidProofError
  3. valid == 1             TransferNotValidError
  4. 자산 화이트리스트      AssetNotWhitelistedError
  5. 널리파이어 미사용      NullifierReplayError
  6. 수신자 태그 미사용     RecipientTagInUseError
  7. 금액 ≠ 0               EmptyTransferError
  모두 통과하면 널리파이어 기록, 대기 송금 생성, 이벤트 추가를 한 번에 한다.

**원자성**:
  모든 상태 전이는 하나의 락 안에서 검사 후 기록하고, CachingMiddleware를
  쓰는 경우 전이가 끝날 때 한 번만 flush한다. 검사가 하나라도 실패하면
  아무것도 기록하지 않는다. 비싼 증명 검증(페어링)은 락 밖에서 한다.

**두 개의 원장**:
  예치 잔액(deposit/withdraw)과 커밋먼트 기반 송금(transfer/claim)은
  암호학적으로 연결되지 않은 별도 장부이다. 청구 금액은 원장이 보유한
  적립금(reserve)에서 지급되며, 적립금이 모자라면 청구는 실패한다.

**테이블**:
  nullifiers, pending_transfers, balances, whitelist, events, meta
"""

import logging
import threading
import time

from tinydb import TinyDB, Query
from tinydb.storages import JSONStorage, MemoryStorage
from tinydb.middlewares import CachingMiddleware

from privtx.errors import (
    AlreadyClaimedError,
    ArtifactError,
    AssetNotWhitelistedError,
    EmptyTransferError,
    InputError,
    InsufficientFundsError,
    InsufficientReserveError,
    InvalidProofError,
    NullifierReplayError,
    RecipientTagInUseError,
    TransferNotFoundError,
    TransferNotValidError,
    UnauthorizedClaimError,
)
from privtx.payload import SettlementPayload
from privtx.recipient import TAG_SCHEMES, is_valid_address, opens_tag


logger = logging.getLogger(__name__)

DATA = Query()

RESERVE_KEY = "reserve"


def _positive_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InputError("amount는 정수여야 합니다", field="amount")
    if amount <= 0:
        raise InputError("amount는 양수여야 합니다", field="amount")
    return amount


def _integral(name, value):
    """0 이상의 정수 또는 10진 문자열. bool과 실수는 버림 없이 거부한다."""
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(f"{name}는 정수여야 합니다", field=name)
    if value < 0:
        raise InputError(f"{name}는 음수일 수 없습니다", field=name)
    return value


def _tag(value):
    return _integral("recipientTag", value)


def _account(name, account):
    if not is_valid_address(account):
        raise InputError(f"{name}은(는) 올바른 이더리움 주소여야 합니다", field=name)
    return account.lower()


class SettlementLedger:
    """정산 원장.

    Args:
        verifier: verify(public_signals, proof) -> bool 을 가진 객체 (PlonkBackend).
                  None이면 관리·조회만 가능하다
        db: TinyDB (기본: 메모리 DB)
        tag_scheme: 청구 시 수신자 태그를 여는 방식
        hasher: blinded 태그를 열 때 쓸 MiMCHash (기본: verifier.hasher)
        clock: createdAt 시각 함수 (테스트용)
    """

    def __init__(self, verifier, db=None, tag_scheme="address", hasher=None, clock=time.time):
        if tag_scheme not in TAG_SCHEMES:
            raise ValueError(f"알 수 없는 태그 방식입니다: {tag_scheme!r}")
        self.verifier = verifier
        self.db = db if db is not None else TinyDB(storage=MemoryStorage)
        self.tag_scheme = tag_scheme
        self.hasher = hasher if hasher is not None else getattr(verifier, "hasher", None)
        self.clock = clock
        self._lock = threading.RLock()

        self.nullifiers = self.db.table("nullifiers")
        self.pending = self.db.table("pending_transfers")
        self.balances = self.db.table("balances")
        self.whitelist = self.db.table("whitelist")
        self.event_log = self.db.table("events")
        self.meta = self.db.table("meta")

    @classmethod
    def open(cls, path, verifier, **kwargs):
        """JSON 파일 원장을 연다 (쓰기는 전이마다 한 번 flush)."""
        db = TinyDB(path, storage=CachingMiddleware(JSONStorage))
        return cls(verifier, db=db, **kwargs)

    def close(self):
        with self._lock:
            self.db.close()

    def _flush(self):
        storage = self.db.storage
        if hasattr(storage, "flush"):
            storage.flush()

    def _emit(self, event, **args):
        self.event_log.insert({
            "event": event,
            "args": {k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v
                     for k, v in args.items()},
            "timestamp": int(self.clock()),
        })

    # ── 내부 읽기 (락 안에서 호출) ──

    def _reserve(self):
        doc = self.meta.get(DATA.key == RESERVE_KEY)
        return int(doc["value"]) if doc else 0

    def _set_reserve(self, value):
        self.meta.upsert({"key": RESERVE_KEY, "value": str(value)}, DATA.key == RESERVE_KEY)

    def _balance(self, account):
        doc = self.balances.get(DATA.account == account)
        return int(doc["amount"]) if doc else 0

    def _set_balance(self, account, value):
        self.balances.upsert({"account": account, "amount": str(value)}, DATA.account == account)

    def _pending(self, tag):
        doc = self.pending.get(DATA.tag == str(tag))
        if doc is None or int(doc["amount"]) == 0:
            return None
        return doc

    def _whitelisted(self, asset_id):
        doc = self.whitelist.get(DATA.assetId == str(asset_id))
        return bool(doc and doc["allowed"])

    # ── 관리 ──

    def set_asset_whitelist(self, asset_id, allowed=True):
        """자산을 화이트리스트에 넣거나 뺀다."""
        if isinstance(asset_id, bool) or not isinstance(asset_id, int) or asset_id <= 0:
            raise InputError("assetId는 양의 정수여야 합니다", field="assetId")
        with self._lock:
            self.whitelist.upsert(
                {"assetId": str(asset_id), "allowed": bool(allowed)},
                DATA.assetId == str(asset_id),
            )
            self._emit("AssetWhitelisted", assetId=asset_id, allowed=bool(allowed))
            self._flush()
        logger.info("자산 화이트리스트 변경: assetId=%d, allowed=%s", asset_id, bool(allowed))

    # ── 송금 제출 ──

    def submit_transfer(self, proof, public_signals):
        """증명을 소비하고 대기 송금을 만든다.

        Args:
            proof: Proof 또는 24개의 원소
            public_signals: 8개의 원소

        Returns:
            dict: 생성된 대기 송금 (tag, amount, assetId, createdAt, claimed)

        Raises:
            SettlementError 하위 클래스 (상태는 바뀌지 않음)
        """
        if self.verifier is None:
            raise ArtifactError("검증 키 없이 송금을 정산할 수 없습니다")
        payload = SettlementPayload.build(proof, public_signals)

        if not self.verifier.verify(list(payload.public_signals), payload.to_proof()):
            raise InvalidProofError("증명 검증에 실패했습니다")

        if payload.signal("valid") != 1:
            raise TransferNotValidError("valid 신호가 1이 아닌 송금은 정산할 수 없습니다")

        asset_id = payload.signal("assetId")
        nullifier = payload.signal("nullifier")
        tag = payload.signal("recipientTag")
        amount = payload.signal("newBalance")

        with self._lock:
            if not self._whitelisted(asset_id):
                raise AssetNotWhitelistedError(
                    "화이트리스트에 없는 자산입니다", assetId=str(asset_id)
                )
            if self.nullifiers.contains(DATA.nullifier == str(nullifier)):
                raise NullifierReplayError("이미 사용된 널리파이어입니다")
            if self._pending(tag) is not None:
                raise RecipientTagInUseError("이 수신자 태그로 이미 대기 중인 송금이 있습니다")
            if amount == 0:
                raise EmptyTransferError("금액이 0인 송금은 정산할 수 없습니다")

            created_at = int(self.clock())
            record = {
                "tag": str(tag),
                "amount": str(amount),
                "assetId": str(asset_id),
                "createdAt": created_at,
                "claimed": False,
            }
            self.nullifiers.insert({"nullifier": str(nullifier), "usedAt": created_at})
            self.pending.insert(record)
            self._emit("NullifierUsed", nullifier=nullifier)
            self._emit("PrivateTransfer", recipientTag=tag, amount=amount, assetId=asset_id)
            self._flush()

        logger.info(
            "송금 정산: nullifier=%s..., assetId=%d", hex(nullifier)[:18], asset_id
        )
        return dict(record)

    # ── 청구 ──

    def claim_transfer(self, recipient_tag, claimant, blinding=None):
        """대기 송금을 청구한다. 금액은 적립금에서 지급된다.

        Args:
            recipient_tag: 대기 송금의 키
            claimant: 청구자 주소 (태그를 열어야 한다)
            blinding: blinded 방식일 때 태그의 blinding 값

        Returns:
            int: 지급된 금액
        """
        tag = _tag(recipient_tag)
        if blinding is not None:
            blinding = _integral("recipientBlinding", blinding)
        with self._lock:
            doc = self._pending(tag)
            if doc is None:
                raise TransferNotFoundError("대기 중인 송금이 없습니다")
            if doc["claimed"]:
                raise AlreadyClaimedError("이미 청구된 송금입니다")
            if not opens_tag(tag, claimant, self.tag_scheme, blinding, self.hasher):
                raise UnauthorizedClaimError("청구자가 수신자 태그와 일치하지 않습니다")

            amount = int(doc["amount"])
            reserve = self._reserve()
            if reserve < amount:
                raise InsufficientReserveError(
                    "원장 적립금이 청구 금액보다 적습니다",
                    reserve=str(reserve), amount=str(amount),
                )

            self.pending.update(
                {"claimed": True, "claimedBy": claimant.lower(),
                 "claimedAt": int(self.clock())},
                DATA.tag == str(tag),
            )
            self._set_reserve(reserve - amount)
            self._emit("TransferClaimed", recipientTag=tag, claimant=claimant.lower(),
                       amount=amount)
            self._flush()

        logger.info("송금 청구 완료: claimant=%s", claimant.lower())
        return amount

    # ── 예치 / 인출 ──

    def deposit(self, account, amount):
        """평문 예치. 예치금은 계정 잔액과 적립금을 함께 늘린다."""
        account = _account("account", account)
        amount = _positive_amount(amount)
        with self._lock:
            balance = self._balance(account) + amount
            self._set_balance(account, balance)
            self._set_reserve(self._reserve() + amount)
            self._emit("Deposit", account=account, amount=amount)
            self._flush()
        return balance

    def withdraw(self, account, amount, recipient):
        """계정 잔액에서 recipient에게 인출한다.

        Raises:
            InsufficientFundsError: 계정 잔액이 부족할 때
            InsufficientReserveError: 적립금이 부족할 때 (청구로 줄어든 경우)
        """
        account = _account("account", account)
        recipient = _account("recipient", recipient)
        amount = _positive_amount(amount)
        with self._lock:
            balance = self._balance(account)
            if balance < amount:
                raise InsufficientFundsError(
                    "예치 잔액이 부족합니다", balance=str(balance), amount=str(amount)
                )
            reserve = self._reserve()
            if reserve < amount:
                raise InsufficientReserveError("원장 적립금이 부족합니다")
            self._set_balance(account, balance - amount)
            self._set_reserve(reserve - amount)
            self._emit("Withdrawal", account=account, recipient=recipient, amount=amount)
            self._flush()
        return balance - amount

    # ── 조회 ──

    def get_pending_transfer(self, recipient_tag):
        """대기 송금 (없거나 금액 0이면 None)."""
        with self._lock:
            doc = self._pending(_tag(recipient_tag))
        if doc is None:
            return None
        return {
            "tag": doc["tag"],
            "amount": int(doc["amount"]),
            "assetId": int(doc["assetId"]),
            "createdAt": doc["createdAt"],
            "claimed": doc["claimed"],
        }

    def is_nullifier_used(self, nullifier):
        with self._lock:
            return self.nullifiers.contains(DATA.nullifier == str(int(nullifier)))

    def is_asset_whitelisted(self, asset_id):
        with self._lock:
            return self._whitelisted(int(asset_id))

    def get_balance(self, account):
        with self._lock:
            return self._balance(_account("account", account))

    def get_reserve(self):
        with self._lock:
            return self._reserve()

    def events(self, name=None):
        """이벤트 로그 (추가된 순서)."""
        with self._lock:
            docs = self.event_log.all()
        if name is not None:
            docs = [d for d in docs if d["event"] == name]
        return [dict(d) for d in docs]

"""
증명 오케스트레이터 (Proof Orchestrator)
=========================================

송금 요청을 검증된 증명과 공개 신호로 바꾼다.

**파이프라인**:
  1. build_witness: 요청 형식 검증 (암호 연산 전), 수신자 태그, salt
  2. 엔진: balanceCommitment 계산(없으면), 무결성 검사, 기대 공개 신호
  3. 백엔드 prove → 공개 신호를 엔진 결과와 대조
  4. 재검증 (항상). 실패하면 CRITICAL 로그 + InternalInconsistencyError

**결과 채널**:
  valid = 0 (잔액 부족, 한도 초과, 자산 0)   → ProofResult.valid, 예외 아님
  입력/무결성/백엔드/내부 오류                 → PrivateTransferError 하위 클래스

**동시성**:
  증명 생성은 CPU 코어 수 크기의 ThreadPoolExecutor에서 실행된다.
  인스턴스 간에 공유되는 상태는 없고, 통계(ProofStats)만 락으로 보호한다.
  제한 시간을 넘긴 작업은 중단하지 않으며 호출자가 결과를 버린다.

사용 예시:
    >>> orch = ProofOrchestrator.from_artifacts("keys")
    >>> result = orch.generate_proof({
    ...     "senderBalance": 6000, "transferAmount": 95,
    ...     "recipientAddress": "0x" + "ab" * 20,
    ...     "assetId": 1998, "maxAmount": 12000,
    ... })
    >>> result.valid, result.new_balance
    (1, 5905)
"""

import logging
import os
import re
import secrets
import threading
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

from privtx.plonk.field import CURVE_ORDER
from privtx.plonk.prover import Proof
from privtx.backend import PlonkBackend
from privtx.commitment import CommitmentEngine
from privtx.errors import (
    ArtifactError,
    InputError,
    InternalInconsistencyError,
    MalformedProofError,
    ProofTimeoutError,
)
from privtx.payload import SettlementPayload
from privtx.recipient import TAG_SCHEMES, is_valid_address, recipient_tag
from privtx.serializers import deserialize_proof, serialize_proof
from privtx.transfer_circuit import PUBLIC_SIGNALS, TransferWitness


logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("senderBalance", "transferAmount", "recipientAddress", "assetId", "maxAmount")

DEFAULT_PROOF_TIMEOUT = 120.0

_INT_RE = re.compile(r"^-?\d+$")


# ─────────────────────────────────────────────────────────────────────
# 통계
# ─────────────────────────────────────────────────────────────────────

class ProofStats:
    """증명 생성 통계. 여러 작업 스레드가 동시에 기록하므로 락으로 보호한다."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        with self._lock:
            self._total = 0
            self._successful = 0
            self._failed = 0
            self._total_time = 0.0

    def record_success(self, duration_ms):
        with self._lock:
            self._total += 1
            self._successful += 1
            self._total_time += duration_ms

    def record_failure(self):
        with self._lock:
            self._total += 1
            self._failed += 1

    def snapshot(self):
        """현재 통계의 복사본 (평균은 성공한 증명 기준, 단위 ms)."""
        with self._lock:
            total, ok, failed, total_time = (
                self._total, self._successful, self._failed, self._total_time
            )
        avg = total_time / ok if ok else 0.0
        rate = f"{ok / total * 100:.2f}%" if total else "N/A"
        return {
            "totalProofs": total,
            "successfulProofs": ok,
            "failedProofs": failed,
            "totalTime": total_time,
            "avgTime": avg,
            "successRate": rate,
            "avgTimeFormatted": f"{avg:.2f}ms",
        }


# ─────────────────────────────────────────────────────────────────────
# 결과
# ─────────────────────────────────────────────────────────────────────

class ProofResult:
    """generate_proof()의 결과.

    속성:
        proof: Proof
        public_signals: 8개의 정수
        valid, new_balance, nullifier, recipient_tag, balance_commitment,
        new_balance_commitment: 공개 신호에서 읽은 값
        salt: 새 커밋먼트를 여는 데 필요한 값 (로그에 남기지 않는다)
        generation_time: ms
        stats: 완료 시점의 통계 스냅샷
        settleable: 정산 원장이 받아들일 수 있는 결과인지.
            원장은 newBalance 신호를 대기 송금 금액으로 기록하고 금액 0을
            거부하므로, 잔액 전부를 보내는 송금(valid=1, newBalance=0)은
            증명은 유효하지만 정산할 수 없다.
    """

    def __init__(self, proof, public_signals, salt, generation_time, stats):
        self.proof = proof
        self.public_signals = list(public_signals)
        self.salt = salt
        self.generation_time = generation_time
        self.stats = stats

        signals = dict(zip(PUBLIC_SIGNALS, self.public_signals))
        self.valid = signals["valid"]
        self.new_balance = signals["newBalance"]
        self.new_balance_commitment = signals["newBalanceCommitment"]
        self.recipient_tag = signals["recipientTag"]
        self.nullifier = signals["nullifier"]
        self.balance_commitment = signals["balanceCommitment"]
        self.settleable = self.valid == 1 and self.new_balance != 0

    def __repr__(self):
        return (
            f"ProofResult(valid={self.valid}, nullifier={hex(self.nullifier)[:18]}..., "
            f"generation_time={self.generation_time:.0f}ms)"
        )

    def to_dict(self):
        return {
            "proof": serialize_proof(self.proof),
            "publicSignals": [str(s) for s in self.public_signals],
            "proofSystem": "plonk",
            "valid": self.valid,
            "settleable": self.settleable,
            "newBalance": str(self.new_balance),
            "newBalanceCommitment": str(self.new_balance_commitment),
            "recipientTag": str(self.recipient_tag),
            "nullifier": str(self.nullifier),
            "salt": str(self.salt),
            "generationTime": self.generation_time,
            "stats": self.stats,
        }


# ─────────────────────────────────────────────────────────────────────
# 입력 검증
# ─────────────────────────────────────────────────────────────────────

def _parse_int(request, name, required=True):
    """정수 또는 10진 문자열 필드를 읽는다. bool과 실수는 거부한다."""
    value = request.get(name)
    if value is None:
        if required:
            raise InputError(f"필수 필드가 없습니다: {name}", field=name)
        return None
    if isinstance(value, bool):
        raise InputError(f"{name}은(는) 정수여야 합니다", field=name)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    raise InputError(f"{name}은(는) 정수여야 합니다", field=name)


# ─────────────────────────────────────────────────────────────────────
# 오케스트레이터
# ─────────────────────────────────────────────────────────────────────

class ProofOrchestrator:
    """송금 증명 생성기.

    Args:
        backend: 증명 키를 가진 PlonkBackend
        tag_scheme: "address" (기본) 또는 "blinded"
        max_workers: 작업 스레드 수 (기본: CPU 코어 수)
        proof_timeout: generate_proof 기본 대기 한도 (초)
        stats: ProofStats (기본: 인스턴스 전용 새 객체)

    Raises:
        ArtifactError: 백엔드에 증명 키가 없을 때
    """

    def __init__(self, backend, tag_scheme="address", max_workers=None,
                 proof_timeout=DEFAULT_PROOF_TIMEOUT, stats=None):
        if not backend.can_prove:
            raise ArtifactError("오케스트레이터에는 증명 키가 필요합니다")
        if tag_scheme not in TAG_SCHEMES:
            raise ValueError(f"알 수 없는 태그 방식입니다: {tag_scheme!r}")

        self.backend = backend
        self.params = backend.params
        self.engine = CommitmentEngine(hasher=backend.hasher)
        self.tag_scheme = tag_scheme
        self.proof_timeout = proof_timeout
        self.stats = stats if stats is not None else ProofStats()

        self.max_workers = max_workers or os.cpu_count() or 1
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="privtx-prover"
        )

    @classmethod
    def from_artifacts(cls, keys_dir, **kwargs):
        """키 디렉토리에서 오케스트레이터를 만든다.

        Raises:
            ArtifactError: 키 파일이 없거나 손상되었을 때 (재시도 대상 아님)
        """
        return cls(PlonkBackend.from_keys_dir(keys_dir), **kwargs)

    @classmethod
    def from_settings(cls, settings):
        return cls.from_artifacts(
            settings.keys_dir,
            tag_scheme=settings.tag_scheme,
            max_workers=settings.max_workers,
            proof_timeout=settings.proof_timeout,
        )

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()

    # ── salt / witness ──

    @staticmethod
    def generate_salt():
        """암호학적 난수 32바이트를 필드 원소로 줄인다."""
        return int.from_bytes(secrets.token_bytes(32), "big") % CURVE_ORDER

    def build_witness(self, request):
        """요청을 검증하고 witness를 만든다.

        balanceCommitment가 요청에 없으면 None으로 두고
        generate_proof()에서 엔진으로 계산한다.

        Raises:
            InputError: 필드 누락, 주소 형식, 타입, 범위 오류
        """
        if not isinstance(request, Mapping):
            raise InputError("요청은 객체여야 합니다")
        for name in REQUIRED_FIELDS:
            if request.get(name) is None:
                raise InputError(f"필수 필드가 없습니다: {name}", field=name)

        address = request["recipientAddress"]
        if not is_valid_address(address):
            raise InputError(
                "recipientAddress는 올바른 이더리움 주소(0x...)여야 합니다",
                field="recipientAddress",
            )

        sender_balance = _parse_int(request, "senderBalance")
        transfer_amount = _parse_int(request, "transferAmount")
        asset_id = _parse_int(request, "assetId")
        max_amount = _parse_int(request, "maxAmount")
        salt = _parse_int(request, "salt", required=False)
        balance_commitment = _parse_int(request, "balanceCommitment", required=False)
        blinding = _parse_int(request, "recipientBlinding", required=False)

        if sender_balance < 0:
            raise InputError("senderBalance는 음수일 수 없습니다", field="senderBalance")
        if transfer_amount <= 0:
            raise InputError("transferAmount는 양수여야 합니다", field="transferAmount")
        if asset_id <= 0:
            raise InputError("assetId는 양수여야 합니다", field="assetId")
        if max_amount <= 0:
            raise InputError("maxAmount는 양수여야 합니다", field="maxAmount")

        limit = self.params.max_amount
        for name, value in (("senderBalance", sender_balance),
                            ("transferAmount", transfer_amount),
                            ("maxAmount", max_amount)):
            if value >= limit:
                raise InputError(
                    f"{name}은(는) 2^{self.params.amount_bits}보다 작아야 합니다", field=name
                )
        if asset_id >= CURVE_ORDER:
            raise InputError("assetId가 스칼라 필드 범위를 벗어났습니다", field="assetId")
        for name, value in (("salt", salt),
                            ("balanceCommitment", balance_commitment),
                            ("recipientBlinding", blinding)):
            if value is not None and not 0 <= value < CURVE_ORDER:
                raise InputError(f"{name}가 스칼라 필드 범위를 벗어났습니다", field=name)

        if self.tag_scheme == "blinded" and blinding is None:
            raise InputError(
                "blinded 태그 방식에는 recipientBlinding이 필요합니다",
                field="recipientBlinding",
            )
        tag = recipient_tag(address, self.tag_scheme, blinding, self.backend.hasher)

        return TransferWitness(
            sender_balance=sender_balance,
            transfer_amount=transfer_amount,
            recipient_tag=tag,
            salt=salt if salt is not None else self.generate_salt(),
            asset_id=asset_id,
            max_amount=max_amount,
            balance_commitment=balance_commitment,
        )

    # ── 증명 생성 ──

    def submit(self, request):
        """증명 생성을 작업 풀에 넣는다. 입력 오류는 즉시 던진다.

        Returns:
            concurrent.futures.Future[ProofResult]
        """
        start = time.time()
        try:
            witness = self.build_witness(request)
        except InputError:
            self.stats.record_failure()
            raise
        return self._executor.submit(self._run, witness, start)

    def generate_proof(self, request, timeout=None):
        """증명을 생성하고 재검증까지 마친 결과를 돌려준다.

        Raises:
            InputError, CommitmentMismatchError, ProvingError,
            InternalInconsistencyError
            ProofTimeoutError: timeout(초) 안에 끝나지 않을 때 (재시도 가능)
        """
        future = self.submit(request)
        timeout = self.proof_timeout if timeout is None else timeout
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning("증명 생성 제한 시간 초과 (%.1fs)", timeout)
            raise ProofTimeoutError(
                f"증명 생성이 {timeout}초 안에 끝나지 않았습니다", timeout=timeout
            ) from None

    def _run(self, witness, start):
        try:
            result = self._generate(witness, start)
        except Exception:
            self.stats.record_failure()
            raise
        return result

    def _generate(self, witness, start):
        if witness.balance_commitment is None:
            witness.balance_commitment = self.engine.commit(
                witness.sender_balance, witness.salt
            )

        # 무결성 검사 (CommitmentMismatchError)
        evaluation = self.engine.evaluate_transfer(
            witness.sender_balance,
            witness.transfer_amount,
            witness.asset_id,
            witness.max_amount,
            witness.balance_commitment,
            witness.salt,
        )

        proof, signals = self.backend.prove(witness)

        expected = [
            evaluation.valid,
            evaluation.new_balance,
            evaluation.new_commitment,
            witness.recipient_tag,
            evaluation.nullifier,
            witness.asset_id,
            witness.max_amount,
            witness.balance_commitment,
        ]
        if list(signals) != expected:
            mismatched = [n for n, s, e in zip(PUBLIC_SIGNALS, signals, expected) if s != e]
            logger.critical("백엔드 공개 신호가 엔진 계산과 다릅니다: %s", mismatched)
            raise InternalInconsistencyError(
                "백엔드 공개 신호가 엔진 계산과 다릅니다", signals=mismatched
            )

        if not self.backend.verify(signals, proof):
            logger.critical(
                "생성한 증명이 자체 검증에 실패했습니다 (valid=%d). 회로와 키를 확인하세요",
                evaluation.valid,
            )
            raise InternalInconsistencyError("생성한 증명이 자체 검증에 실패했습니다")

        duration = (time.time() - start) * 1000
        self.stats.record_success(duration)
        logger.info(
            "증명 생성 완료: valid=%d, nullifier=%s..., %.0fms",
            evaluation.valid, hex(evaluation.nullifier)[:18], duration,
        )
        result = ProofResult(proof, signals, witness.salt, duration, self.stats.snapshot())
        if result.valid == 1 and not result.settleable:
            logger.warning(
                "유효한 증명이지만 newBalance=0이라 정산 원장이 받지 않습니다 (nullifier=%s...)",
                hex(evaluation.nullifier)[:18],
            )
        return result

    # ── 검증 / 정산 형식 ──

    def verify_proof(self, proof, public_signals):
        """증명을 검증한다 (오프체인 검증 엔드포인트용).

        Args:
            proof: Proof, serialize_proof() 형식의 dict, 또는 24개의 원소
        """
        if isinstance(proof, Mapping):
            try:
                proof = deserialize_proof(proof)
            except ValueError as e:
                logger.warning("증명 형식 오류: %s", e)
                return False
        elif not isinstance(proof, Proof):
            try:
                proof = SettlementPayload.build(proof, public_signals).to_proof()
            except MalformedProofError as e:
                logger.warning("증명 형식 오류: %s", e.message)
                return False
        return self.backend.verify(public_signals, proof)

    def format_for_settlement(self, proof, public_signals):
        """정산 원장 형식 (24 + 8 정수)으로 변환한다.

        Raises:
            MalformedProofError: 형식이 맞지 않을 때
        """
        if isinstance(proof, Mapping):
            try:
                proof = deserialize_proof(proof)
            except ValueError as e:
                raise MalformedProofError(str(e)) from e
        return SettlementPayload.build(proof, public_signals)

    # ── 통계 ──

    def get_stats(self):
        return self.stats.snapshot()

    def reset_stats(self):
        self.stats.reset()

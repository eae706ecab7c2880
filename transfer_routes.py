"""
송금 Flask Blueprint
=====================

증명 생성/검증, 통계, 정산 엔드포인트.

  POST /api/proof/generate          송금 요청 → 증명 + 공개 신호
  POST /api/proof/verify            {proof, publicSignals} → {valid}
  GET  /api/proof/stats             증명 생성 통계
  POST /api/proof/stats/reset       통계 초기화
  POST /api/settlement/transfer     {proof, publicSignals} → 대기 송금
  POST /api/settlement/claim        {recipientTag, claimant, recipientBlinding?}
  GET  /api/settlement/pending/<tag>
  POST /api/settlement/deposit      {account, amount}
  POST /api/settlement/withdraw     {account, amount, recipient}
  GET  /health

오류는 {"error": kind, "category", "type", "message", "details"} JSON으로 응답한다.
HTTP 상태는 category로 정하고, 클라이언트는 kind로 사유를 구분한다.
"""

import logging

from flask import Blueprint, jsonify, request

from privtx.errors import (
    PrivateTransferError,
    InputError,
    MalformedProofError,
    ProofTimeoutError,
    TransferNotFoundError,
    UnauthorizedClaimError,
)
from privtx.serializers import deserialize_proof


logger = logging.getLogger(__name__)

transfer_bp = Blueprint("transfer", __name__)

# 오케스트레이터와 원장은 app.py에서 주입
ORCHESTRATOR = None
LEDGER = None

STATUS_BY_CATEGORY = {
    "input": 400,
    "integrity": 422,
    "settlement": 409,
    "backend": 503,
    "internal": 500,
}


def init_transfer_bp(orchestrator, ledger):
    """app.py에서 오케스트레이터와 정산 원장을 주입받는다."""
    global ORCHESTRATOR, LEDGER
    ORCHESTRATOR = orchestrator
    LEDGER = ledger


# ─── 헬퍼 ───

def json_body(*required):
    """요청 JSON 객체를 읽고 필수 키를 확인한다."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InputError("요청 본문은 JSON 객체여야 합니다")
    for name in required:
        if body.get(name) is None:
            raise InputError(f"필수 필드가 없습니다: {name}", field=name)
    return body


def proof_elements(proof):
    """serialize_proof() 형식의 dict 또는 24개 원소 배열을 받는다."""
    if isinstance(proof, dict):
        try:
            return deserialize_proof(proof)
        except ValueError as e:
            raise MalformedProofError(str(e)) from e
    return proof


def status_for(error):
    if isinstance(error, MalformedProofError):
        return 400
    if isinstance(error, TransferNotFoundError):
        return 404
    if isinstance(error, UnauthorizedClaimError):
        return 403
    if isinstance(error, ProofTimeoutError):
        return 504
    return STATUS_BY_CATEGORY.get(error.category, 500)


@transfer_bp.errorhandler(PrivateTransferError)
def handle_error(error):
    status = status_for(error)
    if status >= 500:
        logger.error("%s: %s", type(error).__name__, error.message)
    body = error.to_dict()
    if hasattr(error, "retryable"):
        body["retryable"] = error.retryable
    return jsonify(body), status


# ──────────────────────────────────────────────────────────────
# 증명
# ──────────────────────────────────────────────────────────────

@transfer_bp.route("/api/proof/generate", methods=["POST"])
def proof_generate():
    """송금 증명을 생성한다 (재검증까지 끝난 결과만 응답)."""
    body = json_body()
    result = ORCHESTRATOR.generate_proof(body)
    payload = ORCHESTRATOR.format_for_settlement(result.proof, result.public_signals)

    response = result.to_dict()
    response["success"] = True
    response["settlement"] = payload.to_dict()
    return jsonify(response)


@transfer_bp.route("/api/proof/verify", methods=["POST"])
def proof_verify():
    """증명을 오프체인에서 검증한다."""
    body = json_body("proof", "publicSignals")
    valid = ORCHESTRATOR.verify_proof(body["proof"], body["publicSignals"])
    return jsonify({"valid": valid, "publicSignals": body["publicSignals"]})


@transfer_bp.route("/api/proof/stats")
def proof_stats():
    return jsonify(ORCHESTRATOR.get_stats())


@transfer_bp.route("/api/proof/stats/reset", methods=["POST"])
def proof_stats_reset():
    ORCHESTRATOR.reset_stats()
    return jsonify({"message": "Statistics reset successfully"})


# ──────────────────────────────────────────────────────────────
# 정산
# ──────────────────────────────────────────────────────────────

@transfer_bp.route("/api/settlement/transfer", methods=["POST"])
def settlement_transfer():
    """증명을 소비하고 대기 송금을 만든다."""
    body = json_body("proof", "publicSignals")
    record = LEDGER.submit_transfer(proof_elements(body["proof"]), body["publicSignals"])
    return jsonify({"success": True, "pendingTransfer": record}), 201


@transfer_bp.route("/api/settlement/claim", methods=["POST"])
def settlement_claim():
    body = json_body("recipientTag", "claimant")
    amount = LEDGER.claim_transfer(
        body["recipientTag"], body["claimant"], body.get("recipientBlinding")
    )
    return jsonify({"success": True, "amount": str(amount)})


@transfer_bp.route("/api/settlement/pending/<tag>")
def settlement_pending(tag):
    record = LEDGER.get_pending_transfer(tag)
    if record is None:
        raise TransferNotFoundError("대기 중인 송금이 없습니다")
    record["amount"] = str(record["amount"])
    record["assetId"] = str(record["assetId"])
    return jsonify(record)


@transfer_bp.route("/api/settlement/deposit", methods=["POST"])
def settlement_deposit():
    body = json_body("account", "amount")
    balance = LEDGER.deposit(body["account"], body["amount"])
    return jsonify({"success": True, "balance": str(balance)})


@transfer_bp.route("/api/settlement/withdraw", methods=["POST"])
def settlement_withdraw():
    body = json_body("account", "amount", "recipient")
    balance = LEDGER.withdraw(body["account"], body["amount"], body["recipient"])
    return jsonify({"success": True, "balance": str(balance)})


@transfer_bp.route("/health")
def health():
    backend = ORCHESTRATOR.backend
    return jsonify({
        "status": "ok",
        "proofSystem": "plonk",
        "n": backend.verifying_key.n,
        "amountBits": backend.params.amount_bits,
        "hashRounds": backend.params.hash_rounds,
        "circuitDigest": backend.verifying_key.circuit_digest,
        "tagScheme": ORCHESTRATOR.tag_scheme,
    })

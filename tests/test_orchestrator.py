"""
증명 오케스트레이터 테스트
==========================

요청 검증, 결과 채널(valid 플래그 vs 예외), 통계, 동시성, 제한 시간,
정산 형식 변환을 테스트한다.

백엔드의 동작을 바꿔야 하는 경우(제한 시간, 신호 불일치, 재검증 실패)에는
실제 백엔드를 감싼 StubBackend를 쓴다.
"""
import logging
import threading

import pytest

from privtx.plonk.field import CURVE_ORDER
from privtx.backend import PlonkBackend
from privtx.orchestrator import ProofOrchestrator, ProofStats, ProofResult
from privtx.payload import SettlementPayload
from privtx.recipient import address_to_int, blinded_recipient_tag
from privtx.serializers import serialize_proof
from privtx.settlement import SettlementLedger
from privtx.transfer_circuit import synthesize, PUBLIC_SIGNALS
from privtx.errors import (
    ArtifactError,
    CommitmentMismatchError,
    EmptyTransferError,
    InputError,
    InternalInconsistencyError,
    MalformedProofError,
    ProofTimeoutError,
    ProvingError,
)

from conftest import TEST_PARAMS, ALICE, BOB, CAROL, scenario_request


class StubBackend:
    """실제 백엔드의 파라미터와 해시를 쓰되 prove/verify를 바꿀 수 있는 백엔드."""

    can_prove = True

    def __init__(self, real, proof, tamper=None, verify_result=True, gate=None):
        self.params = real.params
        self.hasher = real.hasher
        self._proof = proof
        self._tamper = tamper
        self._verify_result = verify_result
        self._gate = gate

    def prove(self, witness):
        if self._gate is not None:
            self._gate.wait(10)
        signals = synthesize(self.params, witness, hasher=self.hasher).public_signals()
        if self._tamper is not None:
            signals = self._tamper(list(signals))
        return self._proof, signals

    def verify(self, public_signals, proof):
        return self._verify_result


@pytest.fixture
def make_stub(backend, scenario_a):
    orchestrators = []

    def factory(**kwargs):
        orch = ProofOrchestrator(StubBackend(backend, scenario_a.proof, **kwargs), max_workers=4)
        orchestrators.append(orch)
        return orch

    yield factory
    for orch in orchestrators:
        orch.shutdown(wait=False)


# =====================================================================
# 입력 검증 (암호 연산 전)
# =====================================================================

class TestBuildWitness:
    def test_valid_request(self, orchestrator):
        w = orchestrator.build_witness(scenario_request(salt=7))
        assert w.sender_balance == 6000
        assert w.recipient_tag == address_to_int(BOB)
        assert w.salt == 7
        assert w.balance_commitment is None

    def test_decimal_strings_accepted(self, orchestrator):
        w = orchestrator.build_witness(scenario_request(
            sender_balance="6000", transfer_amount=" 95 ", asset_id="1998",
            max_amount="12000",
        ))
        assert (w.sender_balance, w.transfer_amount, w.asset_id) == (6000, 95, 1998)

    def test_salt_generated(self, orchestrator):
        w1 = orchestrator.build_witness(scenario_request())
        w2 = orchestrator.build_witness(scenario_request())
        assert w1.salt != w2.salt

    @pytest.mark.parametrize("field", [
        "senderBalance", "transferAmount", "recipientAddress", "assetId", "maxAmount",
    ])
    def test_missing_field(self, orchestrator, field):
        request = scenario_request()
        del request[field]
        with pytest.raises(InputError) as exc_info:
            orchestrator.build_witness(request)
        assert exc_info.value.field == field

    @pytest.mark.parametrize("address", ["0x1234", "b2" * 20, 42])
    def test_bad_address(self, orchestrator, address):
        with pytest.raises(InputError):
            orchestrator.build_witness(scenario_request(recipient=address))

    @pytest.mark.parametrize("overrides", [
        {"sender_balance": -1},
        {"transfer_amount": 0},
        {"transfer_amount": -5},
        {"asset_id": 0},
        {"max_amount": 0},
        {"transfer_amount": 1.5},
        {"transfer_amount": True},
        {"transfer_amount": "--5"},
        {"sender_balance": "abc"},
    ])
    def test_bad_numbers(self, orchestrator, overrides):
        with pytest.raises(InputError):
            orchestrator.build_witness(scenario_request(**overrides))

    def test_amount_bits_limit(self, orchestrator):
        too_big = TEST_PARAMS.max_amount
        with pytest.raises(InputError) as exc_info:
            orchestrator.build_witness(scenario_request(sender_balance=too_big))
        assert exc_info.value.field == "senderBalance"

    def test_salt_out_of_field(self, orchestrator):
        with pytest.raises(InputError):
            orchestrator.build_witness(scenario_request(salt=CURVE_ORDER))

    def test_not_a_mapping(self, orchestrator):
        with pytest.raises(InputError):
            orchestrator.build_witness([1, 2, 3])

    def test_blinded_scheme_requires_blinding(self, backend):
        with ProofOrchestrator(backend, tag_scheme="blinded", max_workers=1) as orch:
            with pytest.raises(InputError) as exc_info:
                orch.build_witness(scenario_request())
            assert exc_info.value.field == "recipientBlinding"
            w = orch.build_witness(scenario_request(recipientBlinding=55))
            assert w.recipient_tag == blinded_recipient_tag(BOB, 55, backend.hasher)

    def test_unknown_scheme(self, backend):
        with pytest.raises(ValueError):
            ProofOrchestrator(backend, tag_scheme="hashed")

    def test_verifier_only_backend_rejected(self, backend):
        verifier_only = PlonkBackend(backend.params, backend.verifying_key)
        with pytest.raises(ArtifactError):
            ProofOrchestrator(verifier_only)


# =====================================================================
# 증명 생성 (실제 백엔드)
# =====================================================================

@pytest.mark.slow
class TestGenerateProof:
    def test_scenario_a(self, scenario_a):
        assert isinstance(scenario_a, ProofResult)
        assert scenario_a.valid == 1
        assert scenario_a.new_balance == 5905
        assert scenario_a.recipient_tag == address_to_int(BOB)
        assert len(scenario_a.public_signals) == 8

    def test_scenario_a_verifies(self, orchestrator, scenario_a):
        assert orchestrator.verify_proof(scenario_a.proof, scenario_a.public_signals)

    def test_commitment_matches_engine(self, orchestrator, scenario_a):
        engine = orchestrator.engine
        assert scenario_a.balance_commitment == engine.commit(6000, scenario_a.salt)
        assert scenario_a.new_balance_commitment == engine.commit(5905, scenario_a.salt)
        assert scenario_a.nullifier == engine.derive_nullifier(
            scenario_a.balance_commitment, scenario_a.salt
        )

    def test_scenario_b_valid_zero_is_not_an_error(self, orchestrator, scenario_b):
        assert scenario_b.valid == 0
        assert scenario_b.new_balance == 1000
        assert orchestrator.verify_proof(scenario_b.proof, scenario_b.public_signals)

    def test_concurrent_requests(self, backend):
        with ProofOrchestrator(backend, max_workers=2) as orch:
            fa = orch.submit(scenario_request(recipient=ALICE))
            fd = orch.submit(scenario_request(
                sender_balance=1000000, transfer_amount=999999, asset_id=2000,
                max_amount=1000000, recipient=CAROL,
            ))
            a, d = fa.result(timeout=600), fd.result(timeout=600)
            assert (a.valid, a.new_balance) == (1, 5905)
            assert (d.valid, d.new_balance) == (1, 1)
            assert a.nullifier != d.nullifier
            assert orch.verify_proof(d.proof, d.public_signals)
            stats = orch.get_stats()
            assert stats["successfulProofs"] == 2

    def test_to_dict(self, scenario_a):
        data = scenario_a.to_dict()
        assert data["proofSystem"] == "plonk"
        assert data["valid"] == 1
        assert data["newBalance"] == "5905"
        assert data["publicSignals"] == [str(s) for s in scenario_a.public_signals]
        assert data["proof"] == serialize_proof(scenario_a.proof)

    def test_repr_hides_salt(self, scenario_a):
        assert str(scenario_a.salt) not in repr(scenario_a)

    def test_settleable_flag(self, scenario_a, scenario_b):
        assert scenario_a.settleable is True
        assert scenario_a.to_dict()["settleable"] is True
        assert scenario_b.settleable is False

    def test_full_balance_reported_unsettleable(self, orchestrator, backend, caplog):
        with caplog.at_level(logging.WARNING, logger="privtx.orchestrator"):
            result = orchestrator.generate_proof(scenario_request(
                sender_balance=500, transfer_amount=500, max_amount=500,
            ))
        assert (result.valid, result.new_balance) == (1, 0)
        assert result.settleable is False
        assert result.to_dict()["settleable"] is False
        assert any("newBalance=0" in r.getMessage() for r in caplog.records)

        # 원장도 같은 결과를 거부하고 상태를 바꾸지 않는다
        ledger = SettlementLedger(backend)
        ledger.set_asset_whitelist(1998)
        with pytest.raises(EmptyTransferError):
            ledger.submit_transfer(result.proof, result.public_signals)
        assert not ledger.is_nullifier_used(result.nullifier)
        assert ledger.get_pending_transfer(result.recipient_tag) is None


# =====================================================================
# 오류 채널
# =====================================================================

class TestErrorChannels:
    def test_commitment_mismatch(self, make_stub):
        orch = make_stub()
        with pytest.raises(CommitmentMismatchError):
            orch.generate_proof(scenario_request(salt=5, balanceCommitment=12345))
        assert orch.get_stats()["failedProofs"] == 1

    def test_input_error_counts_as_failure(self, make_stub):
        orch = make_stub()
        with pytest.raises(InputError):
            orch.generate_proof(scenario_request(transfer_amount=0))
        assert orch.get_stats()["failedProofs"] == 1

    def test_signal_mismatch_is_critical(self, make_stub, caplog):
        def tamper(signals):
            signals[PUBLIC_SIGNALS.index("newBalance")] += 1
            return signals

        orch = make_stub(tamper=tamper)
        with caplog.at_level(logging.CRITICAL, logger="privtx.orchestrator"):
            with pytest.raises(InternalInconsistencyError) as exc_info:
                orch.generate_proof(scenario_request())
        assert exc_info.value.details["signals"] == ["newBalance"]
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)

    def test_failed_self_verification_is_critical(self, make_stub, caplog):
        orch = make_stub(verify_result=False)
        with caplog.at_level(logging.CRITICAL, logger="privtx.orchestrator"):
            with pytest.raises(InternalInconsistencyError):
                orch.generate_proof(scenario_request())
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)
        assert orch.get_stats()["failedProofs"] == 1

    @pytest.mark.parametrize("failure", [MemoryError, RecursionError, ZeroDivisionError, ValueError])
    def test_backend_failure_is_retryable(self, backend, monkeypatch, failure):
        def broken(*args, **kwargs):
            raise failure()

        monkeypatch.setattr("privtx.backend.prove", broken)
        with ProofOrchestrator(backend, max_workers=1) as orch:
            with pytest.raises(ProvingError) as exc_info:
                orch.generate_proof(scenario_request())
            assert exc_info.value.retryable is True
            assert exc_info.value.kind == "backend"
            assert exc_info.value.details["cause"] == failure.__name__
            assert isinstance(exc_info.value.__cause__, failure)
            stats = orch.get_stats()
        assert (stats["failedProofs"], stats["successfulProofs"]) == (1, 0)

    def test_timeout(self, make_stub):
        gate = threading.Event()
        orch = make_stub(gate=gate)
        try:
            with pytest.raises(ProofTimeoutError) as exc_info:
                orch.generate_proof(scenario_request(), timeout=0.05)
            assert exc_info.value.retryable is True
        finally:
            gate.set()

    def test_default_timeout_from_constructor(self, backend, scenario_a):
        gate = threading.Event()
        orch = ProofOrchestrator(StubBackend(backend, scenario_a.proof, gate=gate),
                                 proof_timeout=0.05)
        try:
            with pytest.raises(ProofTimeoutError):
                orch.generate_proof(scenario_request())
        finally:
            gate.set()
            orch.shutdown()


# =====================================================================
# 통계
# =====================================================================

class TestStats:
    def test_initial(self):
        stats = ProofStats().snapshot()
        assert stats["totalProofs"] == 0
        assert stats["successRate"] == "N/A"
        assert stats["avgTime"] == 0.0

    def test_average_over_successes(self):
        stats = ProofStats()
        stats.record_success(100.0)
        stats.record_success(300.0)
        stats.record_failure()
        snap = stats.snapshot()
        assert snap["totalProofs"] == 3
        assert snap["avgTime"] == 200.0
        assert snap["successRate"] == "66.67%"
        assert snap["avgTimeFormatted"] == "200.00ms"

    def test_reset(self):
        stats = ProofStats()
        stats.record_failure()
        stats.reset()
        assert stats.snapshot()["totalProofs"] == 0
        assert stats.snapshot()["successRate"] == "N/A"

    def test_thread_safety(self):
        stats = ProofStats()

        def work():
            for _ in range(500):
                stats.record_success(1.0)
                stats.record_failure()

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        snap = stats.snapshot()
        assert snap["totalProofs"] == 8000
        assert snap["successfulProofs"] == 4000
        assert snap["totalTime"] == 4000.0

    def test_instances_are_independent(self, make_stub):
        a, b = make_stub(), make_stub()
        a.generate_proof(scenario_request())
        assert a.get_stats()["successfulProofs"] == 1
        assert b.get_stats()["totalProofs"] == 0

    def test_concurrent_submissions_counted(self, make_stub):
        orch = make_stub()
        futures = [orch.submit(scenario_request(salt=i + 1)) for i in range(8)]
        results = [f.result(timeout=60) for f in futures]
        assert all(r.valid == 1 for r in results)
        assert orch.get_stats()["successfulProofs"] == 8
        assert results[-1].stats["totalProofs"] >= 1

    def test_reset_stats(self, make_stub):
        orch = make_stub()
        orch.generate_proof(scenario_request())
        orch.reset_stats()
        assert orch.get_stats()["totalProofs"] == 0


# =====================================================================
# 검증 / 정산 형식
# =====================================================================

@pytest.mark.slow
class TestSettlementFormat:
    def test_format_from_proof(self, orchestrator, scenario_a):
        payload = orchestrator.format_for_settlement(scenario_a.proof, scenario_a.public_signals)
        assert isinstance(payload, SettlementPayload)
        assert len(payload.proof) == 24
        assert payload.public_signals == tuple(scenario_a.public_signals)
        assert payload.signal("valid") == 1

    def test_format_from_dict(self, orchestrator, scenario_a):
        payload = orchestrator.format_for_settlement(
            serialize_proof(scenario_a.proof),
            [str(s) for s in scenario_a.public_signals],
        )
        assert list(payload.proof) == scenario_a.proof.to_elements()

    def test_format_hex_elements(self, orchestrator, scenario_a):
        elements = [hex(e) for e in scenario_a.proof.to_elements()]
        payload = orchestrator.format_for_settlement(elements, scenario_a.public_signals)
        assert list(payload.proof) == scenario_a.proof.to_elements()

    def test_payload_to_dict(self, orchestrator, scenario_a):
        payload = orchestrator.format_for_settlement(scenario_a.proof, scenario_a.public_signals)
        data = payload.to_dict()
        assert len(data["proof"]) == 24
        assert all(isinstance(e, str) for e in data["proof"] + data["publicSignals"])

    @pytest.mark.parametrize("proof, signals", [
        ([1] * 23, [0] * 8),
        ([0] * 24, [0] * 7),
        ("not a list", [0] * 8),
        ([0] * 24, ["abc"] + [0] * 7),
        ([0] * 24, [-1] + [0] * 7),
    ])
    def test_malformed(self, orchestrator, proof, signals):
        with pytest.raises(MalformedProofError):
            orchestrator.format_for_settlement(proof, signals)

    def test_off_curve_rejected(self, orchestrator, scenario_a):
        elements = scenario_a.proof.to_elements()
        elements[0] += 1
        with pytest.raises(MalformedProofError):
            orchestrator.format_for_settlement(elements, scenario_a.public_signals)

    def test_malformed_dict(self, orchestrator, scenario_a):
        with pytest.raises(MalformedProofError):
            orchestrator.format_for_settlement({"a_comm": ["1", "2"]}, scenario_a.public_signals)

    def test_verify_proof_forms(self, orchestrator, scenario_a):
        signals = scenario_a.public_signals
        assert orchestrator.verify_proof(serialize_proof(scenario_a.proof), signals)
        assert orchestrator.verify_proof(scenario_a.proof.to_elements(), signals)
        assert not orchestrator.verify_proof({"bad": 1}, signals)
        assert not orchestrator.verify_proof([1, 2, 3], signals)

import sys
import os
import pytest

# 프로젝트 루트를 sys.path에 추가 (app.py, transfer_routes.py)
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from privtx.backend import setup, PlonkBackend
from privtx.transfer_circuit import CircuitParams
from privtx.orchestrator import ProofOrchestrator


# 20비트 금액 (시나리오 D의 1,000,000 포함), 2 라운드 MiMC → n = 256
TEST_PARAMS = CircuitParams(amount_bits=20, hash_rounds=2)
TEST_SEED = 20240601
SCENARIO_SALT = 31415926535

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20


def scenario_request(sender_balance=6000, transfer_amount=95, asset_id=1998,
                     max_amount=12000, recipient=BOB, **extra):
    """시나리오 A 기본값의 송금 요청."""
    request = {
        "senderBalance": sender_balance,
        "transferAmount": transfer_amount,
        "recipientAddress": recipient,
        "assetId": asset_id,
        "maxAmount": max_amount,
    }
    request.update(extra)
    return request


@pytest.fixture(scope="session")
def test_keys():
    """테스트 파라미터의 (ProvingKey, VerifyingKey). 세션당 한 번 생성한다."""
    return setup(TEST_PARAMS, seed=TEST_SEED)


@pytest.fixture(scope="session")
def backend(test_keys):
    proving_key, verifying_key = test_keys
    return PlonkBackend.from_keys(proving_key, verifying_key)


@pytest.fixture(scope="session")
def orchestrator(backend):
    """세션 공용 오케스트레이터. 통계를 검사하는 테스트는 자체 인스턴스를 쓴다."""
    orch = ProofOrchestrator(backend, max_workers=2)
    yield orch
    orch.shutdown()


@pytest.fixture(scope="session")
def scenario_a(orchestrator):
    """시나리오 A (6000 - 95, valid = 1) 의 ProofResult."""
    return orchestrator.generate_proof(scenario_request(salt=SCENARIO_SALT))


@pytest.fixture(scope="session")
def scenario_b(orchestrator):
    """시나리오 B (잔액 부족, valid = 0) 의 ProofResult."""
    return orchestrator.generate_proof(
        scenario_request(sender_balance=1000, transfer_amount=2000, recipient=CAROL,
                         salt=SCENARIO_SALT + 1)
    )

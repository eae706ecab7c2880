"""
커밋먼트 / 널리파이어 엔진 테스트
==================================

시나리오 A~D의 송금 판정과, 커밋먼트 무결성 검사를 테스트한다.
"""
import pytest

from privtx.plonk.field import CURVE_ORDER
from privtx.hashing import MiMCHash
from privtx import commitment
from privtx.commitment import CommitmentEngine, TransferEvaluation
from privtx.errors import InputError, CommitmentMismatchError

from conftest import TEST_PARAMS


SALT = 123456789


@pytest.fixture(scope="module")
def engine():
    return CommitmentEngine(hasher=MiMCHash(TEST_PARAMS.hash_rounds))


def evaluate(engine, sender_balance, transfer_amount, asset_id, max_amount, salt=SALT):
    c = engine.commit(sender_balance, salt)
    return engine.evaluate_transfer(
        sender_balance, transfer_amount, asset_id, max_amount, c, salt
    )


class TestCommit:
    def test_deterministic(self, engine):
        assert engine.commit(6000, SALT) == engine.commit(6000, SALT)

    def test_hiding_by_salt(self, engine):
        assert engine.commit(6000, SALT) != engine.commit(6000, SALT + 1)

    def test_binding_to_balance(self, engine):
        assert engine.commit(6000, SALT) != engine.commit(6001, SALT)

    def test_matches_hasher(self, engine):
        assert engine.commit(6000, SALT) == int(engine.hasher(6000, SALT))

    def test_nullifier_depends_on_salt(self, engine):
        c = engine.commit(6000, SALT)
        assert engine.derive_nullifier(c, SALT) != engine.derive_nullifier(c, SALT + 1)

    def test_nullifier_differs_from_commitment(self, engine):
        c = engine.commit(6000, SALT)
        assert engine.derive_nullifier(c, SALT) != c

    @pytest.mark.parametrize("bad", [-1, CURVE_ORDER, "10", 1.5, True, None])
    def test_rejects_bad_input(self, engine, bad):
        with pytest.raises(InputError):
            engine.commit(bad, SALT)

    def test_input_error_names_field(self, engine):
        with pytest.raises(InputError) as exc_info:
            engine.commit(10, -5)
        assert exc_info.value.field == "salt"
        assert exc_info.value.kind == "input"


class TestEvaluateTransfer:
    def test_scenario_a(self, engine):
        result = evaluate(engine, 6000, 95, 1998, 12000)
        assert isinstance(result, TransferEvaluation)
        assert result.valid == 1
        assert result.new_balance == 5905
        assert result.new_commitment == engine.commit(5905, SALT)

    def test_scenario_b_insufficient_balance(self, engine):
        result = evaluate(engine, 1000, 2000, 1998, 12000)
        assert result.valid == 0
        assert result.new_balance == 1000
        assert result.new_commitment == engine.commit(1000, SALT)

    def test_scenario_c_over_cap(self, engine):
        result = evaluate(engine, 10000, 15000, 1998, 12000)
        assert result.valid == 0
        assert result.new_balance == 10000

    def test_scenario_d_large_amount(self, engine):
        result = evaluate(engine, 1000000, 999999, 2000, 1000000)
        assert result.valid == 1
        assert result.new_balance == 1

    def test_exact_balance_and_cap(self, engine):
        result = evaluate(engine, 500, 500, 7, 500)
        assert result.valid == 1
        assert result.new_balance == 0

    def test_zero_amount_is_soft_fail(self, engine):
        result = evaluate(engine, 6000, 0, 1998, 12000)
        assert result.valid == 0
        assert result.new_balance == 6000

    def test_zero_asset_is_soft_fail(self, engine):
        result = evaluate(engine, 6000, 95, 0, 12000)
        assert result.valid == 0

    def test_nullifier_independent_of_transfer(self, engine):
        r1 = evaluate(engine, 6000, 95, 1998, 12000)
        r2 = evaluate(engine, 6000, 10, 5, 100)
        assert r1.nullifier == r2.nullifier
        assert r1.nullifier == engine.derive_nullifier(engine.commit(6000, SALT), SALT)

    def test_commitment_mismatch_raises(self, engine):
        wrong = engine.commit(6001, SALT)
        with pytest.raises(CommitmentMismatchError) as exc_info:
            engine.evaluate_transfer(6000, 95, 1998, 12000, wrong, SALT)
        assert exc_info.value.kind == "integrity"

    def test_wrong_salt_raises(self, engine):
        c = engine.commit(6000, SALT)
        with pytest.raises(CommitmentMismatchError):
            engine.evaluate_transfer(6000, 95, 1998, 12000, c, SALT + 1)

    def test_negative_amount_is_input_error(self, engine):
        c = engine.commit(6000, SALT)
        with pytest.raises(InputError):
            engine.evaluate_transfer(6000, -1, 1998, 12000, c, SALT)


class TestModuleFunctions:
    """기본 엔진(110 라운드)을 쓰는 모듈 수준 함수."""

    def test_default_rounds(self):
        assert commitment.default_engine().hasher.rounds == 110
        assert commitment.default_engine() is commitment.default_engine()

    def test_scenario_a(self):
        c = commitment.commit(6000, SALT)
        result = commitment.evaluate_transfer(6000, 95, 1998, 12000, c, SALT)
        assert (result.valid, result.new_balance) == (1, 5905)
        assert result.nullifier == commitment.derive_nullifier(c, SALT)

    def test_differs_from_reduced_rounds(self, engine):
        assert commitment.commit(6000, SALT) != engine.commit(6000, SALT)

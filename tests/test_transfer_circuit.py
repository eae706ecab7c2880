"""
송금 회로 테스트
================

synthesize()가 만드는 회로가 커밋먼트 엔진과 같은 공개 신호를 내고,
모든 게이트를 만족하는지 (또는 잘못된 witness에서 깨지는지) 확인한다.
증명은 만들지 않는다.
"""
import pytest

from privtx.hashing import MiMCHash
from privtx.commitment import CommitmentEngine
from privtx.recipient import address_to_tag
from privtx.transfer_circuit import (
    CircuitParams, TransferWitness, PUBLIC_SIGNALS, NUM_PUBLIC_SIGNALS,
    synthesize, range_gadget, ge_gadget, nonzero_gadget,
)
from privtx.plonk.circuit import CircuitBuilder

from conftest import TEST_PARAMS, BOB


SALT = 987654321


@pytest.fixture(scope="module")
def engine():
    return CommitmentEngine(hasher=MiMCHash(TEST_PARAMS.hash_rounds))


def make_witness(engine, sender_balance, transfer_amount, asset_id, max_amount,
                 salt=SALT, balance_commitment=None):
    if balance_commitment is None:
        balance_commitment = engine.commit(sender_balance, salt)
    return TransferWitness(
        sender_balance=sender_balance,
        transfer_amount=transfer_amount,
        recipient_tag=address_to_tag(BOB),
        salt=salt,
        asset_id=asset_id,
        max_amount=max_amount,
        balance_commitment=balance_commitment,
    )


def expected_signals(engine, w):
    ev = engine.evaluate_transfer(
        w.sender_balance, w.transfer_amount, w.asset_id, w.max_amount,
        w.balance_commitment, w.salt,
    )
    return [ev.valid, ev.new_balance, ev.new_commitment, w.recipient_tag,
            ev.nullifier, w.asset_id, w.max_amount, w.balance_commitment]


class TestCircuitParams:
    def test_defaults(self):
        params = CircuitParams()
        assert params.amount_bits == 64
        assert params.hash_rounds == 110

    def test_max_amount(self):
        assert TEST_PARAMS.max_amount == 1 << 20

    @pytest.mark.parametrize("bits", [0, 1, 251])
    def test_bad_bits(self, bits):
        with pytest.raises(ValueError):
            CircuitParams(amount_bits=bits)

    def test_bad_rounds(self):
        with pytest.raises(ValueError):
            CircuitParams(hash_rounds=0)

    def test_to_dict(self):
        assert TEST_PARAMS.to_dict() == {"amount_bits": 20, "hash_rounds": 2}


class TestLayout:
    def test_gate_count(self):
        circuit = synthesize(TEST_PARAMS).circuit
        # 48 + 10·bits 개의 게이트가 256으로 패딩된다
        assert len(synthesize(TEST_PARAMS).builder.wires) == 256
        assert circuit.n == 256
        assert circuit.num_public_inputs == NUM_PUBLIC_SIGNALS == 8

    def test_digest_independent_of_witness(self, engine):
        empty = synthesize(TEST_PARAMS).circuit.digest()
        w = make_witness(engine, 6000, 95, 1998, 12000)
        assert synthesize(TEST_PARAMS, w).circuit.digest() == empty

    def test_digest_depends_on_params(self):
        other = CircuitParams(amount_bits=21, hash_rounds=2)
        assert synthesize(other).circuit.digest() != synthesize(TEST_PARAMS).circuit.digest()

    def test_keygen_circuit_has_no_signals(self):
        assert synthesize(TEST_PARAMS).public_signals() is None

    def test_hasher_rounds_must_match(self):
        with pytest.raises(ValueError):
            synthesize(TEST_PARAMS, hasher=MiMCHash(3))

    def test_witness_repr_redacted(self, engine):
        w = make_witness(engine, 6000, 95, 1998, 12000)
        assert "6000" not in repr(w)


class TestSignals:
    @pytest.mark.parametrize("balance, amount, asset, cap, valid, new_balance", [
        (6000, 95, 1998, 12000, 1, 5905),              # A
        (1000, 2000, 1998, 12000, 0, 1000),            # B
        (10000, 15000, 1998, 12000, 0, 10000),         # C
        (1000000, 999999, 2000, 1000000, 1, 1),        # D
        (6000, 0, 1998, 12000, 0, 6000),               # 금액 0
        (6000, 95, 0, 12000, 0, 6000),                 # 자산 0
    ])
    def test_matches_engine_and_satisfies_gates(self, engine, balance, amount,
                                                asset, cap, valid, new_balance):
        w = make_witness(engine, balance, amount, asset, cap)
        tc = synthesize(TEST_PARAMS, w)
        signals = tc.public_signals()
        assert signals == expected_signals(engine, w)
        assert signals[PUBLIC_SIGNALS.index("valid")] == valid
        assert signals[PUBLIC_SIGNALS.index("newBalance")] == new_balance
        assert tc.builder.unsatisfied_gates(signals) == []

    def test_commitment_mismatch_breaks_gates(self, engine):
        w = make_witness(engine, 6000, 95, 1998, 12000,
                         balance_commitment=engine.commit(6001, SALT))
        tc = synthesize(TEST_PARAMS, w)
        assert tc.builder.unsatisfied_gates(tc.public_signals()) != []

    def test_amount_out_of_range_breaks_gates(self, engine):
        too_big = TEST_PARAMS.max_amount
        w = make_witness(engine, too_big, 1, 1998, 12000)
        tc = synthesize(TEST_PARAMS, w)
        assert tc.builder.unsatisfied_gates(tc.public_signals()) != []

    def test_forged_signal_breaks_gates(self, engine):
        w = make_witness(engine, 6000, 95, 1998, 12000)
        tc = synthesize(TEST_PARAMS, w)
        signals = tc.public_signals()
        signals[PUBLIC_SIGNALS.index("newBalance")] += 1
        assert tc.builder.unsatisfied_gates(signals) == [1]


class TestGadgets:
    def _check(self, builder):
        builder.build()
        return builder.unsatisfied_gates([])

    @pytest.mark.parametrize("value, ok", [(0, True), (15, True), (16, False)])
    def test_range(self, value, ok):
        builder = CircuitBuilder()
        x = builder.var(value)
        range_gadget(builder, x, 4)
        assert (self._check(builder) == []) is ok

    def test_range_needs_two_bits(self):
        builder = CircuitBuilder()
        with pytest.raises(ValueError):
            range_gadget(builder, builder.var(1), 1)

    @pytest.mark.parametrize("x, y, flag", [(5, 3, 1), (3, 3, 1), (2, 3, 0), (0, 15, 0)])
    def test_ge(self, x, y, flag):
        builder = CircuitBuilder()
        out = ge_gadget(builder, builder.var(x), builder.var(y), 4)
        assert int(builder.value(out)) == flag
        assert self._check(builder) == []

    @pytest.mark.parametrize("x, flag", [(0, 0), (1, 1), (12345, 1)])
    def test_nonzero(self, x, flag):
        builder = CircuitBuilder()
        out = nonzero_gadget(builder, builder.var(x))
        assert int(builder.value(out)) == flag
        assert self._check(builder) == []

"""
송금 회로 (Transfer Circuit)
=============================

CommitmentEngine.evaluate_transfer와 같은 관계를 PLONK 게이트로 표현한다.

**공개 신호 (행 0~7, 순서 고정)**:
  0 valid, 1 newBalance, 2 newBalanceCommitment, 3 recipientTag,
  4 nullifier, 5 assetId, 6 maxAmount, 7 balanceCommitment

**비공개 입력**:
  senderBalance, transferAmount, salt

**가젯 (gadget)**:
  | 가젯        | 게이트 수      | 내용                                        |
  |-------------|----------------|---------------------------------------------|
  | range       | 2·bits - 1     | 비트 분해 (불리언 + 누적)                   |
  | ge(x, y)    | 1 + range(b+1) | d = x - y + 2^bits 의 최상위 비트           |
  | nonzero(x)  | 2              | 역원 witness, nz = x·inv, x - x·nz = 0      |
  | mimc(x, k)  | 4·rounds + 2   | 라운드당 (x+k), (s+c)², t², t²·(s+c)         |

**제약 요약**:
  senderBalance, transferAmount, maxAmount < 2^amount_bits
  valid = ge(B, A) · ge(M, A) · nz(A) · nz(assetId)
  newBalance = B - valid·A
  H(B, S) 의 출력 배선 = 공개 balanceCommitment   (무결성)
  H(balanceCommitment, S) = 공개 nullifier
  H(newBalance, S) = 공개 newBalanceCommitment

게이트 배치는 CircuitParams(amount_bits, hash_rounds)에만 의존하고
witness 값에는 의존하지 않는다. 그래서 한 번 만든 키로 모든 송금을 증명한다.

사용 예시:
    >>> params = CircuitParams(amount_bits=64, hash_rounds=110)
    >>> tc = synthesize(params, witness)
    >>> a, b, c = tc.builder.wire_values()
"""

from collections import namedtuple

from privtx.plonk.field import FR, CURVE_ORDER
from privtx.plonk.circuit import CircuitBuilder
from privtx.hashing import MiMCHash, DEFAULT_ROUNDS


PUBLIC_SIGNALS = (
    "valid",
    "newBalance",
    "newBalanceCommitment",
    "recipientTag",
    "nullifier",
    "assetId",
    "maxAmount",
    "balanceCommitment",
)
NUM_PUBLIC_SIGNALS = len(PUBLIC_SIGNALS)

DEFAULT_AMOUNT_BITS = 64

MINUS_ONE = CURVE_ORDER - 1


class CircuitParams(namedtuple("CircuitParams", ["amount_bits", "hash_rounds"])):
    """회로 레이아웃을 결정하는 두 파라미터.

    amount_bits: 금액 범위 검사 비트 수 (2 이상, ge 가젯의 bits+1 비트가
                 필드를 감싸지 않도록 250 이하)
    hash_rounds: MiMC 라운드 수
    """

    __slots__ = ()

    def __new__(cls, amount_bits=DEFAULT_AMOUNT_BITS, hash_rounds=DEFAULT_ROUNDS):
        if not 2 <= amount_bits <= 250:
            raise ValueError(f"amount_bits는 2 이상 250 이하여야 합니다: {amount_bits}")
        if hash_rounds < 1:
            raise ValueError(f"hash_rounds는 1 이상이어야 합니다: {hash_rounds}")
        return super().__new__(cls, amount_bits, hash_rounds)

    @property
    def max_amount(self):
        """허용되는 금액의 상한 (미포함)."""
        return 1 << self.amount_bits

    def to_dict(self):
        return {"amount_bits": self.amount_bits, "hash_rounds": self.hash_rounds}


class TransferWitness:
    """회로 witness. 프로세스 메모리에만 존재하며 repr에 값을 드러내지 않는다."""

    __slots__ = (
        "sender_balance", "transfer_amount", "recipient_tag", "salt",
        "asset_id", "max_amount", "balance_commitment",
    )

    def __init__(self, sender_balance, transfer_amount, recipient_tag, salt,
                 asset_id, max_amount, balance_commitment):
        self.sender_balance = sender_balance
        self.transfer_amount = transfer_amount
        self.recipient_tag = recipient_tag
        self.salt = salt
        self.asset_id = asset_id
        self.max_amount = max_amount
        self.balance_commitment = balance_commitment

    def __repr__(self):
        return "TransferWitness(<redacted>)"

    __str__ = __repr__


class TransferCircuit:
    """synthesize()의 결과.

    속성:
        params: CircuitParams
        builder: CircuitBuilder (값이 채워졌으면 wire_values() 사용 가능)
        circuit: 패딩과 copy constraint까지 끝난 Circuit
        public_vars: 공개 신호 이름 → 변수 ID
    """

    def __init__(self, params, builder, public_vars):
        self.params = params
        self.builder = builder
        self.public_vars = public_vars
        self.circuit = builder.build()

    def public_signals(self):
        """8개의 공개 신호 값 (정수 리스트). witness 없이 만든 회로면 None."""
        values = [self.builder.value(self.public_vars[name]) for name in PUBLIC_SIGNALS]
        if any(v is None for v in values):
            return None
        return [int(v) for v in values]


# ─────────────────────────────────────────────────────────────────────
# 가젯
# ─────────────────────────────────────────────────────────────────────

def _values(builder, *variables):
    values = [builder.value(v) for v in variables]
    return None if any(v is None for v in values) else values


def _assign(builder, out, value):
    """출력 변수를 준비한다.

    out이 주어지고 아직 값이 없으면 계산된 값을 기록한다. 이미 값이 있으면
    (예: 요청으로 받은 balanceCommitment) 그대로 두고, 불일치는 게이트 검사에서
    드러나게 한다.
    """
    if out is None:
        return builder.var(value)
    if value is not None and builder.value(out) is None:
        builder.values[out] = value
    return out


def mimc_gadget(builder, hasher, x, k, out=None):
    """H(x, k) = E_k(x) + x + k 를 게이트로 펼친다."""
    state = x
    for c in hasher.constants:
        vals = _values(builder, state, k)
        s = builder.var(vals[0] + vals[1] if vals else None)
        builder.add_gate(state, k, s, q_l=1, q_r=1, q_o=MINUS_ONE)

        # t2 = (s + c)² = s² + 2c·s + c²
        sv = builder.value(s)
        t2 = builder.var((sv + c) * (sv + c) if sv is not None else None)
        builder.add_gate(s, s, t2, q_m=1, q_l=c * 2, q_o=MINUS_ONE, q_c=c * c)

        t2v = builder.value(t2)
        t4 = builder.var(t2v * t2v if t2v is not None else None)
        builder.add_gate(t2, t2, t4, q_m=1, q_o=MINUS_ONE)

        # x' = t4·(s + c) = t4·s + c·t4
        vals = _values(builder, t4, s)
        nxt = builder.var(vals[0] * (vals[1] + c) if vals else None)
        builder.add_gate(t4, s, nxt, q_m=1, q_l=c, q_o=MINUS_ONE)
        state = nxt

    vals = _values(builder, state, x)
    tmp = builder.var(vals[0] + vals[1] if vals else None)
    builder.add_gate(state, x, tmp, q_l=1, q_r=1, q_o=MINUS_ONE)

    vals = _values(builder, tmp, k)
    out = _assign(builder, out, vals[0] + vals[1] if vals else None)
    builder.add_gate(tmp, k, out, q_l=1, q_r=1, q_o=MINUS_ONE)
    return out


def range_gadget(builder, x, bits):
    """x < 2^bits 를 강제하고, 비트 변수 리스트(LSB 먼저)를 반환한다."""
    if bits < 2:
        raise ValueError("범위 검사는 2비트 이상이어야 합니다")
    xv = builder.value(x)
    x_int = int(xv) if xv is not None else None

    bit_vars = []
    for i in range(bits):
        bit = builder.var((x_int >> i) & 1 if x_int is not None else None)
        # bit² - bit = 0
        builder.add_gate(bit, bit, None, q_m=1, q_l=MINUS_ONE)
        bit_vars.append(bit)

    acc = bit_vars[0]
    for i in range(1, bits):
        vals = _values(builder, acc, bit_vars[i])
        value = vals[0] + vals[1] * (1 << i) if vals else None
        nxt = x if i == bits - 1 else builder.var(value)
        builder.add_gate(acc, bit_vars[i], nxt, q_l=1, q_r=1 << i, q_o=MINUS_ONE)
        acc = nxt
    return bit_vars


def ge_gadget(builder, x, y, bits):
    """x ≥ y 이면 1, 아니면 0 인 플래그 변수 (x, y < 2^bits 가정)."""
    offset = 1 << bits
    vals = _values(builder, x, y)
    d = builder.var(vals[0] - vals[1] + offset if vals else None)
    builder.add_gate(x, y, d, q_l=1, q_r=MINUS_ONE, q_o=MINUS_ONE, q_c=offset)
    return range_gadget(builder, d, bits + 1)[bits]


def nonzero_gadget(builder, x):
    """x ≠ 0 이면 1, x = 0 이면 0 인 플래그 변수."""
    xv = builder.value(x)
    if xv is None:
        inv = builder.var()
        nz = builder.var()
    elif xv == FR(0):
        inv = builder.var(FR(0))
        nz = builder.var(FR(0))
    else:
        inv = builder.var(FR(1) / xv)
        nz = builder.var(FR(1))
    # nz = x · inv
    builder.add_gate(x, inv, nz, q_m=1, q_o=MINUS_ONE)
    # x - x·nz = 0  (x ≠ 0 이면 nz = 1 강제)
    builder.add_gate(x, nz, None, q_l=1, q_m=MINUS_ONE)
    return nz


def mul_gadget(builder, x, y, out=None):
    vals = _values(builder, x, y)
    out = _assign(builder, out, vals[0] * vals[1] if vals else None)
    builder.add_gate(x, y, out, q_m=1, q_o=MINUS_ONE)
    return out


# ─────────────────────────────────────────────────────────────────────
# 회로 합성
# ─────────────────────────────────────────────────────────────────────

def synthesize(params, witness=None, hasher=None):
    """송금 회로를 만든다.

    Args:
        params: CircuitParams
        witness: TransferWitness 또는 None (키 생성용 빈 회로)
        hasher: MiMCHash (기본: params.hash_rounds 라운드)

    Returns:
        TransferCircuit
    """
    if hasher is None:
        hasher = MiMCHash(params.hash_rounds)
    elif hasher.rounds != params.hash_rounds:
        raise ValueError("해시 라운드 수가 회로 파라미터와 다릅니다")

    builder = CircuitBuilder()
    w = witness

    def value(attr):
        return FR(getattr(w, attr)) if w is not None else None

    # ── 공개 신호 변수 (출력 값은 가젯이 채운다) ──
    public_vars = {
        "valid": builder.var(),
        "newBalance": builder.var(),
        "newBalanceCommitment": builder.var(),
        "recipientTag": builder.var(value("recipient_tag")),
        "nullifier": builder.var(),
        "assetId": builder.var(value("asset_id")),
        "maxAmount": builder.var(value("max_amount")),
        "balanceCommitment": builder.var(value("balance_commitment")),
    }
    for name in PUBLIC_SIGNALS:
        builder.public_input(public_vars[name])

    # ── 비공개 입력 ──
    balance = builder.var(value("sender_balance"))
    amount = builder.var(value("transfer_amount"))
    salt = builder.var(value("salt"))

    asset_id = public_vars["assetId"]
    max_amount = public_vars["maxAmount"]
    bits = params.amount_bits

    # ── 무결성: H(B, S) 가 공개 balanceCommitment 자체 ──
    mimc_gadget(builder, hasher, balance, salt, out=public_vars["balanceCommitment"])

    # ── 범위 검사 ──
    range_gadget(builder, balance, bits)
    range_gadget(builder, amount, bits)
    range_gadget(builder, max_amount, bits)

    # ── 송금 판정 ──
    enough_balance = ge_gadget(builder, balance, amount, bits)
    within_cap = ge_gadget(builder, max_amount, amount, bits)
    amount_nz = nonzero_gadget(builder, amount)
    asset_nz = nonzero_gadget(builder, asset_id)

    v1 = mul_gadget(builder, enough_balance, within_cap)
    v2 = mul_gadget(builder, v1, amount_nz)
    valid = mul_gadget(builder, v2, asset_nz, out=public_vars["valid"])

    # ── newBalance = B - valid·A ──
    spent = mul_gadget(builder, valid, amount)
    vals = _values(builder, balance, spent)
    new_balance = _assign(builder, public_vars["newBalance"],
                          vals[0] - vals[1] if vals else None)
    builder.add_gate(balance, spent, new_balance, q_l=1, q_r=MINUS_ONE, q_o=MINUS_ONE)

    # ── 널리파이어, 새 커밋먼트 ──
    mimc_gadget(builder, hasher, public_vars["balanceCommitment"], salt,
                out=public_vars["nullifier"])
    mimc_gadget(builder, hasher, new_balance, salt,
                out=public_vars["newBalanceCommitment"])

    return TransferCircuit(params, builder, public_vars)

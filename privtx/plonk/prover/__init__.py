"""
PLONK Prover - 5-라운드 프로토콜 오케스트레이터
=================================================

PLONK 증명 생성의 전체 흐름을 관리한다.

  ┌─────────────────────────────────────────────────────┐
  │  Round 0: 공개 입력을 트랜스크립트에 흡수             │
  ├─────────────────────────────────────────────────────┤
  │  Round 1: 배선(witness) 다항식 커밋                  │
  │  Prover → Verifier: [a]₁, [b]₁, [c]₁              │
  ├─────────────────────────────────────────────────────┤
  │  Round 2: 순열 누적자 z(x) 커밋                     │
  │  Verifier → Prover: β, γ                           │
  │  Prover → Verifier: [z]₁                           │
  ├─────────────────────────────────────────────────────┤
  │  Round 3: 몫 다항식 t(x) 커밋                       │
  │  Verifier → Prover: α                              │
  │  Prover → Verifier: [t_lo]₁, [t_mid]₁, [t_hi]₁    │
  ├─────────────────────────────────────────────────────┤
  │  Round 4: 다항식 평가값 산출                         │
  │  Verifier → Prover: ζ                              │
  │  Prover → Verifier: ā, b̄, c̄, s̄_σ1, s̄_σ2, z̄_ω    │
  ├─────────────────────────────────────────────────────┤
  │  Round 5: 선형화 + KZG 열기 증명                     │
  │  Verifier → Prover: v                              │
  │  Prover → Verifier: [W_ζ]₁, [W_ζω]₁               │
  └─────────────────────────────────────────────────────┘

증명은 9개의 G1 점과 6개의 스칼라로 구성되며, 정산용으로 펼치면
정확히 24개의 필드 원소가 된다 (Proof.to_elements 참고).

사용 예시:
    >>> from privtx.plonk.prover import prove
    >>> proof = prove(a_vals, b_vals, c_vals, public_inputs, preprocessed, srs)
"""

from privtx.plonk.field import FR, to_affine, g1_from_affine, CURVE_ORDER
from privtx.plonk.transcript import Transcript
from privtx.plonk.utils import public_input_polynomial
from privtx.plonk.prover import round1, round2, round3, round4, round5


class Proof:
    """PLONK 증명 데이터 컨테이너.

    Round 1: a_comm, b_comm, c_comm (G1)
    Round 2: z_comm (G1)
    Round 3: t_lo_comm, t_mid_comm, t_hi_comm (G1)
    Round 4: a_eval, b_eval, c_eval, s_sigma1_eval, s_sigma2_eval, z_omega_eval (FR)
    Round 5: W_zeta_comm, W_zeta_omega_comm (G1)
    """

    POINTS = (
        "a_comm", "b_comm", "c_comm", "z_comm",
        "t_lo_comm", "t_mid_comm", "t_hi_comm",
        "W_zeta_comm", "W_zeta_omega_comm",
    )
    SCALARS = (
        "a_eval", "b_eval", "c_eval",
        "s_sigma1_eval", "s_sigma2_eval", "z_omega_eval",
    )
    NUM_ELEMENTS = 2 * len(POINTS) + len(SCALARS)

    def __init__(self):
        for name in self.POINTS + self.SCALARS:
            setattr(self, name, None)

    def to_elements(self):
        """증명을 24개의 정수 리스트로 펼친다.

        순서: 9개의 G1 점 (x, y) → 6개의 평가값.
        무한원점은 (0, 0).
        """
        elements = []
        for name in self.POINTS:
            elements.extend(to_affine(getattr(self, name)))
        for name in self.SCALARS:
            elements.append(int(getattr(self, name)))
        return elements

    @classmethod
    def from_elements(cls, elements):
        """24개의 정수에서 증명을 복원한다.

        Raises:
            ValueError: 길이가 다르거나, 점이 곡선 위에 없거나,
                        평가값이 스칼라 필드 범위를 벗어날 때
        """
        elements = list(elements)
        if len(elements) != cls.NUM_ELEMENTS:
            raise ValueError(
                f"증명 원소는 {cls.NUM_ELEMENTS}개여야 합니다 (받은 개수: {len(elements)})"
            )
        proof = cls()
        for i, name in enumerate(cls.POINTS):
            setattr(proof, name, g1_from_affine(elements[2 * i], elements[2 * i + 1]))
        offset = 2 * len(cls.POINTS)
        for i, name in enumerate(cls.SCALARS):
            value = elements[offset + i]
            if not 0 <= value < CURVE_ORDER:
                raise ValueError(f"{name} 값이 스칼라 필드 범위를 벗어났습니다")
            setattr(proof, name, FR(value))
        return proof


class ProverState:
    """라운드 간 공유되는 Prover 상태.

    속성 (입력):
        a_vals, b_vals, c_vals: 배선 값 리스트 (길이 n)
        public_inputs: 공개 입력 값 리스트
        preprocessed: PreprocessedData
        srs: SRS
        transcript: Fiat-Shamir 트랜스크립트

    속성 (라운드 간 생성):
        pi_poly: 공개 입력 다항식
        a_poly, b_poly, c_poly, z_poly, t_lo_poly, t_mid_poly, t_hi_poly
        beta, gamma, alpha, zeta, v: 챌린지 값들
    """

    def __init__(self, a_vals, b_vals, c_vals, public_inputs, preprocessed, srs):
        self.a_vals = a_vals
        self.b_vals = b_vals
        self.c_vals = c_vals
        self.public_inputs = [v if isinstance(v, FR) else FR(v) for v in public_inputs]
        self.preprocessed = preprocessed
        self.srs = srs

        self.transcript = Transcript()

        self.n = preprocessed.n
        self.omega = preprocessed.omega
        self.domain = preprocessed.domain

        self.a_poly = None
        self.b_poly = None
        self.c_poly = None
        self.z_poly = None
        self.t_lo_poly = None
        self.t_mid_poly = None
        self.t_hi_poly = None

        self.beta = None
        self.gamma = None
        self.alpha = None
        self.zeta = None
        self.v = None

        self.pi_poly = public_input_polynomial(self.public_inputs, self.n, self.omega)

        self.proof = Proof()

    def build_proof(self):
        """최종 증명 객체를 반환한다."""
        return self.proof


def absorb_public_inputs(transcript, public_inputs):
    """공개 입력을 트랜스크립트에 흡수한다 (Prover/Verifier 공통)."""
    transcript.append_scalar(b"num_public_inputs", len(public_inputs))
    for value in public_inputs:
        transcript.append_scalar(b"public_input", value)


def prove(a_vals, b_vals, c_vals, public_inputs, preprocessed, srs):
    """PLONK 5-라운드 프로토콜을 실행하여 증명을 생성한다.

    Args:
        a_vals, b_vals, c_vals: 배선 값 리스트 (길이 n)
        public_inputs: 공개 입력 값 리스트 (회로의 첫 행들에 대응)
        preprocessed: PreprocessedData (전처리 결과)
        srs: SRS

    Returns:
        Proof: PLONK 증명

    Raises:
        ValueError: 배선 값 길이나 공개 입력 수가 회로와 맞지 않거나,
                    witness가 제약을 만족하지 않을 때
    """
    n = preprocessed.n
    if not (len(a_vals) == len(b_vals) == len(c_vals) == n):
        raise ValueError(f"배선 값 길이는 n={n}이어야 합니다")
    if len(public_inputs) != preprocessed.num_public_inputs:
        raise ValueError(
            f"공개 입력은 {preprocessed.num_public_inputs}개여야 합니다 "
            f"(받은 개수: {len(public_inputs)})"
        )

    state = ProverState(a_vals, b_vals, c_vals, public_inputs, preprocessed, srs)
    absorb_public_inputs(state.transcript, state.public_inputs)

    # Round 1: a(x), b(x), c(x) → [a]₁, [b]₁, [c]₁
    round1.execute(state)

    # Round 2: β, γ → z(x) → [z]₁
    round2.execute(state)

    # Round 3: α → t(x) = C(x)/Z_H(x) → 3분할 커밋
    round3.execute(state)

    # Round 4: ζ → ā, b̄, c̄, s̄_σ1, s̄_σ2, z̄_ω
    round4.execute(state)

    # Round 5: v → [W_ζ]₁, [W_ζω]₁
    round5.execute(state)

    return state.build_proof()

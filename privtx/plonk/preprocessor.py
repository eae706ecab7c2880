"""
PLONK 전처리기 (Preprocessor)
===============================

회로 구조를 분석하여 Prover와 Verifier가 사용할 공개 파라미터를 생성한다.

**전처리 출력물**:
  - 셀렉터 커밋먼트: [q_L]₁, [q_R]₁, [q_O]₁, [q_M]₁, [q_C]₁
  - 순열 커밋먼트: [S_σ1]₁, [S_σ2]₁, [S_σ3]₁
  - 도메인 정보: n, ω (단위근)
  - 셀렉터/순열 다항식 자체 (Prover용)
  - 회로 지문(digest): 키와 회로 레이아웃의 일치 확인용

**Prover vs Verifier 사용**:
  - Prover: PreprocessedData 전체 (다항식 원본 필요)
  - Verifier: VerifyingKey (커밋먼트 + [τ]₂ 만 필요)

사용 예시:
    >>> preprocessed = preprocess(circuit, srs)
    >>> vk = preprocessed.verifying_key(srs)
"""

from privtx.plonk.field import FR, get_root_of_unity, get_roots_of_unity
from privtx.plonk.circuit import Gate
from privtx.plonk.polynomial import Polynomial
from privtx.plonk.kzg import commit
from privtx.plonk.permutation import build_permutation_polynomials
from privtx.plonk.utils import next_power_of_2


class PreprocessedData:
    """전처리된 회로 데이터.

    속성 (도메인):
        n, omega, domain

    속성 (셀렉터 다항식 + 커밋먼트):
        q_l_poly, q_r_poly, q_o_poly, q_m_poly, q_c_poly: Polynomial
        q_l_comm, q_r_comm, q_o_comm, q_m_comm, q_c_comm: G1 점

    속성 (순열 다항식 + 커밋먼트):
        s_sigma1_poly, s_sigma2_poly, s_sigma3_poly: Polynomial
        s_sigma1_comm, s_sigma2_comm, s_sigma3_comm: G1 점

    속성 (회로 정보):
        sigma: 순열 배열 (길이 3n)
        num_public_inputs: 공개 입력 수
        circuit_digest: Circuit.digest()
    """

    SELECTORS = ("q_l", "q_r", "q_o", "q_m", "q_c")
    PERMUTATIONS = ("s_sigma1", "s_sigma2", "s_sigma3")

    def verifying_key(self, srs):
        """Verifier가 필요한 최소 정보만 담은 VerifyingKey를 만든다."""
        return VerifyingKey(
            n=self.n,
            num_public_inputs=self.num_public_inputs,
            commitments={
                name: getattr(self, name + "_comm")
                for name in self.SELECTORS + self.PERMUTATIONS
            },
            g2_powers=list(srs.g2_powers[:2]),
            circuit_digest=self.circuit_digest,
        )


class VerifyingKey:
    """PLONK 검증 키.

    속성:
        n, omega: 도메인 크기와 단위근
        num_public_inputs: 공개 입력 수
        q_l_comm ... s_sigma3_comm: 8개의 전처리 커밋먼트
        g2_powers: [G2, τ·G2]
        circuit_digest: 회로 지문
    """

    def __init__(self, n, num_public_inputs, commitments, g2_powers, circuit_digest):
        self.n = n
        self.omega = get_root_of_unity(n)
        self.num_public_inputs = num_public_inputs
        for name, point in commitments.items():
            setattr(self, name + "_comm", point)
        self.g2_powers = g2_powers
        self.circuit_digest = circuit_digest


def preprocess(circuit, srs):
    """회로를 전처리하여 공개 파라미터를 생성한다.

    단계:
    1. 도메인 설정: 게이트 수 → 2의 거듭제곱 n, 단위근 ω
    2. 셀렉터 다항식: 각 셀렉터 벡터를 IFFT로 다항식화 + KZG 커밋
    3. 순열 다항식: copy constraint에서 순열 생성 → 다항식화 + KZG 커밋

    Args:
        circuit: Circuit 객체
        srs: SRS (Structured Reference String)

    Returns:
        PreprocessedData: 전처리된 데이터

    Raises:
        ValueError: SRS가 이 회로에 비해 작을 때
    """
    result = PreprocessedData()

    # ── 1단계: 도메인 설정 ──
    n = next_power_of_2(circuit.n)
    while len(circuit.gates) < n:
        # 더미 게이트 (모든 셀렉터 = 0, 제약 자동 만족)
        circuit.gates.append(Gate(FR(0), FR(0), FR(0), FR(0), FR(0)))

    if srs.max_degree < n + 5:
        raise ValueError(
            f"SRS 최대 차수 {srs.max_degree}가 회로 크기 n={n}에 비해 작습니다"
        )

    result.n = n
    result.omega = get_root_of_unity(n)
    result.domain = get_roots_of_unity(n)

    # ── 2단계: 셀렉터 다항식 ──
    for name, evals in zip(PreprocessedData.SELECTORS, circuit.get_selector_polynomials()):
        poly = Polynomial.from_evaluations(evals, result.omega)
        setattr(result, name + "_poly", poly)
        setattr(result, name + "_comm", commit(poly, srs))

    # ── 3단계: 순열 다항식 ──
    result.sigma = circuit.build_copy_constraints()
    sigma_evals = build_permutation_polynomials(result.sigma, n, result.domain)
    for name, evals in zip(PreprocessedData.PERMUTATIONS, sigma_evals):
        poly = Polynomial.from_evaluations(evals, result.omega)
        setattr(result, name + "_poly", poly)
        setattr(result, name + "_comm", commit(poly, srs))

    # ── 회로 정보 ──
    result.num_public_inputs = circuit.num_public_inputs
    result.circuit_digest = circuit.digest()

    return result

"""
PLONK 회로 표현 (Circuit Representation)
==========================================

PLONK 산술화(arithmetization) 시스템의 핵심: 계산을 게이트와 배선으로 표현.

**PLONK 게이트 구조**:
  각 게이트는 3개의 배선(wire) a, b, c와 5개의 셀렉터(selector)로 구성:

    q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C + PI = 0

**게이트 유형별 셀렉터 설정**:
  | 유형    | q_L | q_R | q_O | q_M | q_C | 의미              |
  |---------|-----|-----|-----|-----|-----|-------------------|
  | 곱셈    |  0  |  0  | -1  |  1  |  0  | a·b = c           |
  | 덧셈    |  1  |  1  | -1  |  0  |  0  | a + b = c         |
  | 상수덧셈|  1  |  0  | -1  |  0  |  k  | a + k = c         |
  | 공개입력|  0  |  0  |  1  |  0  |  0  | c = x (PI = -x)   |

**배선(Copy) 제약**:
  서로 다른 게이트의 배선이 같은 값을 가져야 함을 표현한다.
  순열(permutation)로 인코딩되어 Round 2에서 증명된다.

**CircuitBuilder**:
  송금 회로처럼 게이트가 수백 개인 회로는 배선 위치를 손으로 연결할 수 없다.
  CircuitBuilder는 "변수(variable)" 단위로 회로를 기술하고,
  같은 변수가 등장한 배선 위치들을 자동으로 copy constraint로 연결한다.
  또한 변수 값이 주어지면 배선 값(witness)도 함께 채운다.

사용 예시:
    >>> builder = CircuitBuilder()
    >>> x = builder.var(FR(3))
    >>> y = builder.var(FR(9))
    >>> builder.add_gate(x, x, y, q_m=1, q_o=-1)   # x·x = y
    >>> circuit = builder.build()
    >>> a, b, c = builder.wire_values()
"""

import hashlib

from privtx.plonk.field import FR


class Gate:
    """PLONK 산술 게이트.

    게이트 방정식: q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0
    """

    def __init__(self, q_l, q_r, q_o, q_m, q_c):
        self.q_l = q_l if isinstance(q_l, FR) else FR(q_l)
        self.q_r = q_r if isinstance(q_r, FR) else FR(q_r)
        self.q_o = q_o if isinstance(q_o, FR) else FR(q_o)
        self.q_m = q_m if isinstance(q_m, FR) else FR(q_m)
        self.q_c = q_c if isinstance(q_c, FR) else FR(q_c)

    def check(self, a, b, c, pi=0):
        """게이트 제약이 만족되는지 확인한다.

        q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C + PI == 0 ?

        Args:
            a, b, c: 배선 값 (FR 원소)
            pi: 이 행의 PI(ωⁱ) 값 (공개 입력 게이트가 아니면 0)

        Returns:
            bool: 제약 만족 여부
        """
        a = a if isinstance(a, FR) else FR(a)
        b = b if isinstance(b, FR) else FR(b)
        c = c if isinstance(c, FR) else FR(c)
        pi = pi if isinstance(pi, FR) else FR(pi)
        result = (
            self.q_l * a
            + self.q_r * b
            + self.q_o * c
            + self.q_m * (a * b)
            + self.q_c
            + pi
        )
        return result == FR(0)


class Circuit:
    """PLONK 산술 회로.

    게이트들의 리스트와 배선 연결(copy constraint) 정보를 관리한다.

    속성:
        gates: Gate 객체 리스트
        n: 게이트 수
        copy_constraints: (i1, j1, i2, j2) 튜플 리스트
            - 게이트 i1의 j1번째 배선 == 게이트 i2의 j2번째 배선
            - j=0: a(왼쪽), j=1: b(오른쪽), j=2: c(출력)
        num_public_inputs: 공개 입력의 수 (항상 회로의 첫 행들에 위치)
    """

    def __init__(self):
        self.gates = []
        self.copy_constraints = []
        self.num_public_inputs = 0

    @property
    def n(self):
        """게이트 수."""
        return len(self.gates)

    def add_gate(self, q_l=0, q_r=0, q_o=0, q_m=0, q_c=0):
        """임의의 셀렉터를 가진 게이트를 추가하고 인덱스를 반환한다."""
        self.gates.append(Gate(q_l, q_r, q_o, q_m, q_c))
        return len(self.gates) - 1

    def add_public_input_gate(self):
        """공개 입력 게이트 추가: c = public_input (PI로 처리).

        공개 입력 게이트: q_L=0, q_R=0, q_O=1, q_M=0, q_C=0
        → c + PI(ωⁱ) = 0  →  c = -PI(ωⁱ)

        공개 입력은 PI 다항식의 첫 행들에 배치되므로
        다른 게이트보다 먼저 추가되어야 한다.

        Raises:
            ValueError: 일반 게이트가 이미 추가된 뒤에 호출한 경우
        """
        if len(self.gates) != self.num_public_inputs:
            raise ValueError("공개 입력 게이트는 회로의 첫 행들에만 둘 수 있습니다")
        index = self.add_gate(q_o=1)
        self.num_public_inputs += 1
        return index

    def add_copy_constraint(self, gate1, wire1, gate2, wire2):
        """배선 복사 제약 추가: 게이트1.wire1 == 게이트2.wire2.

        Args:
            gate1: 첫 번째 게이트 인덱스
            wire1: 첫 번째 배선 (0=a, 1=b, 2=c)
            gate2: 두 번째 게이트 인덱스
            wire2: 두 번째 배선 (0=a, 1=b, 2=c)
        """
        self.copy_constraints.append((gate1, wire1, gate2, wire2))

    def get_selector_polynomials(self):
        """셀렉터 벡터를 반환한다.

        Returns:
            tuple: (q_L, q_R, q_O, q_M, q_C): 각각 FR 원소 리스트
        """
        q_l = [g.q_l for g in self.gates]
        q_r = [g.q_r for g in self.gates]
        q_o = [g.q_o for g in self.gates]
        q_m = [g.q_m for g in self.gates]
        q_c = [g.q_c for g in self.gates]
        return q_l, q_r, q_o, q_m, q_c

    def build_copy_constraints(self):
        """배선 순열(permutation) σ를 구성한다.

        3n개의 배선 위치 (a₀..a_{n-1}, b₀..b_{n-1}, c₀..c_{n-1})에 대해
        같은 값을 가져야 하는 위치들을 순환(cycle)으로 연결한다.

        각 copy constraint는 두 위치의 σ 값을 교환(swap)한다.
        두 위치가 서로 다른 순환에 있으면 교환은 두 순환을 하나로 병합한다.
        CircuitBuilder는 새 위치를 항상 기존 순환에 하나씩 이어 붙이므로
        이 조건이 항상 성립한다.

        Returns:
            list[int]: 길이 3n의 순열 배열.
        """
        n = self.n
        sigma = list(range(3 * n))

        for g1, w1, g2, w2 in self.copy_constraints:
            pos1 = w1 * n + g1
            pos2 = w2 * n + g2
            sigma[pos1], sigma[pos2] = sigma[pos2], sigma[pos1]

        return sigma

    def digest(self):
        """회로 구조(셀렉터 + 순열)의 SHA-256 지문을 16진 문자열로 반환한다.

        증명 키와 회로 레이아웃이 일치하는지 확인하는 데 사용한다.
        """
        h = hashlib.sha256()
        h.update(self.n.to_bytes(8, "big"))
        h.update(self.num_public_inputs.to_bytes(8, "big"))
        for selector in self.get_selector_polynomials():
            for value in selector:
                h.update(int(value).to_bytes(32, "big"))
        for pos in self.build_copy_constraints():
            h.update(pos.to_bytes(8, "big"))
        return h.hexdigest()


class CircuitBuilder:
    """변수 기반 회로 빌더.

    변수(variable)는 정수 ID로 표현되며, 선택적으로 FR 값을 가진다.
    add_gate()에 전달된 변수들은 해당 게이트의 배선 위치에 기록되고,
    build() 시 같은 변수의 위치들이 copy constraint로 연결된다.

    값이 없는 빌더(키 생성용)와 값이 있는 빌더(증명용)는
    같은 순서로 호출되면 완전히 같은 회로를 만든다.

    속성:
        circuit: 구성 중인 Circuit
        wires: 게이트별 (a 변수, b 변수, c 변수) 튜플 리스트
        values: 변수 ID → FR 값 (값을 모르면 항목 없음)
    """

    def __init__(self):
        self.circuit = Circuit()
        self.wires = []
        self.values = {}
        self._num_vars = 0

    def var(self, value=None):
        """새 변수를 만든다. value가 주어지면 FR로 저장한다."""
        index = self._num_vars
        self._num_vars += 1
        if value is not None:
            self.values[index] = value if isinstance(value, FR) else FR(value)
        return index

    def value(self, variable):
        """변수의 값 (모르면 None)."""
        return self.values.get(variable)

    def _wire(self, variable):
        # 쓰이지 않는 배선은 값 0의 새 변수로 채운다
        if variable is None:
            return self.var(FR(0))
        return variable

    def add_gate(self, a=None, b=None, c=None, q_l=0, q_r=0, q_o=0, q_m=0, q_c=0):
        """게이트를 추가하고 세 배선에 변수를 연결한다.

        Returns:
            int: 추가된 게이트의 인덱스
        """
        index = self.circuit.add_gate(q_l, q_r, q_o, q_m, q_c)
        self.wires.append((self._wire(a), self._wire(b), self._wire(c)))
        return index

    def public_input(self, variable):
        """variable을 공개 입력으로 노출하는 게이트를 추가한다 (c 배선)."""
        index = self.circuit.add_public_input_gate()
        self.wires.append((self._wire(None), self._wire(None), variable))
        return index

    def build(self):
        """회로를 2의 거듭제곱 크기로 패딩하고 copy constraint를 연결한다.

        Returns:
            Circuit: 완성된 회로
        """
        size = 1
        while size < len(self.wires):
            size <<= 1
        while len(self.wires) < size:
            self.add_gate()

        occurrences = {}
        for gate_index, triple in enumerate(self.wires):
            for wire_index, variable in enumerate(triple):
                occurrences.setdefault(variable, []).append((gate_index, wire_index))

        self.circuit.copy_constraints = []
        for positions in occurrences.values():
            for (g1, w1), (g2, w2) in zip(positions, positions[1:]):
                self.circuit.add_copy_constraint(g1, w1, g2, w2)

        return self.circuit

    def wire_values(self):
        """배선 값 리스트 (a_vals, b_vals, c_vals)를 반환한다.

        Raises:
            ValueError: 값이 할당되지 않은 변수가 배선에 있을 때
        """
        a_vals, b_vals, c_vals = [], [], []
        for triple in self.wires:
            for column, variable in zip((a_vals, b_vals, c_vals), triple):
                if variable not in self.values:
                    raise ValueError(f"변수 {variable}에 값이 할당되지 않았습니다")
                column.append(self.values[variable])
        return a_vals, b_vals, c_vals

    def unsatisfied_gates(self, public_inputs):
        """제약을 만족하지 않는 게이트 인덱스 리스트 (디버깅/테스트용)."""
        a_vals, b_vals, c_vals = self.wire_values()
        failed = []
        for i, gate in enumerate(self.circuit.gates):
            pi = FR(0) - FR(public_inputs[i]) if i < len(public_inputs) else FR(0)
            if not gate.check(a_vals[i], b_vals[i], c_vals[i], pi):
                failed.append(i)
        return failed

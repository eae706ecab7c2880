"""
PLONK 증명 백엔드
==================

송금 회로에 대한 신뢰 설정, 키 파일 관리, 증명 생성과 검증을 담당한다.
오케스트레이터와 정산 원장은 이 모듈의 좁은 인터페이스만 사용한다.

  prove(witness)                 → (Proof, 공개 신호 8개)
  verify(public_signals, proof)  → bool

**키 파일** (keys_dir 아래 JSON):
  proving_key.json       회로 파라미터 + SRS + 전처리 데이터
  verification_key.json  회로 파라미터 + 검증 키

**SRS 크기**:
  회로 크기 n에 대해 최대 차수 n + SRS_MARGIN 의 SRS를 만든다.
  블라인딩 후 가장 큰 다항식(z(x), t 분할 조각)의 차수가 n + 5 이하이다.

사용 예시:
    >>> pk, vk = setup(CircuitParams(amount_bits=64))
    >>> write_keys("keys", pk, vk)
    >>> backend = PlonkBackend.from_keys_dir("keys")
    >>> proof, signals = backend.prove(witness)
    >>> backend.verify(signals, proof)
    True
"""

import json
import logging
import os
import time

from privtx.plonk.srs import SRS
from privtx.plonk.preprocessor import preprocess
from privtx.plonk.prover import Proof, prove
from privtx.plonk.verifier import verify
from privtx.transfer_circuit import CircuitParams, NUM_PUBLIC_SIGNALS, synthesize
from privtx.hashing import MiMCHash
from privtx.errors import ArtifactError, ProvingError, InternalInconsistencyError
from privtx import serializers


logger = logging.getLogger(__name__)

PROVING_KEY_FILE = "proving_key.json"
VERIFICATION_KEY_FILE = "verification_key.json"

SRS_MARGIN = 10


class ProvingKey:
    """증명 키: 회로 파라미터, SRS, 전처리 데이터."""

    def __init__(self, params, srs, preprocessed):
        self.params = params
        self.srs = srs
        self.preprocessed = preprocessed

    @property
    def circuit_digest(self):
        return self.preprocessed.circuit_digest

    def verifying_key(self):
        return self.preprocessed.verifying_key(self.srs)

    def to_dict(self):
        return {
            "params": self.params.to_dict(),
            "srs": serializers.serialize_srs(self.srs),
            "preprocessed": serializers.serialize_preprocessed(self.preprocessed),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            CircuitParams(**data["params"]),
            serializers.deserialize_srs(data["srs"]),
            serializers.deserialize_preprocessed(data["preprocessed"]),
        )


# ─────────────────────────────────────────────────────────────────────
# 신뢰 설정
# ─────────────────────────────────────────────────────────────────────

def setup(params=None, seed=None):
    """송금 회로의 증명 키와 검증 키를 생성한다.

    Args:
        params: CircuitParams (기본: 64비트 금액, 110 라운드)
        seed: SRS 시드. 테스트 전용이며 운영 키는 None으로 만든다.

    Returns:
        (ProvingKey, VerifyingKey)
    """
    params = params or CircuitParams()
    start = time.time()

    circuit = synthesize(params).circuit
    srs = SRS.generate(circuit.n + SRS_MARGIN, seed=seed)
    preprocessed = preprocess(circuit, srs)

    proving_key = ProvingKey(params, srs, preprocessed)
    logger.info(
        "키 생성 완료: n=%d, amount_bits=%d, hash_rounds=%d, digest=%s (%.2fs)",
        preprocessed.n, params.amount_bits, params.hash_rounds,
        preprocessed.circuit_digest[:16], time.time() - start,
    )
    return proving_key, proving_key.verifying_key()


def write_keys(keys_dir, proving_key, verifying_key):
    """키 파일 두 개를 keys_dir에 쓴다."""
    os.makedirs(keys_dir, exist_ok=True)
    pk_path = os.path.join(keys_dir, PROVING_KEY_FILE)
    vk_path = os.path.join(keys_dir, VERIFICATION_KEY_FILE)

    with open(pk_path, "w") as f:
        json.dump(proving_key.to_dict(), f)
    with open(vk_path, "w") as f:
        json.dump({
            "params": proving_key.params.to_dict(),
            "key": serializers.serialize_verifying_key(verifying_key),
        }, f, indent=2)

    logger.info("키 파일 저장: %s, %s", pk_path, vk_path)
    return pk_path, vk_path


def _read_json(path):
    if not os.path.isfile(path):
        raise ArtifactError(f"키 파일이 없습니다: {path}", path=path)
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise ArtifactError(f"키 파일을 읽을 수 없습니다: {path}", path=path) from e


def load_proving_key(path):
    """증명 키 파일을 읽는다.

    Raises:
        ArtifactError: 파일이 없거나 손상되었을 때
    """
    data = _read_json(path)
    try:
        proving_key = ProvingKey.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(f"증명 키 형식이 올바르지 않습니다: {path}", path=path) from e
    if not proving_key.srs.check_consistency():
        raise ArtifactError(f"SRS 거듭제곱이 일관되지 않습니다: {path}", path=path)
    return proving_key


def load_verifying_key(path):
    """검증 키 파일을 읽는다.

    Returns:
        (CircuitParams, VerifyingKey)

    Raises:
        ArtifactError: 파일이 없거나 손상되었을 때
    """
    data = _read_json(path)
    try:
        return (
            CircuitParams(**data["params"]),
            serializers.deserialize_verifying_key(data["key"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(f"검증 키 형식이 올바르지 않습니다: {path}", path=path) from e


# ─────────────────────────────────────────────────────────────────────
# 백엔드
# ─────────────────────────────────────────────────────────────────────

class PlonkBackend:
    """송금 회로용 PLONK 백엔드.

    검증만 하는 쪽(정산 원장)은 proving_key 없이 만들 수 있다.

    Args:
        params: CircuitParams
        verifying_key: VerifyingKey
        proving_key: ProvingKey 또는 None
    """

    def __init__(self, params, verifying_key, proving_key=None):
        self.params = params
        self.verifying_key = verifying_key
        self.proving_key = proving_key
        self.hasher = MiMCHash(params.hash_rounds)

        if verifying_key.num_public_inputs != NUM_PUBLIC_SIGNALS:
            raise ArtifactError("검증 키의 공개 입력 수가 송금 회로와 다릅니다")
        expected = synthesize(params, hasher=self.hasher).circuit.digest()
        if verifying_key.circuit_digest != expected:
            raise ArtifactError("검증 키가 현재 송금 회로와 일치하지 않습니다")
        if proving_key is not None:
            if proving_key.params != params:
                raise ArtifactError("증명 키와 검증 키의 회로 파라미터가 다릅니다")
            if proving_key.circuit_digest != expected:
                raise ArtifactError("증명 키가 현재 송금 회로와 일치하지 않습니다")

    @classmethod
    def from_keys(cls, proving_key, verifying_key):
        return cls(proving_key.params, verifying_key, proving_key)

    @classmethod
    def from_keys_dir(cls, keys_dir, require_proving_key=True):
        """keys_dir의 키 파일로 백엔드를 만든다.

        Raises:
            ArtifactError: 키 파일이 없거나 손상되었거나 서로 맞지 않을 때
        """
        params, verifying_key = load_verifying_key(
            os.path.join(keys_dir, VERIFICATION_KEY_FILE)
        )
        proving_key = None
        if require_proving_key:
            proving_key = load_proving_key(os.path.join(keys_dir, PROVING_KEY_FILE))
        logger.info("키 로드 완료: %s (n=%d)", keys_dir, verifying_key.n)
        return cls(params, verifying_key, proving_key)

    @property
    def can_prove(self):
        return self.proving_key is not None

    def prove(self, witness):
        """witness로 증명을 생성한다.

        Returns:
            (Proof, list[int]): 증명과 8개의 공개 신호

        Raises:
            ArtifactError: 증명 키가 없을 때
            InternalInconsistencyError: witness가 회로 제약을 만족하지 않을 때
            ProvingError: 증명 생성 중 산술 오류나 메모리 부족 (재시도 가능)
        """
        if self.proving_key is None:
            raise ArtifactError("증명 키 없이 증명을 생성할 수 없습니다")

        tc = synthesize(self.params, witness, hasher=self.hasher)
        signals = tc.public_signals()
        if signals is None:
            raise InternalInconsistencyError("공개 신호가 모두 계산되지 않았습니다")

        failed = tc.builder.unsatisfied_gates(signals)
        if failed:
            raise InternalInconsistencyError(
                "witness가 회로 제약을 만족하지 않습니다",
                gates=failed[:10], count=len(failed),
            )

        a_vals, b_vals, c_vals = tc.builder.wire_values()
        try:
            proof = prove(
                a_vals, b_vals, c_vals, signals,
                self.proving_key.preprocessed, self.proving_key.srs,
            )
        except (MemoryError, RecursionError) as e:
            logger.error("증명 생성 중 자원 고갈: %s", type(e).__name__)
            raise ProvingError("증명 생성 중 자원이 부족합니다", cause=type(e).__name__) from e
        except (ValueError, ArithmeticError, TypeError) as e:
            raise ProvingError(f"증명 생성 실패: {e}", cause=type(e).__name__) from e

        return proof, signals

    def verify(self, public_signals, proof):
        """증명을 검증한다. 형식이 잘못된 입력은 False.

        Args:
            public_signals: 8개의 정수
            proof: Proof 또는 24개의 정수
        """
        if not isinstance(proof, Proof):
            try:
                proof = Proof.from_elements(int(e) for e in proof)
            except (TypeError, ValueError) as e:
                logger.warning("증명 형식 오류: %s", e)
                return False

        try:
            signals = [int(s) for s in public_signals]
        except (TypeError, ValueError):
            return False

        # 개수와 필드 범위는 verify()가 확인한다
        return verify(proof, signals, self.verifying_key)

"""
설정 (Settings)
================

PRIVTX_* 환경 변수에서 읽는 실행 설정과 로깅 초기화.

  | 환경 변수                 | 기본값              | 의미                         |
  |---------------------------|---------------------|------------------------------|
  | PRIVTX_KEYS_DIR           | keys                | 증명/검증 키 디렉토리        |
  | PRIVTX_DB_PATH            | settlement_db.json  | 정산 원장 TinyDB 파일        |
  | PRIVTX_AMOUNT_BITS        | 64                  | 금액 범위 검사 비트 수       |
  | PRIVTX_HASH_ROUNDS        | 110                 | MiMC 라운드 수               |
  | PRIVTX_TAG_SCHEME         | address             | 수신자 태그 방식             |
  | PRIVTX_PROOF_TIMEOUT      | 120                 | 증명 생성 대기 한도 (초)     |
  | PRIVTX_MAX_WORKERS        | (CPU 코어 수)       | 증명 작업 스레드 수          |
  | PRIVTX_LOG_LEVEL          | INFO                | 로그 레벨                    |
  | PRIVTX_LOG_FILE           | (없음)              | 로그 파일 경로               |
"""

import logging
import os
from dataclasses import dataclass, asdict
from typing import Optional

from privtx.hashing import DEFAULT_ROUNDS
from privtx.recipient import TAG_SCHEMES
from privtx.transfer_circuit import CircuitParams, DEFAULT_AMOUNT_BITS


ENV_PREFIX = "PRIVTX_"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    keys_dir: str = "keys"
    db_path: str = "settlement_db.json"
    amount_bits: int = DEFAULT_AMOUNT_BITS
    hash_rounds: int = DEFAULT_ROUNDS
    tag_scheme: str = "address"
    proof_timeout: float = 120.0
    max_workers: Optional[int] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.tag_scheme not in TAG_SCHEMES:
            raise ValueError(
                f"tag_scheme은 {TAG_SCHEMES} 중 하나여야 합니다: {self.tag_scheme!r}"
            )
        if self.proof_timeout <= 0:
            raise ValueError("proof_timeout은 0보다 커야 합니다")
        if self.max_workers is None:
            self.max_workers = os.cpu_count() or 1
        if self.max_workers < 1:
            raise ValueError("max_workers는 1 이상이어야 합니다")
        # 범위 검사
        CircuitParams(self.amount_bits, self.hash_rounds)

    @property
    def circuit_params(self):
        return CircuitParams(self.amount_bits, self.hash_rounds)

    def to_dict(self):
        return asdict(self)


_CASTS = {
    "amount_bits": int,
    "hash_rounds": int,
    "proof_timeout": float,
    "max_workers": int,
}


def load_settings(environ=None, **overrides):
    """환경 변수와 overrides로 Settings를 만든다.

    overrides가 환경 변수보다 우선한다.

    Raises:
        ValueError: 값의 형식이나 범위가 잘못되었을 때
    """
    environ = os.environ if environ is None else environ
    values = {}
    for name in Settings.__dataclass_fields__:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is None or raw == "":
            continue
        cast = _CASTS.get(name, str)
        try:
            values[name] = cast(raw)
        except ValueError as e:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} 값이 잘못되었습니다: {raw!r}") from e
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


def setup_logging(level="INFO", log_file=None):
    """루트 로거에 콘솔(과 선택적으로 파일) 핸들러를 붙인다."""
    handlers = [logging.StreamHandler()]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

"""
privtx 명령줄 도구
===================

  python -m privtx.cli setup             SRS와 증명/검증 키 생성
  python -m privtx.cli whitelist 1998    자산 화이트리스트 등록 (--remove 로 해제)
  python -m privtx.cli check-whitelist 1998 2000
  python -m privtx.cli prove request.json --out proof.json

설정 기본값은 PRIVTX_* 환경 변수에서 읽고, 옵션이 우선한다.
"""

import argparse
import json
import logging
import sys

from privtx.backend import setup, write_keys
from privtx.config import load_settings, setup_logging
from privtx.errors import PrivateTransferError
from privtx.orchestrator import ProofOrchestrator
from privtx.settlement import SettlementLedger


logger = logging.getLogger("privtx.cli")


def cmd_setup(args, settings):
    params = settings.circuit_params
    proving_key, verifying_key = setup(params, seed=args.seed)
    pk_path, vk_path = write_keys(settings.keys_dir, proving_key, verifying_key)
    print(f"n = {proving_key.preprocessed.n}")
    print(f"circuit digest = {proving_key.circuit_digest}")
    print(f"proving key  → {pk_path}")
    print(f"verifying key → {vk_path}")
    if args.seed is not None:
        print("경고: seed로 만든 키는 테스트 전용입니다")
    return 0


def cmd_whitelist(args, settings):
    ledger = SettlementLedger.open(settings.db_path, verifier=None)
    try:
        for asset_id in args.asset_ids:
            ledger.set_asset_whitelist(asset_id, allowed=not args.remove)
            state = "해제" if args.remove else "등록"
            print(f"assetId {asset_id}: {state}")
    finally:
        ledger.close()
    return 0


def cmd_check_whitelist(args, settings):
    ledger = SettlementLedger.open(settings.db_path, verifier=None)
    try:
        missing = 0
        for asset_id in args.asset_ids:
            allowed = ledger.is_asset_whitelisted(asset_id)
            missing += 0 if allowed else 1
            print(f"assetId {asset_id}: {'✅ whitelisted' if allowed else '❌ not whitelisted'}")
    finally:
        ledger.close()
    return 1 if missing else 0


def cmd_prove(args, settings):
    with open(args.request) as f:
        request = json.load(f)

    with ProofOrchestrator.from_settings(settings) as orchestrator:
        result = orchestrator.generate_proof(request)
        payload = orchestrator.format_for_settlement(result.proof, result.public_signals)

    output = result.to_dict()
    output["settlement"] = payload.to_dict()
    text = json.dumps(output, indent=2)
    if args.out:
        with open(args.out, "w") as f:
            f.write(text)
        print(f"valid = {result.valid}, settleable = {result.settleable}, proof → {args.out}")
    else:
        print(text)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="privtx", description="PLONK 비공개 송금 도구")
    parser.add_argument("--keys-dir", help="키 디렉토리 (PRIVTX_KEYS_DIR)")
    parser.add_argument("--db", dest="db_path", help="정산 원장 파일 (PRIVTX_DB_PATH)")
    parser.add_argument("--log-level", help="로그 레벨 (PRIVTX_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("setup", help="SRS와 키 생성")
    p.add_argument("--amount-bits", type=int)
    p.add_argument("--hash-rounds", type=int)
    p.add_argument("--seed", help="결정론적 SRS 시드 (테스트 전용)")
    p.set_defaults(func=cmd_setup)

    p = sub.add_parser("whitelist", help="자산 화이트리스트 등록/해제")
    p.add_argument("asset_ids", type=int, nargs="+")
    p.add_argument("--remove", action="store_true")
    p.set_defaults(func=cmd_whitelist)

    p = sub.add_parser("check-whitelist", help="자산 화이트리스트 확인")
    p.add_argument("asset_ids", type=int, nargs="+")
    p.set_defaults(func=cmd_check_whitelist)

    p = sub.add_parser("prove", help="요청 JSON으로 증명 생성")
    p.add_argument("request", help="송금 요청 JSON 파일")
    p.add_argument("--out", help="결과 파일 (없으면 표준 출력)")
    p.set_defaults(func=cmd_prove)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = load_settings(
        keys_dir=args.keys_dir,
        db_path=args.db_path,
        log_level=args.log_level,
        amount_bits=getattr(args, "amount_bits", None),
        hash_rounds=getattr(args, "hash_rounds", None),
    )
    setup_logging(settings.log_level, settings.log_file)

    try:
        return args.func(args, settings)
    except PrivateTransferError as e:
        logger.error("%s: %s", type(e).__name__, e.message)
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())

"""
privtx HTTP 서버
=================

  python app.py

PRIVTX_KEYS_DIR의 키로 오케스트레이터를 만들고, PRIVTX_DB_PATH의 TinyDB
파일을 정산 원장으로 연다. 키가 없으면 시작하지 않는다 (ArtifactError).
"""

import os

from flask import Flask

from privtx.config import load_settings, setup_logging
from privtx.orchestrator import ProofOrchestrator
from privtx.settlement import SettlementLedger

from transfer_routes import transfer_bp, init_transfer_bp


def create_app(settings=None, orchestrator=None, ledger=None):
    """Flask 앱을 만든다. 테스트에서는 오케스트레이터와 원장을 주입한다."""
    settings = settings or load_settings()
    if orchestrator is None:
        orchestrator = ProofOrchestrator.from_settings(settings)
    if ledger is None:
        ledger = SettlementLedger.open(
            settings.db_path, orchestrator.backend, tag_scheme=settings.tag_scheme
        )

    app = Flask(__name__)
    app.config["PRIVTX_SETTINGS"] = settings.to_dict()
    init_transfer_bp(orchestrator, ledger)
    app.register_blueprint(transfer_bp)
    return app


if __name__ == "__main__":
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))

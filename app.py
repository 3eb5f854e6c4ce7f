"""
MiMC 프런티어 누적자 Flask 애플리케이션
========================================

실행:
    flask --app app run

설정 (기본값 → ZKMERKLE_* 환경 변수 → create_app 인자 순으로 덮어쓴다):
    SECRET_KEY          Flask 세션 키
    TREE_DB_PATH        TinyDB 파일 경로 (기본값: db.json)
    TREE_DB_IN_MEMORY   True이면 MemoryStorage 사용 (테스트용)
    LOG_LEVEL           로깅 레벨 (기본값: INFO)

예시:
    ZKMERKLE_TREE_DB_PATH=/var/lib/tree.json ZKMERKLE_LOG_LEVEL=DEBUG flask --app app run
"""

import logging

from flask import Flask, redirect, url_for

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from tree_routes import tree_bp, init_tree_bp


DEFAULT_CONFIG = {
    "SECRET_KEY": "key",
    "TREE_DB_PATH": "db.json",
    "TREE_DB_IN_MEMORY": False,
    "LOG_LEVEL": "INFO",
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _resolve_log_level(raw):
    """문자열/정수 로깅 레벨을 정수로 변환한다. 알 수 없으면 INFO."""
    if isinstance(raw, int):
        return raw
    return getattr(logging, str(raw or "INFO").upper(), logging.INFO)


def open_db(config):
    """설정에 따라 TinyDB를 연다."""
    if config["TREE_DB_IN_MEMORY"]:
        return TinyDB(storage=MemoryStorage)  # Memory DB
    return TinyDB(config["TREE_DB_PATH"])     # Storage DB


def create_app(test_config=None):
    """애플리케이션 팩토리."""
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env("ZKMERKLE")
    if test_config is not None:
        app.config.from_mapping(test_config)

    logging.basicConfig(level=_resolve_log_level(app.config["LOG_LEVEL"]), format=LOG_FORMAT)

    db = open_db(app.config)
    app.extensions["tree_db"] = db
    init_tree_bp(db)
    app.register_blueprint(tree_bp)

    @app.route("/")
    def index():
        return redirect(url_for("tree.tree_state"))

    logging.getLogger(__name__).info(
        "tree service ready (storage=%s)",
        "memory" if app.config["TREE_DB_IN_MEMORY"] else app.config["TREE_DB_PATH"],
    )
    return app


if __name__ == "__main__":
    create_app().run()

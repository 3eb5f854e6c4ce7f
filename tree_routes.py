"""
누적자 Flask Blueprint: 모든 트리 엔드포인트
=======================================

  GET  /tree/state    현재 스냅샷 (높이, 리프 수, 루트, 프런티어)
  POST /tree/leaf     리프 하나 삽입           {"value": v}
  POST /tree/leaves   리프 여러 개 삽입        {"values": [v, ...]}
  GET  /tree/events   삽입 이벤트 목록         ?since=seq
  GET  /tree/hash     2-to-1 MiMC 압축         ?left=a&right=b
  POST /tree/clear    상태와 이벤트 초기화

누적자는 요청마다 DB에서 복원되고, 삽입 후 스냅샷이 다시 저장된다.
TinyDB는 스레드 안전하지 않으므로 모든 DB 접근(복원-삽입-저장, 조회)은
하나의 잠금 아래에서 직렬화된다.
삽입 이벤트는 버퍼에 모았다가 상태 저장이 끝난 뒤에 기록한다.
"""

import logging
import threading

from flask import Blueprint, jsonify, request
from tinydb import Query

from zkmerkle.errors import AccumulatorError, CapacityExceeded, InvalidParameter
from zkmerkle.events import EventLog
from zkmerkle.merkle_tree import FrontierAccumulator
from zkmerkle.mimc import mimc_hash2

from tree_serializers import (
    serialize_fr,
    serialize_snapshot,
    deserialize_tree,
    serialize_event,
    parse_field_value,
    fr_short,
)

logger = logging.getLogger(__name__)

tree_bp = Blueprint('tree', __name__, url_prefix='/tree')

DATA = Query()

# DB는 app.py에서 주입
DB = None

# 모든 DB 접근(복원-변경-저장, 조회)을 직렬화
_TREE_LOCK = threading.Lock()

STATE_KEY = "tree.state"
EVENTS_TABLE = "events"


def init_tree_bp(db):
    """app.py에서 DB를 주입받는다."""
    global DB
    DB = db


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def db_remove(key):
    """DB에서 키를 삭제한다."""
    DB.remove(DATA.type == key)


def events_table():
    return DB.table(EVENTS_TABLE)


# ─── 누적자 복원/저장 ───

def _load_tree():
    """저장된 상태로 누적자를 복원하고 이벤트 버퍼를 구독시킨다.

    Returns:
        (FrontierAccumulator, EventLog)
    """
    raw = db_get(STATE_KEY)
    tree = FrontierAccumulator() if raw is None else deserialize_tree(raw)
    pending = tree.subscribe(EventLog())
    return tree, pending


def _store_tree(tree, pending):
    """상태를 먼저 저장하고, 성공하면 버퍼의 이벤트를 기록한다."""
    db_set(STATE_KEY, serialize_snapshot(tree.snapshot()))
    for event in pending.events:
        _record_event(event)


def _record_event(event):
    events_table().insert(serialize_event(event))


def _state_payload():
    raw = db_get(STATE_KEY)
    if raw is None:
        raw = serialize_snapshot(FrontierAccumulator().snapshot())
    return raw


def _json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidParameter("JSON 객체 본문이 필요합니다")
    return body


# ─── 오류 처리 ───

@tree_bp.errorhandler(AccumulatorError)
def handle_accumulator_error(err):
    """누적자 오류 → JSON 응답 (CapacityExceeded 409, 나머지 400)."""
    if isinstance(err, CapacityExceeded):
        status, code = 409, "CAPACITY_EXCEEDED"
    else:
        status, code = 400, "INVALID_PARAMETER"
    logger.info("request rejected: %s (%s)", code, err)
    return jsonify({"ok": False, "error": {"code": code, "message": str(err)}}), status


# ──────────────────────────────────────────────────────────────
# 조회
# ──────────────────────────────────────────────────────────────

@tree_bp.route("/state")
def tree_state():
    """현재 스냅샷을 반환한다."""
    with _TREE_LOCK:
        payload = _state_payload()
    return jsonify(payload)


@tree_bp.route("/events")
def tree_events():
    """저장된 삽입 이벤트를 순서대로 반환한다. since보다 큰 seq만."""
    since = request.args.get("since", 0, type=int)
    with _TREE_LOCK:
        docs = events_table().all()
    events = []
    for doc in docs:
        if doc.doc_id <= since:
            continue
        item = dict(doc)
        item["seq"] = doc.doc_id
        events.append(item)
    return jsonify(events)


@tree_bp.route("/hash")
def tree_hash():
    """두 값의 MiMC 2-to-1 압축 결과를 반환한다."""
    left = request.args.get("left")
    right = request.args.get("right")
    if left is None or right is None:
        raise InvalidParameter("left와 right 쿼리 인자가 필요합니다")
    digest = mimc_hash2(parse_field_value(left), parse_field_value(right))
    return jsonify({"hash": serialize_fr(digest)})


# ──────────────────────────────────────────────────────────────
# 삽입
# ──────────────────────────────────────────────────────────────

@tree_bp.route("/leaf", methods=["POST"])
def tree_insert_leaf():
    """리프 하나를 삽입한다."""
    body = _json_body()
    if "value" not in body:
        raise InvalidParameter("value 필드가 필요합니다")
    value = parse_field_value(body["value"])

    with _TREE_LOCK:
        tree, pending = _load_tree()
        leaf_index = tree.leaf_count
        root = tree.insert_leaf(value)
        _store_tree(tree, pending)

    logger.info("leaf %d inserted, root=%s", leaf_index, fr_short(root))
    return jsonify({
        "ok": True,
        "leaf_index": leaf_index,
        "root": serialize_fr(root),
    })


@tree_bp.route("/leaves", methods=["POST"])
def tree_insert_leaves():
    """리프 여러 개를 삽입한다. 남은 공간을 넘는 값은 검증 없이 잘린다."""
    body = _json_body()
    raw_values = body.get("values")
    if not isinstance(raw_values, list):
        raise InvalidParameter("values 필드는 리스트여야 합니다")

    with _TREE_LOCK:
        tree, pending = _load_tree()
        first_index = tree.leaf_count
        values = [parse_field_value(v) for v in raw_values[:tree.remaining]]
        root = tree.insert_leaves(values)
        accepted = tree.leaf_count - first_index
        _store_tree(tree, pending)

    if accepted < len(raw_values):
        logger.warning("batch of %d leaves truncated to remaining capacity %d",
                       len(raw_values), accepted)
    logger.info("leaves %d..%d inserted (%d submitted), root=%s",
                first_index, first_index + accepted - 1, len(raw_values), fr_short(root))
    return jsonify({
        "ok": True,
        "min_leaf_index": first_index,
        "accepted": accepted,
        "root": serialize_fr(root),
    })


@tree_bp.route("/clear", methods=["POST"])
def tree_clear():
    """트리 상태와 이벤트 기록을 모두 지운다."""
    with _TREE_LOCK:
        db_remove(STATE_KEY)
        events_table().truncate()
    logger.info("tree state cleared")
    return jsonify({"ok": True})

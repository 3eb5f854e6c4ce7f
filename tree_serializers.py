"""
누적자 데이터 직렬화/역직렬화 헬퍼
====================================

TinyDB와 JSON 응답에 저장 가능한 형태로 누적자 객체를 변환한다.
FR, 프런티어, TreeSnapshot, NewLeaf/NewLeaves 이벤트, 요청 본문의 리프 값 등.

필드 원소는 JSON 정수 정밀도 문제를 피하기 위해 10진 문자열로 저장한다.
"""

from zkmerkle.field import FR, to_field_int
from zkmerkle.errors import InvalidParameter
from zkmerkle.events import NewLeaf, NewLeaves
from zkmerkle.merkle_tree import FrontierAccumulator


# ─── FR ───

def serialize_fr(val):
    """FR → str(int), None은 그대로"""
    if val is None:
        return None
    return str(int(val))


def deserialize_fr(s):
    """str(int) → FR, None은 그대로"""
    if s is None:
        return None
    return FR(int(s))


# ─── FR list ───

def serialize_fr_list(lst):
    """list[FR] → list[str]"""
    return [str(int(v)) for v in lst]


def deserialize_fr_list(data):
    """list[str] → list[FR]"""
    return [FR(int(s)) for s in data]


# ─── 요청 값 ───

def parse_field_value(raw):
    """요청 본문의 리프 값을 [0, q) 정수로 변환한다.

    허용 형식: JSON 정수, 10진 문자열 ("123"), 16진 문자열 ("0x7b").

    Raises:
        InvalidParameter: 해석할 수 없는 값
    """
    if isinstance(raw, str):
        text = raw.strip()
        try:
            if text.lower().startswith(("0x", "-0x")):
                raw = int(text, 16)
            else:
                raw = int(text, 10)
        except ValueError:
            raise InvalidParameter(f"필드 원소로 해석할 수 없는 문자열: {raw!r}")
    return to_field_int(raw)


# ─── 트리 상태 ───

def serialize_snapshot(snapshot):
    """TreeSnapshot → dict"""
    return {
        "height": snapshot.height,
        "width": snapshot.width,
        "leaf_count": snapshot.leaf_count,
        "root": serialize_fr(snapshot.root),
        "frontier": serialize_fr_list(snapshot.frontier),
    }


def deserialize_tree(data):
    """dict → FrontierAccumulator (저장된 상태 복원)"""
    return FrontierAccumulator.from_state(
        data["height"],
        data["leaf_count"],
        deserialize_fr_list(data["frontier"]),
        deserialize_fr(data.get("root")),
    )


# ─── 이벤트 ───

def serialize_event(event):
    """NewLeaf / NewLeaves → dict"""
    if isinstance(event, NewLeaf):
        return {
            "event": NewLeaf.name,
            "leaf_index": event.leaf_index,
            "leaf_value": serialize_fr(event.leaf_value),
            "root": serialize_fr(event.root),
        }
    if isinstance(event, NewLeaves):
        return {
            "event": NewLeaves.name,
            "min_leaf_index": event.min_leaf_index,
            "leaf_values": serialize_fr_list(event.leaf_values),
            "root": serialize_fr(event.root),
        }
    raise TypeError(f"알 수 없는 이벤트 타입: {type(event).__name__}")


def deserialize_event(data):
    """dict → NewLeaf / NewLeaves"""
    kind = data.get("event")
    if kind == NewLeaf.name:
        return NewLeaf(data["leaf_index"],
                       deserialize_fr(data["leaf_value"]),
                       deserialize_fr(data["root"]))
    if kind == NewLeaves.name:
        return NewLeaves(data["min_leaf_index"],
                         deserialize_fr_list(data["leaf_values"]),
                         deserialize_fr(data["root"]))
    raise InvalidParameter(f"알 수 없는 이벤트: {kind!r}")


# ─── 표시 헬퍼 ───

def fr_short(val):
    """FR → 축약 문자열 (로그 표시용)"""
    if val is None:
        return "None"
    s = str(int(val))
    if len(s) <= 10:
        return s
    return s[:4] + "..." + s[-4:]

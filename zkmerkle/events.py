"""
누적자 알림(Notification) 이벤트
================================

삽입이 끝날 때마다 누적자가 구독자(listener)에게 전달하는 이벤트.
외부 인덱서가 트리를 재구성하는 데 쓰이며, 누적자 상태에는 되돌아가지 않는
출력 전용 채널이다.

  - NewLeaf(leaf_index, leaf_value, root)         : 단일 삽입
  - NewLeaves(min_leaf_index, leaf_values, root)  : 배치 삽입 (잘린 뒤 실제로 받아들인 값만)
"""


class NewLeaf:
    """단일 리프 삽입 이벤트.

    속성:
        leaf_index: 삽입된 리프의 0-기반 위치
        leaf_value: 삽입된 값 (FR, mod q 축소 후)
        root: 삽입 후 새 루트 (FR)
    """

    name = "NewLeaf"

    def __init__(self, leaf_index, leaf_value, root):
        self.leaf_index = leaf_index
        self.leaf_value = leaf_value
        self.root = root

    def __eq__(self, other):
        if not isinstance(other, NewLeaf):
            return NotImplemented
        return (self.leaf_index, self.leaf_value, self.root) == (
            other.leaf_index, other.leaf_value, other.root
        )

    def __repr__(self):
        return f"NewLeaf(leaf_index={self.leaf_index}, leaf_value={self.leaf_value}, root={self.root})"


class NewLeaves:
    """배치 삽입 이벤트.

    속성:
        min_leaf_index: 첫 번째로 받아들인 리프의 위치
        leaf_values: 받아들인 값 리스트 (잘린 접두부)
        root: 삽입 후 새 루트 (FR)
    """

    name = "NewLeaves"

    def __init__(self, min_leaf_index, leaf_values, root):
        self.min_leaf_index = min_leaf_index
        self.leaf_values = list(leaf_values)
        self.root = root

    def __eq__(self, other):
        if not isinstance(other, NewLeaves):
            return NotImplemented
        return (self.min_leaf_index, self.leaf_values, self.root) == (
            other.min_leaf_index, other.leaf_values, other.root
        )

    def __repr__(self):
        return (f"NewLeaves(min_leaf_index={self.min_leaf_index}, "
                f"leaf_values=<{len(self.leaf_values)} values>, root={self.root})")


class EventLog:
    """이벤트를 순서대로 모으는 단순 구독자.

    예시:
        >>> log = EventLog()
        >>> tree.subscribe(log)
        >>> tree.insert_leaf(1)
        >>> log.events[0].leaf_index   # 0
    """

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def __len__(self):
        return len(self.events)

    def clear(self):
        self.events = []

"""
프런티어(Frontier) Merkle 누적자
=================================

추가 전용(append-only) 리프 시퀀스에 대한 커밋먼트 루트를 유지한다.
전체 트리를 저장하지 않고 높이당 하나의 값(frontier)만 보관한다: O(height).

**노드 번호 (level-order)**:
  루트 = 0, 리프 i의 노드 번호 = i + width - 1

               0
          1         2
        3   4     5   6        ← 높이 2, width 4 예시
       L0  L1    L2  L3

  - 홀수 노드 = 왼쪽 자식, 짝수 노드 = 오른쪽 자식
  - 부모: 짝수 n → (n - 1) // 2,  홀수 n → n // 2

**프런티어 슬롯 (slot)**:
  리프 인덱스의 하위 연속 1비트 개수.
  리프 i가 t개의 연속 1비트로 끝나면, 이 리프로 크기 2^t 서브트리가 완성되고
  그 값은 레벨 t에서 미래의 오른쪽 형제를 기다리는 왼쪽 형제가 된다.

    i = 0b0110 → slot 0   (레벨 0에 리프 자체를 저장)
    i = 0b0111 → slot 3   (레벨 3에 완성된 8-리프 서브트리 값을 저장)

**결합 규칙**:
  - 현재 노드가 짝수(오른쪽 자식): H(frontier[level], node)
  - 현재 노드가 홀수(왼쪽 자식):   H(node, 0)   (아직 없는 오른쪽 형제는 0)

**세 가지 삽입 경로** (단일, 배치, 잘린 배치)는 항상 같은 루트를 만든다.

사용 예시:
    >>> tree = FrontierAccumulator(height=2)
    >>> root = tree.insert_leaf(1)
    >>> root = tree.insert_leaves([2, 3, 4])
    >>> tree.leaf_count   # 4
"""

import logging

from zkmerkle.field import ZERO, to_fr
from zkmerkle.mimc import mimc_hash2
from zkmerkle.errors import CapacityExceeded, InvalidParameter
from zkmerkle.events import NewLeaf, NewLeaves


logger = logging.getLogger(__name__)

# 고정 트리 높이 (최대 2^32 리프)
TREE_HEIGHT = 32


def get_frontier_slot(leaf_index):
    """리프 인덱스의 프런티어 슬롯(하위 연속 1비트 개수)을 반환한다.

    짝수 인덱스는 0. 홀수 인덱스는 e = 1, 2, ...에 대해
    (leaf_index + 1 - 2^e) mod 2^(e+1) == 0 이 처음 성립하는 e이다.
    즉 이 리프로 정확히 e 레벨 위의 쌍이 완성된다.

    Args:
        leaf_index: 0 이상의 정수

    Returns:
        int: 슬롯 (프런티어 레벨)

    예시:
        >>> get_frontier_slot(0b1011)   # 2
        >>> get_frontier_slot(0b1000)   # 0
    """
    if leaf_index < 0:
        raise InvalidParameter(f"리프 인덱스는 0 이상이어야 합니다: {leaf_index}")

    slot = 0
    if leaf_index % 2 == 1:
        exp = 1
        pow1 = 2
        pow2 = pow1 << 1
        while slot == 0:
            if (leaf_index + 1 - pow1) % pow2 == 0:
                slot = exp
            else:
                pow1 = pow2
                pow2 = pow2 << 1
                exp += 1
    return slot


def _merge(node_index, node_value, left_sibling):
    """한 레벨 위로 올라간다. (부모 노드 번호, 부모 값)을 반환."""
    if node_index % 2 == 0:
        return (node_index - 1) // 2, mimc_hash2(left_sibling, node_value)
    return node_index // 2, mimc_hash2(node_value, ZERO)


class TreeSnapshot:
    """삽입 직후 공개되는 불변 상태 스냅샷.

    속성:
        height, width, leaf_count: 트리 크기 정보
        root: 마지막 삽입으로 만들어진 루트 (삽입 전에는 None)
        frontier: 레벨별 프런티어 값 튜플 (길이 height + 1)
    """

    __slots__ = ("height", "width", "leaf_count", "root", "frontier")

    def __init__(self, height, width, leaf_count, root, frontier):
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "width", width)
        object.__setattr__(self, "leaf_count", leaf_count)
        object.__setattr__(self, "root", root)
        object.__setattr__(self, "frontier", tuple(frontier))

    def __setattr__(self, name, value):
        raise AttributeError("TreeSnapshot은 변경할 수 없습니다")

    def __eq__(self, other):
        if not isinstance(other, TreeSnapshot):
            return NotImplemented
        return all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def __repr__(self):
        return (f"TreeSnapshot(height={self.height}, leaf_count={self.leaf_count}, "
                f"root={self.root})")


class FrontierAccumulator:
    """O(height) 상태만 저장하는 추가 전용 Merkle 누적자.

    내부 잠금은 없다. 여러 스레드에서 같은 인스턴스에 삽입한다면
    호출자가 삽입을 직렬화해야 한다 (tree_routes의 잠금 참고).

    속성:
        height: 트리 높이 (인스턴스 생애 동안 고정)
        width: 최대 리프 수 2^height
        leaf_count: 지금까지 삽입된 리프 수
        root: 마지막 삽입으로 만들어진 루트 (FR 또는 None)
    """

    def __init__(self, height=TREE_HEIGHT):
        if isinstance(height, bool) or not isinstance(height, int) or height < 1:
            raise InvalidParameter(f"트리 높이는 1 이상의 정수여야 합니다: {height!r}")
        self.height = height
        self.width = 1 << height
        self.leaf_count = 0
        self.root = None
        self._frontier = [ZERO] * (height + 1)
        self._listeners = []

    @classmethod
    def from_state(cls, height, leaf_count, frontier, root=None):
        """저장된 상태로부터 누적자를 복원한다.

        Raises:
            InvalidParameter: 길이/범위가 맞지 않는 상태
        """
        tree = cls(height)
        if isinstance(leaf_count, bool) or not isinstance(leaf_count, int) \
                or not 0 <= leaf_count <= tree.width:
            raise InvalidParameter(f"leaf_count 범위 오류: {leaf_count!r} (width={tree.width})")
        frontier = list(frontier)
        if len(frontier) != height + 1:
            raise InvalidParameter(
                f"프런티어 길이는 height + 1 = {height + 1}이어야 합니다: {len(frontier)}"
            )
        tree.leaf_count = leaf_count
        tree._frontier = [to_fr(v) for v in frontier]
        tree.root = None if root is None else to_fr(root)
        return tree

    # ─── 조회 ───

    @property
    def frontier(self):
        """프런티어 읽기 전용 사본."""
        return tuple(self._frontier)

    @property
    def remaining(self):
        """남은 리프 공간."""
        return self.width - self.leaf_count

    def snapshot(self):
        return TreeSnapshot(self.height, self.width, self.leaf_count,
                            self.root, self._frontier)

    # ─── 알림 ───

    def subscribe(self, listener):
        """삽입 이벤트 구독자를 등록한다. listener(event) 형태로 호출된다."""
        self._listeners.append(listener)
        return listener

    def _emit(self, event):
        for listener in self._listeners:
            listener(event)

    # ─── 삽입 ───

    def insert_leaf(self, value):
        """리프 하나를 삽입하고 새 루트를 반환한다.

        Args:
            value: 리프 값 (int 또는 FR, mod q로 축소)

        Returns:
            FR: 새 루트

        Raises:
            CapacityExceeded: leaf_count == width
            InvalidParameter: value가 필드 원소로 해석되지 않을 때
        """
        if self.leaf_count >= self.width:
            raise CapacityExceeded(self.leaf_count, self.width)
        value = to_fr(value)

        leaf_index = self.leaf_count
        slot = get_frontier_slot(leaf_index)
        node_index = leaf_index + self.width - 1
        node_value = value

        for level in range(self.height):
            if level == slot:
                self._frontier[slot] = node_value
            node_index, node_value = _merge(node_index, node_value, self._frontier[level])

        # 트리의 마지막 리프: 루트 자체가 레벨 height의 프런티어 값
        if slot == self.height:
            self._frontier[slot] = node_value

        self.root = node_value
        self.leaf_count += 1
        logger.debug("leaf %d inserted (slot=%d), root=%s", leaf_index, slot, int(node_value))

        self._emit(NewLeaf(leaf_index, value, node_value))
        return node_value

    def insert_leaves(self, values):
        """리프 여러 개를 순서대로 삽입하고 새 루트를 반환한다.

        남은 공간보다 많은 값이 주어지면 남은 공간만큼만 받아들인다 (오류 아님).
        버려지는 값은 검증하지 않는다.

        Args:
            values: 리프 값 시퀀스

        Returns:
            FR: 새 루트

        Raises:
            CapacityExceeded: 호출 시점에 남은 공간이 0
            InvalidParameter: 빈 시퀀스이거나 값이 필드 원소로 해석되지 않을 때
        """
        if self.leaf_count >= self.width:
            raise CapacityExceeded(self.leaf_count, self.width)
        values = list(values)
        if not values:
            raise InvalidParameter("삽입할 리프 값이 없습니다")

        # 잘린 값은 검증하지 않고 버린다
        if len(values) > self.remaining:
            logger.warning("batch of %d leaves truncated to remaining capacity %d",
                           len(values), self.remaining)
            values = values[:self.remaining]
        values = [to_fr(v) for v in values]

        first_index = self.leaf_count
        frontier = self._frontier
        slot = 0
        node_index = 0
        node_value = ZERO

        for offset, value in enumerate(values):
            leaf_index = first_index + offset
            node_index = leaf_index + self.width - 1
            node_value = value
            slot = get_frontier_slot(leaf_index)
            if slot == 0:
                frontier[0] = node_value
                continue
            for level in range(1, slot + 1):
                node_index, node_value = _merge(node_index, node_value, frontier[level - 1])
            frontier[slot] = node_value

        # 마지막 리프의 위치에서 루트까지 계속 올라간다
        for level in range(slot + 1, self.height + 1):
            node_index, node_value = _merge(node_index, node_value, frontier[level - 1])

        self.root = node_value
        self.leaf_count += len(values)
        logger.debug("leaves %d..%d inserted, root=%s",
                     first_index, self.leaf_count - 1, int(node_value))

        self._emit(NewLeaves(first_index, values, node_value))
        return node_value

    def __repr__(self):
        return (f"FrontierAccumulator(height={self.height}, leaf_count={self.leaf_count}, "
                f"root={self.root})")

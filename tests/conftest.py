import sys
import os
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from zkmerkle.field import ZERO
from zkmerkle.mimc import mimc_hash2
from zkmerkle.merkle_tree import FrontierAccumulator
from zkmerkle.events import EventLog


# ── 골든 값 (독립 참조 구현으로 계산) ──
MIMC_SEED_INT = 82724731331859054037315113496710413141112897654334566532528783843265082629790
FIRST_ROUND_CONSTANT = 64665447154620533900971238701180756726397234095608233354611348919746363562215

PERMUTE_0_0 = 3220694451492930206981070596744689719056741396165209972711166111570564539210
PERMUTE_1_0 = 17823965053363872915280024682602698824961343567171851153095397503038920504609
PERMUTE_1_2 = 2738594111198126300625134132667792332203023905632444011281216685456901735651

COMPRESS_1_2 = 19670617727424383673977505442868227592029708183490812407091408237538568456292
COMPRESS_0_0 = 21783731659988531455046720456618223572462885645210824868284396990406188448077

# 높이 2 트리
H2_ROOT_LEAF_1 = 13867145486963357597249603143567669739260258509648428163768003445766733525955
H2_ROOT_LEAVES_1_TO_4 = 20420414090257659000698281604109095524812591782599725413736530182913995361156

# 높이 32 트리
H32_ROOT_LEAF_1 = 18800217480009826916188416621534994510321616141423673712388303048644635449439
H32_ROOT_LEAVES_1_2 = 15266487143137700605476044738828407609036257940204777241020060747158510062289


def naive_root(leaves, height):
    """전체 트리를 재귀적으로 계산하는 참조 구현.

    리프가 하나도 없는 서브트리는 0, 그 외에는 H(left, right).
    """
    n = len(leaves)

    def node(level, index):
        start = index << level
        if start >= n:
            return ZERO
        if level == 0:
            return leaves[index]
        return mimc_hash2(node(level - 1, 2 * index), node(level - 1, 2 * index + 1))

    return node(height, 0)


@pytest.fixture
def tree_h2():
    """높이 2 (width 4) 누적자."""
    return FrontierAccumulator(height=2)


@pytest.fixture
def logged_tree_h2():
    """이벤트 로그가 연결된 높이 2 누적자."""
    tree = FrontierAccumulator(height=2)
    log = EventLog()
    tree.subscribe(log)
    return tree, log

"""
누적자 오류 정의
================

- CapacityExceeded: 남은 리프 공간이 전혀 없을 때 (상태 변경 없음)
- InvalidParameter: 호출자 오류 (라운드 수 0, 잘못된 리프 타입, 빈 배치 등)

배치 삽입에서 초과 리프를 잘라내는 것은 오류가 아니다.
"""


class AccumulatorError(Exception):
    """누적자/해시 모듈의 기본 예외."""


class CapacityExceeded(AccumulatorError):
    """트리가 가득 차서 더 이상 리프를 받을 수 없음."""

    def __init__(self, leaf_count, width):
        self.leaf_count = leaf_count
        self.width = width
        super().__init__(f"트리가 가득 찼습니다: leaf_count={leaf_count}, width={width}")


class InvalidParameter(AccumulatorError, ValueError):
    """잘못된 인자 (호출자 오류)."""

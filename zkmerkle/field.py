"""
Merkle 누적자 기반 모듈: 유한체(Finite Field)
================================================

이 모듈은 MiMC 해시와 프런티어(frontier) 누적자 전체에서 사용되는
기본 산술 단위를 정의한다.

**유한체 FR**:
  bn128 타원곡선의 스칼라 필드 (scalar field).
  - 위수(order) q = 0x30644e72...f0000001 ≈ 2^254, 소수체(prime field)
  - 누적자의 모든 노드 값, 리프 값, 루트는 [0, q) 범위의 원소이다.
  - 외부 증명 검증기(verifier)가 루트를 공개 입력으로 사용하므로
    반드시 같은 필드 위에서 계산해야 한다.

**축소(reduction) 규칙**:
  범위를 벗어난 정수는 오류가 아니라 q로 나눈 나머지로 조용히 축소된다.
  단, bool 및 정수가 아닌 타입은 호출자 오류(InvalidParameter)로 처리한다.

사용 예시:
    >>> from zkmerkle.field import FR, CURVE_ORDER, to_fr
    >>> to_fr(CURVE_ORDER + 5)   # FR(5)
    >>> FR(3) * FR(7)            # FR(21)
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128

from zkmerkle.errors import InvalidParameter


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 등의 필드 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x ** 7          # FR(2187)
        >>> int(FR(-1))     # CURVE_ORDER - 1
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기 q)
CURVE_ORDER = bn128.curve_order


def to_field_int(value):
    """정수 또는 FR 원소를 [0, q) 범위의 파이썬 정수로 변환한다.

    Args:
        value: int 또는 FQ 계열 원소

    Returns:
        int: value mod q

    Raises:
        InvalidParameter: value가 정수/필드 원소가 아니거나 bool일 때
    """
    if isinstance(value, FQ):
        return int(value) % CURVE_ORDER
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(
            f"필드 원소는 정수여야 합니다: {value!r} ({type(value).__name__})"
        )
    return value % CURVE_ORDER


def to_fr(value):
    """정수 또는 FR 원소를 FR로 변환한다 (mod q 축소 포함)."""
    if isinstance(value, FR):
        return value
    return FR(to_field_int(value))


ZERO = FR(0)

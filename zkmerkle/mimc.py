"""
MiMC-p/p 순열(permutation) 및 다중 입력 압축 해시
===================================================

Merkle 누적자의 형제 노드 결합에 사용되는 키 기반 고정 라운드 순열.

**단일 입력 순열 MiMCpe7(x, k, seed, rounds)**:
  라운드 상수 체인:
    c₀ = keccak256(seed),  cᵢ = keccak256(cᵢ₋₁)
  (각 값은 32바이트 빅엔디안 워드로 인코딩한 뒤 해싱한다)

  각 라운드:
    x ← (x + cᵢ + k)^7   (mod q)

  마지막에 키를 다시 더한다:
    out = x + k          (mod q)

  지수 7은 이 필드에서 gcd(7, q-1) = 1을 만족하는 가장 작은 지수이며,
  t², (t²)², 그리고 원래 값과의 곱으로 저렴하게 계산된다.

**다중 입력 압축 MiMCpe7_mp(inputs, key)**:
  Merkle-Damgård 방식의 체이닝:
    r ← key
    r ← r + (input mod q) + MiMCpe7(input, r)   (각 입력에 대해, mod q)

  누적자는 항상 두 개의 입력과 key = 0으로만 호출한다 (2-to-1 압축).

**공개 기본값**:
  seed   = keccak256(b"mimc")  (정수로 해석)
  rounds = 91                  (보안 목표 최소 46 라운드 대비 여유)

사용 예시:
    >>> from zkmerkle.mimc import permute, compress, mimc_hash2
    >>> permute(1, 0)
    >>> compress([1, 2], 0) == mimc_hash2(1, 2)   # True
"""

from eth_utils import keccak

from zkmerkle.field import FR, CURVE_ORDER, to_field_int
from zkmerkle.errors import InvalidParameter


# 라운드 상수 시드: keccak256("mimc")를 256비트 정수로 해석한 값
MIMC_SEED = int.from_bytes(keccak(b"mimc"), "big")

# 기본 라운드 수
MIMC_ROUNDS = 91

# 보안 목표 최소 라운드 수 (참고용)
MIMC_MIN_ROUNDS = 46

# 순열 지수
MIMC_EXPONENT = 7


def round_constants(seed, rounds):
    """라운드 상수 c₀, c₁, ..., c_{rounds-1}을 차례로 생성한다.

    상수는 저장하지 않고 매 호출마다 같은 순서로 다시 생성된다.
    반환값은 축소되지 않은 256비트 정수이며, q로의 축소는 라운드 갱신에서 일어난다.

    Args:
        seed: 256비트 이하의 음이 아닌 정수
        rounds: 생성할 상수 개수

    Yields:
        int: keccak256 체인 값
    """
    c = seed
    for _ in range(rounds):
        c = int.from_bytes(keccak(c.to_bytes(32, "big")), "big")
        yield c


def mimc_pe7(in_x, in_k, seed=MIMC_SEED, rounds=MIMC_ROUNDS):
    """단일 입력 MiMC 순열 (지수 7).

    Args:
        in_x: 입력 값 (int 또는 FR)
        in_k: 키 값 (int 또는 FR)
        seed: 라운드 상수 시드 (정수)
        rounds: 라운드 수 (1 이상)

    Returns:
        int: [0, q) 범위의 출력

    Raises:
        InvalidParameter: rounds < 1 이거나 seed가 256비트 정수가 아닐 때
    """
    if rounds < 1:
        raise InvalidParameter(f"라운드 수는 1 이상이어야 합니다: {rounds}")
    if isinstance(seed, bool) or not isinstance(seed, int) or not 0 <= seed < (1 << 256):
        raise InvalidParameter(f"seed는 256비트 음이 아닌 정수여야 합니다: {seed!r}")

    q = CURVE_ORDER
    x = to_field_int(in_x)
    k = to_field_int(in_k)

    for c in round_constants(seed, rounds):
        t = (x + c + k) % q
        a = (t * t) % q
        # t^7 = (t²·(t²·t²))·t
        x = (a * ((a * a) % q)) % q * t % q

    return (x + k) % q


def mimc_pe7_mp(in_x, in_k, seed=MIMC_SEED, rounds=MIMC_ROUNDS):
    """다중 입력 MiMC 압축 (순차 체이닝).

    Args:
        in_x: 입력 값 시퀀스
        in_k: 초기 키
        seed, rounds: mimc_pe7에 그대로 전달

    Returns:
        int: [0, q) 범위의 출력. 입력이 비어 있으면 key mod q.
    """
    q = CURVE_ORDER
    r = to_field_int(in_k)
    for x in in_x:
        x = to_field_int(x)
        r = (r + x + mimc_pe7(x, r, seed, rounds)) % q
    return r


# ─────────────────────────────────────────────────────────────────────
# 공개 API (기본 seed/rounds 고정)
# ─────────────────────────────────────────────────────────────────────

def permute(x, key):
    """기본 seed("mimc")와 91 라운드로 단일 입력 순열을 계산한다.

    Returns:
        FR: 순열 출력
    """
    return FR(mimc_pe7(x, key))


def compress(inputs, key=0):
    """기본 seed와 91 라운드로 다중 입력 압축을 계산한다.

    Returns:
        FR: 압축 출력
    """
    return FR(mimc_pe7_mp(inputs, key))


def mimc_hash2(left, right):
    """Merkle 부모 노드 해시: compress([left, right], 0)."""
    return compress([left, right], 0)

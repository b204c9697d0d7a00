"""
Bitmaps - 256비트 워드 비트 연산

3단계 틱 비트맵(lobby / mezzanine / terminal)에 필요한 비트 연산 함수들.
온체인 구현과 동일하게 모든 워드는 uint256으로 취급합니다.

틱 분해 (int24):
    tick = lobby × 65536 + mezz × 256 + term
    lobby: 상위 바이트 (int8, 부호 있음)
    mezz:  중간 바이트 (uint8)
    term:  하위 바이트 (uint8)

lobby 값은 부호가 있으므로 비트맵 인덱스로 쓸 때 +128 바이어스를 적용합니다.
이렇게 하면 음수 → 양수로 넘어가는 탐색도 부호 없는 비트 순서와 일치합니다.
"""

from typing import Tuple

from ..constants import TICK_MAX, TICK_MIN, UINT256_MAX


def truncate_right(bitmap: int, shift: int) -> int:
    """하위 shift 비트를 0으로 만듭니다"""
    return (bitmap >> shift) << shift


def truncate_left(bitmap: int, shift: int) -> int:
    """상위 shift 비트를 0으로 만듭니다 (uint256 오버플로우 시뮬레이션)"""
    return ((bitmap << shift) & UINT256_MAX) >> shift


def truncate_bitmap(bitmap: int, shift: int, right: bool) -> int:
    return truncate_right(bitmap, shift) if right else truncate_left(bitmap, shift)


def most_significant_bit(x: int) -> int:
    """최상위 비트 위치

    Raises:
        ValueError: x가 0 이하인 경우
    """
    if x <= 0:
        raise ValueError(f"MSB는 양수에서만 정의됩니다: {x}")
    return x.bit_length() - 1


def least_significant_bit(x: int) -> int:
    """최하위 비트 위치

    Raises:
        ValueError: x가 0 이하인 경우
    """
    if x <= 0:
        raise ValueError(f"LSB는 양수에서만 정의됩니다: {x}")
    return (x & -x).bit_length() - 1


def bit_after_trunc(bitmap: int, shift: int, right: bool) -> Tuple[int, bool]:
    """비트맵을 잘라낸 뒤 가장 가까운 세트 비트 찾기

    right=True (가격 상승 방향): 하위 shift 비트를 버리고 최하위 비트를 찾습니다.
    right=False (가격 하락 방향): 상위 shift 비트를 버리고 최상위 비트를 찾습니다.

    Args:
        bitmap: 256비트 워드
        shift: 잘라낼 비트 수 (0 ~ 256)
        right: 탐색 방향

    Returns:
        (비트 위치, spill 여부) 튜플. 남은 비트가 없으면 spill=True, 위치는 0
    """
    truncated = truncate_bitmap(bitmap, shift, right)
    if truncated == 0:
        return 0, True
    if right:
        return least_significant_bit(truncated), False
    return most_significant_bit(truncated), False


def is_bit_set(bitmap: int, pos: int) -> bool:
    return bitmap & (1 << pos) != 0


def cast_bitmap_index(x: int) -> int:
    """부호 있는 int8 인덱스를 비트맵 위치(uint8)로 변환: -128 → 0, 0 → 128, 127 → 255"""
    return x + 128


def uncast_bitmap_index(x: int) -> int:
    """비트맵 위치(uint8)를 부호 있는 int8 인덱스로 복원"""
    return x - 128


def lobby_key(tick: int) -> int:
    return tick >> 16


def mezz_key(tick: int) -> int:
    return tick >> 8


def lobby_bit(tick: int) -> int:
    return cast_bitmap_index(lobby_key(tick))


def mezz_bit(tick: int) -> int:
    return (tick >> 8) & 0xFF


def term_bit(tick: int) -> int:
    return tick & 0xFF


def decompose_tick(tick: int) -> Tuple[int, int, int, int, int]:
    """틱을 비트맵 좌표로 분해

    Returns:
        (lobby_key, mezz_key, lobby_bit, mezz_bit, term_bit) 튜플
    """
    return lobby_key(tick), mezz_key(tick), lobby_bit(tick), mezz_bit(tick), term_bit(tick)


def bit_relate(bit: int, is_upper: bool) -> int:
    """탐색 방향 기준의 잘라낼 비트 수"""
    return bit if is_upper else 255 - bit


def term_bump(tick: int, is_upper: bool) -> int:
    """terminal 워드 탐색 시작 위치

    상승 방향은 현재 틱을 제외(+1)하고, 하락 방향은 현재 틱을 포함합니다.
    """
    shift = bit_relate(term_bit(tick), is_upper)
    return shift + 1 if is_upper else shift


def weld_mezz_term(mezz: int, term: int) -> int:
    return (mezz << 8) + term


def zero_tick(is_upper: bool) -> int:
    """탐색 방향의 끝 틱 (sentinel)"""
    return TICK_MAX if is_upper else TICK_MIN


def zero_mezz(is_upper: bool) -> int:
    return mezz_key(zero_tick(is_upper))
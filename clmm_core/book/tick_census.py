"""
Tick Census - 3단계 틱 비트맵 인덱스

활성 틱(유동성 경계나 knockout pivot이 있는 틱)을 lobby / mezzanine / terminal
3단계 256비트 워드로 기록하고, 스왑 방향으로 가장 가까운 활성 틱을 찾습니다.

    lobby 워드 (1개):        bit = lobby + 128
    mezzanine 워드 (lobby별): bit = mezz
    terminal 워드 (mezz별):   bit = term

틱은 세 단계 비트가 모두 세트일 때 기록된 것으로 봅니다. 상위 단계 비트는
하위 워드가 완전히 비었을 때만 지웁니다.

탐색 규약:
    seek_buy(tick)  - tick보다 엄격하게 위의 가장 가까운 기록 틱
    seek_sell(tick) - tick 이하의 가장 가까운 기록 틱
"""

import logging
from typing import Dict, Iterator, Optional, Tuple

from ..constants import TICK_MAX, TICK_MIN
from ..math.bitmaps import (
    bit_after_trunc,
    decompose_tick,
    is_bit_set,
    least_significant_bit,
    lobby_key,
    mezz_key,
    most_significant_bit,
    term_bit,
    term_bump,
    uncast_bitmap_index,
    weld_mezz_term,
    zero_mezz,
    zero_tick,
)

logger = logging.getLogger(__name__)


def pin_term_word(bitmap: int, tick: int, is_buy: bool) -> Tuple[int, bool]:
    """terminal 워드 하나 안에서 다음 기록 틱 찾기

    Args:
        bitmap: tick이 속한 terminal 워드
        tick: 현재 틱
        is_buy: True면 tick 초과 방향, False면 tick 이하 방향

    Returns:
        (틱, spill 여부) 튜플. 워드 안에서 찾지 못하면 spill=True 이고,
        매수는 다음 terminal 워드의 첫 틱(최상단이면 TICK_MAX),
        매도는 현재 terminal 워드의 첫 틱을 경계로 돌려줍니다.
    """
    mezz = mezz_key(tick)
    bit, spills = bit_after_trunc(bitmap, term_bump(tick, is_buy), is_buy)
    if not spills:
        return weld_mezz_term(mezz, bit), False

    if is_buy:
        if mezz == zero_mezz(True):
            return TICK_MAX, True
        return weld_mezz_term(mezz + 1, 0), True
    return weld_mezz_term(mezz, 0), True


def _check_tick(tick: int) -> None:
    if tick < TICK_MIN or tick > TICK_MAX:
        raise ValueError(f"틱이 int24 범위를 벗어났습니다: {tick}")


class TickCensus:
    """3단계 비트맵 틱 인덱스

    사용법:
        census = TickCensus()
        census.bookmark(100)
        census.seek_buy(0)    # (100, False)
        census.seek_sell(100) # (100, False)
    """

    def __init__(self):
        self._lobby: int = 0
        self._mezz: Dict[int, int] = {}  # lobby_key -> mezzanine 워드
        self._terminus: Dict[int, int] = {}  # mezz_key -> terminal 워드

    def bookmark(self, tick: int) -> None:
        """틱 기록 (멱등)"""
        _check_tick(tick)
        lobby, mezz, lobby_pos, mezz_pos, term_pos = decompose_tick(tick)
        self._terminus[mezz] = self._terminus.get(mezz, 0) | (1 << term_pos)
        self._mezz[lobby] = self._mezz.get(lobby, 0) | (1 << mezz_pos)
        self._lobby |= 1 << lobby_pos
        logger.debug("bookmark tick=%d", tick)

    def forget(self, tick: int) -> None:
        """틱 기록 해제 (멱등)

        terminal 워드가 비면 mezzanine 비트를, mezzanine 워드가 비면
        lobby 비트를 지웁니다.
        """
        _check_tick(tick)
        lobby, mezz, lobby_pos, mezz_pos, term_pos = decompose_tick(tick)
        term_word = self._terminus.get(mezz, 0)
        if not is_bit_set(term_word, term_pos):
            return

        term_word &= ~(1 << term_pos)
        logger.debug("forget tick=%d", tick)
        if term_word:
            self._terminus[mezz] = term_word
            return
        del self._terminus[mezz]

        mezz_word = self._mezz.get(lobby, 0) & ~(1 << mezz_pos)
        if mezz_word:
            self._mezz[lobby] = mezz_word
            return
        self._mezz.pop(lobby, None)
        self._lobby &= ~(1 << lobby_pos)

    def is_bookmarked(self, tick: int) -> bool:
        return is_bit_set(self._terminus.get(mezz_key(tick), 0), term_bit(tick))

    def get_bitmaps(self, tick: int) -> Tuple[int, int]:
        """틱이 속한 (mezzanine 워드, terminal 워드)"""
        return self._mezz.get(lobby_key(tick), 0), self._terminus.get(mezz_key(tick), 0)

    def ticks(self) -> Iterator[int]:
        """기록된 모든 틱 (오름차순)"""
        for mezz in sorted(self._terminus):
            word = self._terminus[mezz]
            while word:
                bit = least_significant_bit(word)
                yield weld_mezz_term(mezz, bit)
                word &= word - 1

    def __len__(self) -> int:
        return sum(bin(word).count("1") for word in self._terminus.values())

    def pin_bitmap(self, tick: int, is_buy: bool) -> Tuple[int, bool]:
        """현재 terminal 워드 안에서 탐색 (pin_term_word 참조)"""
        return pin_term_word(self._terminus.get(mezz_key(tick), 0), tick, is_buy)

    def seek_mezz_spill(self, border_tick: int, is_buy: bool) -> Tuple[int, int]:
        """terminal 워드를 벗어난 탐색

        pin_bitmap이 spill한 경계에서 시작하여 terminal → mezzanine → lobby
        순서로 탐색 범위를 넓힙니다.

        Args:
            border_tick: 탐색 경계
            is_buy: True면 border_tick 이상, False면 border_tick 미만에서 탐색

        Returns:
            (틱, 해당 terminal 워드) 튜플. 기록 틱이 없으면 (TICK_MAX | TICK_MIN, 0)
        """
        if is_buy and border_tick >= TICK_MAX:
            return TICK_MAX, 0
        if not is_buy and border_tick <= TICK_MIN:
            return TICK_MIN, 0

        pin_tick = border_tick if is_buy else border_tick - 1
        lobby, mezz, lobby_pos, mezz_pos, term_pos = decompose_tick(pin_tick)

        # 경계가 속한 terminal 워드
        shift = term_pos if is_buy else 255 - term_pos
        term_word = self._terminus.get(mezz, 0)
        bit, spills = bit_after_trunc(term_word, shift, is_buy)
        if not spills:
            return weld_mezz_term(mezz, bit), term_word

        # 같은 lobby의 이웃 mezzanine
        shift = mezz_pos + 1 if is_buy else 256 - mezz_pos
        found = self._seek_at_mezz(lobby, shift, is_buy)
        if found is not None:
            return found

        # 이웃 lobby
        shift = lobby_pos + 1 if is_buy else 256 - lobby_pos
        next_pos, spills = bit_after_trunc(self._lobby, shift, is_buy)
        if spills:
            return zero_tick(is_buy), 0
        found = self._seek_at_mezz(uncast_bitmap_index(next_pos), 0, is_buy)
        if found is None:
            raise RuntimeError(f"lobby 비트와 mezzanine 워드 불일치: lobby={next_pos}")
        return found

    def _seek_at_mezz(
        self, lobby: int, shift: int, is_buy: bool
    ) -> Optional[Tuple[int, int]]:
        mezz_word = self._mezz.get(lobby, 0)
        mezz_pos, spills = bit_after_trunc(mezz_word, shift, is_buy)
        if spills:
            return None

        mezz = weld_mezz_term(lobby, mezz_pos)
        term_word = self._terminus[mezz]
        if is_buy:
            term_pos = least_significant_bit(term_word)
        else:
            term_pos = most_significant_bit(term_word)
        return weld_mezz_term(mezz, term_pos), term_word

    def seek_buy(self, tick: int) -> Tuple[int, bool]:
        """tick보다 위의 가장 가까운 기록 틱

        Returns:
            (틱, spill 여부) 튜플. 위쪽에 기록 틱이 없으면 (TICK_MAX, True)
        """
        found, spilled = self.pin_bitmap(tick, True)
        if not spilled:
            return found, False
        if found >= TICK_MAX:
            return TICK_MAX, True
        return self.seek_mezz_spill(found, True)[0], True

    def seek_sell(self, tick: int) -> Tuple[int, bool]:
        """tick 이하의 가장 가까운 기록 틱

        Returns:
            (틱, spill 여부) 튜플. 아래쪽에 기록 틱이 없으면 (TICK_MIN, True)
        """
        found, spilled = self.pin_bitmap(tick, False)
        if not spilled:
            return found, False
        if found <= TICK_MIN:
            return TICK_MIN, True
        return self.seek_mezz_spill(found, False)[0], True

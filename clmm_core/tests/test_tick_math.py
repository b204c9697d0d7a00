"""
Tick Math 테스트

tick_math.py의 함수들을 테스트합니다.
온체인 값과 비교하여 정확도를 검증합니다.
"""

import pytest

from ..math.tick_math import (
    get_sqrt_ratio_at_tick,
    is_price_tick,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO
)
from ..constants import TICK_MAX, TICK_MIN


class TestGetSqrtRatioAtTick:
    """get_sqrt_ratio_at_tick 테스트"""

    def test_min_tick(self):
        """최소 틱에서의 sqrtPrice"""
        result = get_sqrt_ratio_at_tick(MIN_TICK)
        assert result == MIN_SQRT_RATIO

    def test_max_tick(self):
        """최대 틱에서의 sqrtPrice"""
        result = get_sqrt_ratio_at_tick(MAX_TICK)
        # MAX_SQRT_RATIO와 같거나 약간 작을 수 있음
        assert result <= MAX_SQRT_RATIO
        assert result > 0

    def test_tick_0(self):
        """틱 0에서의 sqrtPrice (price = 1)"""
        result = get_sqrt_ratio_at_tick(0)
        expected = 2 ** 96  # 79228162514264337593543950336
        assert abs(result - expected) < 10  # 작은 오차 허용

    def test_monotonic(self):
        """틱이 커지면 sqrtPrice도 커짐"""
        ticks = [-1000, -100, -1, 0, 1, 100, 1000]
        prices = [get_sqrt_ratio_at_tick(t) for t in ticks]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_invalid_tick_too_low(self):
        """유효 범위를 벗어난 틱 (너무 낮음)"""
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MIN_TICK - 1)

    def test_invalid_tick_too_high(self):
        """유효 범위를 벗어난 틱 (너무 높음)"""
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)


class TestIsPriceTick:
    """is_price_tick 테스트"""

    def test_bounds(self):
        assert is_price_tick(MIN_TICK)
        assert is_price_tick(MAX_TICK)
        assert not is_price_tick(MIN_TICK - 1)
        assert not is_price_tick(MAX_TICK + 1)

    def test_bitmap_range_is_wider(self):
        """비트맵 인덱스 범위는 가격 틱 범위보다 넓음"""
        assert not is_price_tick(TICK_MAX)
        assert not is_price_tick(TICK_MIN)

"""
Math layer for CLMM Core

온체인 수준 정밀도의 수학 함수들:
- bitmaps: 256비트 워드 비트 연산, 틱 분해
- tick_math: Tick → sqrtPriceX96 변환
- liquidity_math: 유동성 ↔ 토큰 수량, 유동성 증감
- fee_math: fee mileage 합성과 보상 계산
"""

from .bitmaps import (
    bit_after_trunc,
    most_significant_bit,
    least_significant_bit,
    decompose_tick,
)
from .tick_math import get_sqrt_ratio_at_tick, is_price_tick
from .liquidity_math import (
    get_amount0_delta,
    get_amount1_delta,
    base_for_range,
    quote_for_range,
    get_amounts_for_ambient,
    lots_to_liquidity,
)
from .fee_math import (
    blend_mileage,
    calc_reward_mileage,
    calc_rewards,
)

"""
Liquidity Math - 유동성 계산

집중화된 유동성(Concentrated Liquidity)의 유동성 ↔ 토큰 수량 변환과
원장 유동성 증감 연산.

가격 규약: price = base / quote, sqrtPriceX96 = sqrt(price) × 2^96
    base 수량  = L × (√P_b - √P_a)              # amount1 공식
    quote 수량 = L × (1/√P_a - 1/√P_b)          # amount0 공식
    ambient: base = L × √P, quote = L / √P

References:
- 백서 Section 6.2.1: Concentrated Liquidity
"""

from typing import Tuple

from ..constants import LOT_SIZE_BITS, Q96, UINT128_MAX
from ..exceptions import InsufficientLiquidity, LiquidityOverflow
from .tick_math import get_sqrt_ratio_at_tick


def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """유동성에서 amount0 (quote) 변화량 계산

    공식: Δx = L * (√P_b - √P_a) / (√P_a * √P_b)
              = L * (1/√P_a - 1/√P_b)

    Args:
        sqrt_ratio_a_x96: 하한 sqrtPriceX96
        sqrt_ratio_b_x96: 상한 sqrtPriceX96
        liquidity: 유동성
        round_up: True면 올림, False면 내림

    Returns:
        amount0 (최소 단위)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    numerator1 = liquidity << 96
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return _div_rounding_up(
            _mul_div_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96
        )
    else:
        return (numerator1 * numerator2 // sqrt_ratio_b_x96) // sqrt_ratio_a_x96


def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """유동성에서 amount1 (base) 변화량 계산

    공식: Δy = L * (√P_b - √P_a)

    Args:
        sqrt_ratio_a_x96: 하한 sqrtPriceX96
        sqrt_ratio_b_x96: 상한 sqrtPriceX96
        liquidity: 유동성
        round_up: True면 올림, False면 내림

    Returns:
        amount1 (최소 단위)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if round_up:
        return _div_rounding_up(
            liquidity * (sqrt_ratio_b_x96 - sqrt_ratio_a_x96),
            Q96
        )
    else:
        return liquidity * (sqrt_ratio_b_x96 - sqrt_ratio_a_x96) // Q96


def base_for_range(lower_tick: int, upper_tick: int, liquidity: int) -> int:
    """범위 전체가 base로 전환되었을 때의 base 수량 (지급용, 내림)"""
    return get_amount1_delta(
        get_sqrt_ratio_at_tick(lower_tick),
        get_sqrt_ratio_at_tick(upper_tick),
        liquidity,
        round_up=False
    )


def quote_for_range(lower_tick: int, upper_tick: int, liquidity: int) -> int:
    """범위 전체가 quote로 전환되었을 때의 quote 수량 (지급용, 내림)"""
    return get_amount0_delta(
        get_sqrt_ratio_at_tick(lower_tick),
        get_sqrt_ratio_at_tick(upper_tick),
        liquidity,
        round_up=False
    )


def get_amounts_for_ambient(seeds: int, sqrt_price_x96: int) -> Tuple[int, int]:
    """ambient(전체 범위) 유동성의 토큰 수량 (지급용, 내림)

    Args:
        seeds: ambient 유동성
        sqrt_price_x96: 현재 curve의 sqrtPriceX96

    Returns:
        (base, quote) 튜플
    """
    if seeds == 0:
        return 0, 0
    if sqrt_price_x96 <= 0:
        raise ValueError(f"sqrtPriceX96은 양수여야 합니다: {sqrt_price_x96}")

    base = seeds * sqrt_price_x96 // Q96
    quote = (seeds << 96) // sqrt_price_x96
    return base, quote


def add_delta(liquidity: int, delta: int) -> int:
    """유동성 증가 (uint128 범위 검사)

    Raises:
        LiquidityOverflow: 결과가 uint128 최대값을 넘는 경우
    """
    result = liquidity + delta
    if result > UINT128_MAX:
        raise LiquidityOverflow(f"유동성이 uint128 범위를 넘습니다: {result}")
    return result


def minus_delta(liquidity: int, delta: int) -> int:
    """유동성 감소

    Raises:
        InsufficientLiquidity: 보유량보다 많이 제거하려는 경우
    """
    if delta > liquidity:
        raise InsufficientLiquidity(
            f"보유 유동성 부족: 보유 {liquidity}, 제거 요청 {delta}"
        )
    return liquidity - delta


def lots_to_liquidity(lots: int) -> int:
    """knockout lots → 유동성"""
    return lots << LOT_SIZE_BITS


def _mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """(a * b) / denominator 올림"""
    result = (a * b) // denominator
    if (a * b) % denominator > 0:
        result += 1
    return result


def _div_rounding_up(numerator: int, denominator: int) -> int:
    """numerator / denominator 올림"""
    result = numerator // denominator
    if numerator % denominator > 0:
        result += 1
    return result

"""
Fee Math - fee mileage 기반 보상 계산

fee mileage는 틱 범위에서 단위 유동성당 누적된 보상(ambient liquidity seed)입니다.
Q16.48 고정소수점 uint64로 저장되며, 풀 전체 값은 단조 증가합니다.

핵심 공식:
    m_blend = ⌊m_x × l_x / (l_x + l_y)⌋ + 1 + ⌊m_y × l_y / (l_x + l_y)⌋ + 1
    m_reward = max(m_now - m_stored - REWARD_ROUND_DOWN, 0)
    reward = ⌊m_reward × l / 2^48⌋

모든 반올림은 풀의 지급 능력을 보호하는 방향(LP 보상을 적게 계산)으로 적용합니다.
"""

from ..constants import Q48, REWARD_ROUND_DOWN


def mul_q48(x: int, y: int) -> int:
    """Q48 고정소수점 곱셈 (내림)"""
    return (x * y) >> 48


def calc_blend(mileage: int, weight: int, total: int) -> int:
    """가중치 비율만큼의 mileage (내림)

    weight <= total 이므로 결과는 항상 원래 mileage 이하입니다.
    """
    return mileage * weight // total


def blend_mileage(mileage_x: int, liq_x: int, mileage_y: int, liq_y: int) -> int:
    """두 유동성 덩어리의 mileage를 유동성 가중 평균으로 합성

    포지션에 유동성을 추가할 때 사용합니다. 가중 평균의 각 항을 올림하여
    mileage를 과대평가하므로 (= 보상을 과소평가) 풀이 초과 지급하지 않습니다.
    결과는 두 mileage 중 큰 값을 넘지 않도록 제한하여, 저장된 mileage가
    같은 시점의 풀 mileage를 넘지 않는 불변식을 유지합니다.

    Args:
        mileage_x: 기존 포지션 mileage
        liq_x: 기존 포지션 유동성
        mileage_y: 추가 유동성의 mileage (현재 값)
        liq_y: 추가 유동성

    Returns:
        합성된 mileage
    """
    if liq_y == 0:
        return mileage_x
    if liq_x == 0:
        return mileage_y
    if mileage_x == mileage_y:
        return mileage_x

    total = liq_x + liq_y
    term_x = calc_blend(mileage_x, liq_x, total)
    term_y = calc_blend(mileage_y, liq_y, total)
    blended = (term_x + 1) + (term_y + 1)
    return min(blended, max(mileage_x, mileage_y))


def calc_reward_mileage(fee_mileage: int, stored_mileage: int) -> int:
    """지급할 단위 유동성당 보상 mileage

    정밀도 손실로 인한 초과 지급을 막기 위해 REWARD_ROUND_DOWN 만큼 내림합니다.
    mileage가 역행한 경우에도 음수가 되지 않습니다.
    """
    delta = fee_mileage - stored_mileage - REWARD_ROUND_DOWN
    return delta if delta > 0 else 0


def calc_rewards(fee_mileage: int, stored_mileage: int, liquidity: int) -> int:
    """포지션 유동성에 대한 보상 (ambient liquidity 단위)

    Args:
        fee_mileage: 현재 범위 mileage
        stored_mileage: 포지션에 저장된 기준 mileage
        liquidity: 보상을 계산할 유동성

    Returns:
        보상 (ambient liquidity seed, 내림)
    """
    return mul_q48(calc_reward_mileage(fee_mileage, stored_mileage), liquidity)


def decode_mileage(mileage_q48: int) -> float:
    """Q48 인코딩된 mileage를 human-readable 값으로 변환"""
    return mileage_q48 / Q48

"""
원장 스냅샷 - pandas DataFrame 변환

분석 / 백테스트용으로 원장 상태를 DataFrame으로 내보냅니다.
uint128 이상 값은 int64를 넘을 수 있으므로 object 컬럼으로 유지됩니다.
"""

import pandas as pd

from ..math.fee_math import decode_mileage

POSITION_COLUMNS = ["owner", "lower_tick", "upper_tick", "liquidity", "fee_mileage", "mileage", "timestamp"]
AMBIENT_COLUMNS = ["owner", "seeds"]
PIVOT_COLUMNS = ["tick", "is_bid", "state", "lots", "pivot_time", "range_ticks", "root", "last_knockout"]


def positions_frame(ledger) -> pd.DataFrame:
    """PositionLedger의 범위 포지션 스냅샷

    Returns:
        포지션 당 한 행. mileage 컬럼은 Q48 디코딩 값
    """
    rows = [
        {
            "owner": owner,
            "lower_tick": lower,
            "upper_tick": upper,
            "liquidity": pos.liquidity,
            "fee_mileage": pos.fee_mileage,
            "mileage": decode_mileage(pos.fee_mileage),
            "timestamp": pos.timestamp,
        }
        for (owner, lower, upper), pos in ledger.positions()
    ]
    df = pd.DataFrame(rows, columns=POSITION_COLUMNS)
    return df.sort_values(["owner", "lower_tick", "upper_tick"]).reset_index(drop=True)


def ambient_frame(ledger) -> pd.DataFrame:
    """PositionLedger의 ambient 포지션 스냅샷"""
    rows = [{"owner": owner, "seeds": pos.seeds} for owner, pos in ledger.ambient_positions()]
    return pd.DataFrame(rows, columns=AMBIENT_COLUMNS)


def pivots_frame(book) -> pd.DataFrame:
    """KnockoutBook의 pivot 스냅샷

    활성 pivot과 knockout 이력이 있는 pivot을 (tick, is_bid) 당 한 행으로 합칩니다.
    """
    merkles = dict(book.merkles())
    pivots = dict(book.pivots())

    rows = []
    for key in sorted(set(pivots) | set(merkles)):
        tick, is_bid = key
        pivot = pivots.get(key)
        merkle = merkles.get(key)
        rows.append({
            "tick": tick,
            "is_bid": is_bid,
            "state": book.pivot_state(tick, is_bid).value,
            "lots": pivot.lots if pivot else 0,
            "pivot_time": pivot.pivot_time if pivot else None,
            "range_ticks": pivot.range_ticks if pivot else None,
            "root": merkle.root if merkle else 0,
            "last_knockout": merkle.pivot_time if merkle else None,
        })
    return pd.DataFrame(rows, columns=PIVOT_COLUMNS)

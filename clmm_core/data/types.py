"""
CLMM Core 데이터 타입 정의

원장이 보관하는 레코드와 연산 결과를 Python dataclass / NamedTuple로 정의.
모든 숫자 필드는 온체인 정밀도를 위해 int 타입 사용.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


@dataclass
class RangePosition:
    """범위 유동성 포지션 (owner, lower, upper)

    - liquidity: 포지션 유동성 (uint128)
    - fee_mileage: 보상 계산 기준 mileage (Q48, uint64)
    - timestamp: 마지막 유동성 추가 시각 (JIT 보호용)
    """
    liquidity: int = 0
    fee_mileage: int = 0
    timestamp: int = 0


@dataclass
class AmbientPosition:
    """전체 범위(ambient) 유동성 포지션"""
    seeds: int = 0


@dataclass
class KnockoutPivot:
    """(tick, side) 별 활성 knockout 집단

    - lots: 활성 lots 합계 (uint96)
    - pivot_time: 현재 epoch 시작 시각 (uint32)
    - range_ticks: 범위 폭 (틱)
    """
    lots: int = 0
    pivot_time: int = 0
    range_ticks: int = 0


@dataclass
class KnockoutMerkle:
    """과거 knockout 이력의 누적 커밋

    - root: 직전까지의 leaf를 연쇄 해시한 root (uint160)
    - pivot_time: 가장 최근 knockout 된 epoch
    - fee_mileage: 가장 최근 knockout 시점의 mileage
    """
    root: int = 0
    pivot_time: int = 0
    fee_mileage: int = 0


@dataclass
class KnockoutPos:
    """epoch 단위 knockout 포지션"""
    lots: int = 0
    fee_mileage: int = 0
    timestamp: int = 0


@dataclass(frozen=True)
class KnockoutPosLoc:
    """knockout 주문의 위치

    bid는 pivot 틱이 하한 (범위 [tick, tick + width]),
    ask는 pivot 틱이 상한 (범위 [tick - width, tick]).
    """
    is_bid: bool
    lower_tick: int
    upper_tick: int

    @classmethod
    def from_pivot(cls, tick: int, width: int, is_bid: bool) -> "KnockoutPosLoc":
        if is_bid:
            return cls(is_bid=True, lower_tick=tick, upper_tick=tick + width)
        return cls(is_bid=False, lower_tick=tick - width, upper_tick=tick)

    @property
    def knockout_tick(self) -> int:
        return self.lower_tick if self.is_bid else self.upper_tick

    @property
    def width(self) -> int:
        return self.upper_tick - self.lower_tick


class PivotState(str, Enum):
    """pivot 생명주기"""
    INACTIVE = "inactive"
    ACTIVE = "active"
    KNOCKED_OUT = "knocked_out"


class Payout(NamedTuple):
    """정산 결과 (최소 단위, 내림)"""
    base: int
    quote: int


class KnockoutMint(NamedTuple):
    """knockout mint 결과"""
    pivot_time: int  # 포지션이 속한 epoch
    toggles_pivot: bool  # pivot이 비활성 → 활성으로 전환되었는지
    liquidity: int  # 추가된 유동성 (curve 반영은 호출자 책임)


class KnockoutBurn(NamedTuple):
    """knockout burn 결과"""
    lots: int
    liquidity: int
    reward: int  # ambient liquidity 단위 보상
    toggles_pivot: bool  # pivot이 활성 → 비활성으로 전환되었는지


class KnockoutCommit(NamedTuple):
    """knockout crossing 커밋 기록

    claim 증명을 만들 때 필요한 값들을 모두 담고 있습니다.
    """
    pivot_time: int
    fee_mileage: int
    entropy: int
    leaf: int  # (entropy << 96) | (pivot_time << 64) | fee_mileage
    prior_root: int  # 이 leaf를 접기 전 root
    root: int  # 새 root
    lots: int  # knockout 된 lots

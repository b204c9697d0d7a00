"""
Position Ledger - 유동성 포지션 원장

(owner, lower, upper) 별 범위 유동성과 fee mileage 기준값을 관리합니다.
보상은 유동성을 제거(burn)하거나 수확(harvest)할 때 계산됩니다.

    보상 = ⌊max(m_now - m_stored - 2, 0) × L_burn / 2^48⌋

ambient(전체 범위) 유동성은 owner 별 seeds만 기록하며 mileage 기준값이 없습니다.
"""

import logging
from typing import Dict, Iterator, Optional, Tuple

from ..config import settings
from ..data.types import AmbientPosition, RangePosition
from ..exceptions import JitWindowLocked, PositionCollision, PositionNotFound
from ..math.fee_math import blend_mileage, calc_rewards
from ..math.liquidity_math import add_delta, minus_delta

logger = logging.getLogger(__name__)

PositionKey = Tuple[str, int, int]


class PositionLedger:
    """범위 / ambient 유동성 포지션 원장

    사용법:
        ledger = PositionLedger()
        ledger.add("alice", -100, 100, 250000, mileage=12500)
        reward = ledger.burn("alice", -100, 100, 250000, mileage=13500)
    """

    def __init__(self, jit_threshold: Optional[int] = None):
        """
        Args:
            jit_threshold: 유동성 추가 후 제거가 가능해질 때까지의 초 (None이면 설정값)
                0이 아니면 add, burn, harvest 호출에 now가 필요합니다
        """
        self.jit_threshold = settings.get_jit_threshold(jit_threshold)
        self._positions: Dict[PositionKey, RangePosition] = {}
        self._ambient: Dict[str, AmbientPosition] = {}

    def add(
        self,
        owner: str,
        lower_tick: int,
        upper_tick: int,
        liquidity: int,
        mileage: int,
        now: Optional[int] = None
    ) -> None:
        """범위 포지션에 유동성 추가

        기존 포지션이 있으면 mileage를 유동성 가중 평균으로 합성합니다.

        Args:
            owner: 포지션 소유자
            lower_tick: 하한 틱
            upper_tick: 상한 틱
            liquidity: 추가할 유동성
            mileage: 현재 범위 fee mileage
            now: 현재 시각 (JIT 보호 기준)

        Raises:
            ValueError: lower_tick >= upper_tick 이거나 유동성이 음수인 경우
            JitWindowLocked: JIT 보호가 켜져 있는데 now가 없는 경우
            LiquidityOverflow: 누적 유동성이 uint128을 넘는 경우
        """
        if lower_tick >= upper_tick:
            raise ValueError(f"하한 틱이 상한 틱보다 작아야 합니다: [{lower_tick}, {upper_tick}]")
        _check_amount(liquidity)
        self._require_clock(now)
        if liquidity == 0:
            return

        key = (owner, lower_tick, upper_tick)
        pos = self._positions.get(key) or RangePosition()
        total = add_delta(pos.liquidity, liquidity)
        pos.fee_mileage = blend_mileage(pos.fee_mileage, pos.liquidity, mileage, liquidity)
        pos.liquidity = total
        if now is not None:
            pos.timestamp = now
        self._positions[key] = pos

        logger.debug(
            "add owner=%s range=[%d, %d] liq=%d mileage=%d",
            owner, lower_tick, upper_tick, liquidity, pos.fee_mileage
        )

    def burn(
        self,
        owner: str,
        lower_tick: int,
        upper_tick: int,
        liquidity: int,
        mileage: int,
        now: Optional[int] = None
    ) -> int:
        """범위 포지션에서 유동성 제거

        전부 제거하면 포지션을 삭제하고, 일부만 제거하면 mileage 기준값을 유지합니다.

        Returns:
            제거한 유동성에 대한 보상 (ambient liquidity 단위)

        Raises:
            InsufficientLiquidity: 보유량보다 많이 제거하려는 경우
            JitWindowLocked: JIT 보호 기간 안인 경우
        """
        _check_amount(liquidity)
        key = (owner, lower_tick, upper_tick)
        pos = self._positions.get(key)
        remaining = minus_delta(pos.liquidity if pos else 0, liquidity)
        if pos is None:
            return 0
        self._check_jit(pos, now)

        reward = calc_rewards(mileage, pos.fee_mileage, liquidity)
        if remaining == 0:
            del self._positions[key]
        else:
            pos.liquidity = remaining

        logger.debug(
            "burn owner=%s range=[%d, %d] liq=%d reward=%d",
            owner, lower_tick, upper_tick, liquidity, reward
        )
        return reward

    def harvest(
        self,
        owner: str,
        lower_tick: int,
        upper_tick: int,
        mileage: int,
        now: Optional[int] = None
    ) -> int:
        """유동성은 유지한 채 누적 보상만 수확

        Returns:
            포지션 전체 유동성에 대한 보상. 기준 mileage는 현재 값으로 갱신됩니다.
        """
        pos = self._positions.get((owner, lower_tick, upper_tick))
        if pos is None:
            return 0
        self._check_jit(pos, now)

        reward = calc_rewards(mileage, pos.fee_mileage, pos.liquidity)
        pos.fee_mileage = max(pos.fee_mileage, mileage)
        return reward

    def transfer(self, owner: str, receiver: str, lower_tick: int, upper_tick: int) -> None:
        """포지션 전체를 다른 소유자에게 이전

        Raises:
            PositionNotFound: 이전할 포지션이 없는 경우
            PositionCollision: 받는 쪽에 이미 같은 범위 포지션이 있는 경우
        """
        src_key = (owner, lower_tick, upper_tick)
        dst_key = (receiver, lower_tick, upper_tick)
        pos = self._positions.get(src_key)
        if pos is None or pos.liquidity == 0:
            raise PositionNotFound(f"{owner}의 [{lower_tick}, {upper_tick}] 포지션이 없습니다")
        if owner == receiver:
            return
        if dst_key in self._positions:
            raise PositionCollision(
                f"{receiver}에게 이미 [{lower_tick}, {upper_tick}] 포지션이 있습니다"
            )

        self._positions[dst_key] = self._positions.pop(src_key)
        logger.debug("transfer %s -> %s range=[%d, %d]", owner, receiver, lower_tick, upper_tick)

    def get(self, owner: str, lower_tick: int, upper_tick: int) -> Tuple[int, int]:
        """(유동성, mileage) 조회. 포지션이 없으면 (0, 0)"""
        pos = self._positions.get((owner, lower_tick, upper_tick))
        if pos is None:
            return 0, 0
        return pos.liquidity, pos.fee_mileage

    def get_position(self, owner: str, lower_tick: int, upper_tick: int) -> Optional[RangePosition]:
        return self._positions.get((owner, lower_tick, upper_tick))

    def positions(self) -> Iterator[Tuple[PositionKey, RangePosition]]:
        return iter(self._positions.items())

    def add_ambient(self, owner: str, seeds: int) -> None:
        """ambient 유동성 추가"""
        _check_amount(seeds)
        pos = self._ambient.get(owner) or AmbientPosition()
        pos.seeds = add_delta(pos.seeds, seeds)
        if pos.seeds:
            self._ambient[owner] = pos

    def burn_ambient(self, owner: str, seeds: int) -> int:
        """ambient 유동성 제거

        Returns:
            남은 seeds

        Raises:
            InsufficientLiquidity: 보유량보다 많이 제거하려는 경우
        """
        _check_amount(seeds)
        pos = self._ambient.get(owner)
        remaining = minus_delta(pos.seeds if pos else 0, seeds)
        if pos is None:
            return 0
        if remaining == 0:
            del self._ambient[owner]
        else:
            pos.seeds = remaining
        return remaining

    def get_ambient(self, owner: str) -> int:
        pos = self._ambient.get(owner)
        return pos.seeds if pos else 0

    def ambient_positions(self) -> Iterator[Tuple[str, AmbientPosition]]:
        return iter(self._ambient.items())

    def _require_clock(self, now: Optional[int]) -> None:
        if self.jit_threshold and now is None:
            raise JitWindowLocked("JIT 보호가 켜져 있으면 now가 필요합니다")

    def _check_jit(self, pos: RangePosition, now: Optional[int]) -> None:
        if not self.jit_threshold:
            return
        self._require_clock(now)
        unlock = pos.timestamp + self.jit_threshold
        if now < unlock:
            raise JitWindowLocked(f"JIT 보호 기간입니다: {now} < {unlock}")


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"유동성은 음수일 수 없습니다: {amount}")

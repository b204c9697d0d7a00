"""
Knockout Book - knockout 주문 원장

(tick, side) 별 pivot에 knockout 주문을 모으고, 가격이 pivot 틱을 통과하면
해당 epoch를 Merkle 연쇄에 커밋합니다. knockout 된 포지션은 증명(claim) 또는
pivot_time(recover)으로 정산합니다.

pivot 상태:
    INACTIVE → (mint) → ACTIVE → (cross) → KNOCKED_OUT → (mint) → ACTIVE ...
    ACTIVE에서 모든 lots를 burn 하면 커밋 없이 INACTIVE로 돌아갑니다.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import settings
from ..constants import MAX_TICK, MIN_TICK, UINT32_MAX, UINT96_MAX
from ..data.types import (
    KnockoutBurn,
    KnockoutCommit,
    KnockoutMerkle,
    KnockoutMint,
    KnockoutPivot,
    KnockoutPos,
    KnockoutPosLoc,
    Payout,
    PivotState,
)
from ..exceptions import (
    AlreadyKnockedOut,
    CurveFlagMismatch,
    InvalidGrid,
    InvalidTimestamp,
    KnockoutDisabled,
    KnockoutOutOfRange,
    KnockoutStillActive,
    LotsOutOfBounds,
    OverBurn,
)
from ..math.fee_math import blend_mileage, calc_rewards
from ..math.liquidity_math import (
    base_for_range,
    get_amounts_for_ambient,
    lots_to_liquidity,
    quote_for_range,
)
from .knockout import (
    KnockoutConfig,
    derive_entropy,
    encode_leaf,
    encode_pivot_key,
    encode_pos_key,
    is_power_of_two_width,
    prove_history,
    root_link,
)
from .tick_census import TickCensus

logger = logging.getLogger(__name__)

PivotKey = Tuple[int, bool]


class KnockoutBook:
    """knockout 주문 원장

    사용법:
        book = KnockoutBook(KnockoutConfig.from_bits(64 + 32 + 5))
        book.mint("alice", 64, 32, True, lots=100, on_curve=False,
                  curve_tick=200, mileage=0, now=1000)
        commit = book.cross(64, 32, True, mileage=5000)
        payout = book.claim("alice", 64, 32, True, 0, [], sqrt_price_x96)
    """

    def __init__(
        self,
        config: Optional[KnockoutConfig] = None,
        entropy_seed: Optional[bytes] = None
    ):
        """
        Args:
            config: knockout 설정 (None이면 CLMM_KNOCKOUT_BITS 설정값)
            entropy_seed: leaf entropy 유도용 32바이트 seed (None이면 설정값)
        """
        self.config = config or KnockoutConfig.from_bits(settings.KNOCKOUT_BITS)
        self._seed = entropy_seed if entropy_seed is not None else settings.get_entropy_seed()
        self._census = TickCensus()
        self._pivots: Dict[PivotKey, KnockoutPivot] = {}
        self._merkles: Dict[PivotKey, KnockoutMerkle] = {}
        self._positions: Dict[bytes, KnockoutPos] = {}
        self._history: Dict[PivotKey, List[KnockoutCommit]] = {}

    @property
    def pivot_census(self) -> TickCensus:
        """활성 pivot 틱 인덱스"""
        return self._census

    def mint(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        lots: int,
        on_curve: bool,
        curve_tick: int,
        mileage: int,
        now: int
    ) -> KnockoutMint:
        """knockout 주문 생성

        pivot이 비어 있으면 새 epoch를 시작합니다. pivot_time은 직전 knockout
        시각보다 항상 큽니다.

        Args:
            owner: 주문 소유자
            tick: pivot 틱 (bid는 하한, ask는 상한)
            width: 범위 폭 (틱)
            is_bid: bid 여부
            lots: 추가할 lots
            on_curve: 현재 가격이 범위 안에 있는지 (호출자 주장)
            curve_tick: 현재 가격 틱
            mileage: 현재 범위 fee mileage
            now: 현재 시각

        Returns:
            KnockoutMint

        Raises:
            KnockoutDisabled, InvalidGrid, LotsOutOfBounds,
            KnockoutOutOfRange, CurveFlagMismatch, InvalidTimestamp
        """
        loc = KnockoutPosLoc.from_pivot(tick, width, is_bid)
        self._check_mint(loc, lots, on_curve, curve_tick, now)

        key = (tick, is_bid)
        pivot = self._pivots.get(key)
        toggles_pivot = pivot is None
        if toggles_pivot:
            merkle = self._merkles.get(key) or KnockoutMerkle()
            pivot = KnockoutPivot(
                lots=0,
                pivot_time=max(now, merkle.pivot_time + 1),
                range_ticks=width
            )
            if pivot.pivot_time > UINT32_MAX:
                raise InvalidTimestamp(f"pivot_time이 uint32 범위를 넘습니다: {pivot.pivot_time}")
        elif pivot.range_ticks != width:
            raise InvalidGrid(f"pivot 범위 폭 {pivot.range_ticks}과 다릅니다: {width}")

        if pivot.lots + lots > UINT96_MAX:
            raise LotsOutOfBounds(f"pivot lots가 uint96 범위를 넘습니다: {pivot.lots + lots}")

        pos_key = encode_pos_key(owner, tick, is_bid, loc.lower_tick, loc.upper_tick, pivot.pivot_time)
        pos = self._positions.get(pos_key) or KnockoutPos()
        liquidity = lots_to_liquidity(lots)
        pos.fee_mileage = blend_mileage(
            pos.fee_mileage, lots_to_liquidity(pos.lots), mileage, liquidity
        )
        pos.lots += lots
        pos.timestamp = now
        self._positions[pos_key] = pos

        pivot.lots += lots
        self._pivots[key] = pivot
        if toggles_pivot:
            self._census.bookmark(tick)
            logger.info(
                "knockout epoch start tick=%d bid=%s pivot_time=%d", tick, is_bid, pivot.pivot_time
            )

        return KnockoutMint(pivot.pivot_time, toggles_pivot, liquidity)

    def burn(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        lots: int,
        mileage: int
    ) -> KnockoutBurn:
        """활성 epoch의 knockout 주문 일부 취소

        Raises:
            AlreadyKnockedOut: pivot에 활성 epoch가 없는 경우
            LotsOutOfBounds: lots가 0 이하인 경우
            OverBurn: 보유 lots보다 많이 취소하려는 경우
        """
        key = (tick, is_bid)
        pivot = self._pivots.get(key)
        if pivot is None:
            raise AlreadyKnockedOut(f"tick={tick} bid={is_bid} 에 활성 epoch가 없습니다")
        if lots <= 0:
            raise LotsOutOfBounds(f"lots는 양수여야 합니다: {lots}")

        loc = KnockoutPosLoc.from_pivot(tick, width, is_bid)
        pos_key = encode_pos_key(owner, tick, is_bid, loc.lower_tick, loc.upper_tick, pivot.pivot_time)
        pos = self._positions.get(pos_key)
        held = pos.lots if pos else 0
        if lots > held:
            raise OverBurn(f"보유 lots {held} 보다 많이 취소할 수 없습니다: {lots}")

        liquidity = lots_to_liquidity(lots)
        reward = calc_rewards(mileage, pos.fee_mileage, liquidity)
        pos.lots -= lots
        if pos.lots == 0:
            del self._positions[pos_key]

        pivot.lots -= lots
        toggles_pivot = pivot.lots == 0
        if toggles_pivot:
            del self._pivots[key]
            self._forget_if_idle(tick)

        logger.debug("knockout burn owner=%s tick=%d bid=%s lots=%d", owner, tick, is_bid, lots)
        return KnockoutBurn(lots, liquidity, reward, toggles_pivot)

    def burn_all(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        mileage: int
    ) -> KnockoutBurn:
        """활성 epoch의 knockout 주문 전체 취소"""
        pos = self.get_position(owner, tick, width, is_bid)
        if pos is None:
            if (tick, is_bid) not in self._pivots:
                raise AlreadyKnockedOut(f"tick={tick} bid={is_bid} 에 활성 epoch가 없습니다")
            return KnockoutBurn(0, 0, 0, False)
        return self.burn(owner, tick, width, is_bid, pos.lots, mileage)

    def cross(
        self,
        tick: int,
        width: int,
        is_bid: bool,
        mileage: int,
        entropy: Optional[int] = None
    ) -> Optional[KnockoutCommit]:
        """가격이 pivot 틱을 통과할 때 활성 epoch를 knockout 처리

        Args:
            tick: pivot 틱
            width: 범위 폭 (틱)
            is_bid: bid 여부
            mileage: knockout 시점의 범위 fee mileage
            entropy: leaf entropy (None이면 seed로부터 유도)

        Returns:
            KnockoutCommit, 활성 pivot이 없으면 None
        """
        key = (tick, is_bid)
        pivot = self._pivots.get(key)
        if pivot is None:
            return None
        if pivot.range_ticks != width:
            raise InvalidGrid(f"pivot 범위 폭 {pivot.range_ticks}과 다릅니다: {width}")

        if entropy is None:
            entropy = derive_entropy(encode_pivot_key(tick, is_bid), pivot.pivot_time, mileage, self._seed)
        leaf = encode_leaf(pivot.pivot_time, mileage, entropy)

        merkle = self._merkles.get(key) or KnockoutMerkle()
        prior_root = merkle.root
        merkle.root = root_link(prior_root, leaf)
        merkle.pivot_time = pivot.pivot_time
        merkle.fee_mileage = mileage
        self._merkles[key] = merkle

        del self._pivots[key]
        self._forget_if_idle(tick)

        commit = KnockoutCommit(
            pivot_time=pivot.pivot_time,
            fee_mileage=mileage,
            entropy=entropy,
            leaf=leaf,
            prior_root=prior_root,
            root=merkle.root,
            lots=pivot.lots,
        )
        self._history.setdefault(key, []).append(commit)
        logger.info(
            "knockout cross tick=%d bid=%s pivot_time=%d lots=%d",
            tick, is_bid, pivot.pivot_time, pivot.lots
        )
        return commit

    def cross_tick(self, tick: int, is_buy: bool, mileage: int) -> Optional[KnockoutCommit]:
        """스왑이 틱을 통과할 때 호출

        매수(가격 상승)는 ask pivot을, 매도(가격 하락)는 bid pivot을 knockout 합니다.
        """
        is_bid = not is_buy
        pivot = self._pivots.get((tick, is_bid))
        if pivot is None:
            return None
        return self.cross(tick, pivot.range_ticks, is_bid, mileage)

    def claim(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        root: int,
        proof: Sequence[int],
        sqrt_price_x96: int
    ) -> Payout:
        """knockout 된 포지션 정산 (원금 + 보상)

        Args:
            owner: 포지션 소유자
            tick: pivot 틱
            width: 범위 폭 (틱)
            is_bid: bid 여부
            root: 대상 epoch 커밋 직전의 root
            proof: 대상 epoch부터 최신까지의 leaf 목록 (빈 목록이면 최신 knockout)
            sqrt_price_x96: 보상(ambient liquidity) 환산용 현재 sqrtPriceX96

        Returns:
            Payout(base, quote). 정산할 포지션이 없으면 Payout(0, 0)

        Raises:
            InvalidProof: 증명이 저장된 root와 일치하지 않는 경우
        """
        merkle = self.get_merkle(tick, is_bid)
        pivot_time, ko_mileage = prove_history(merkle, root, proof)

        loc = KnockoutPosLoc.from_pivot(tick, width, is_bid)
        pos_key = encode_pos_key(owner, tick, is_bid, loc.lower_tick, loc.upper_tick, pivot_time)
        pos = self._positions.get(pos_key)
        if pos is None:
            return Payout(0, 0)

        liquidity = lots_to_liquidity(pos.lots)
        reward = calc_rewards(ko_mileage, pos.fee_mileage, liquidity)
        reward_base, reward_quote = get_amounts_for_ambient(reward, sqrt_price_x96)
        principal = self._principal(loc, liquidity)
        del self._positions[pos_key]

        logger.info(
            "knockout claim owner=%s tick=%d bid=%s pivot_time=%d reward=%d",
            owner, tick, is_bid, pivot_time, reward
        )
        return Payout(principal.base + reward_base, principal.quote + reward_quote)

    def recover(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        pivot_time: int
    ) -> Payout:
        """증명 없이 knockout 된 포지션의 원금만 회수

        Raises:
            KnockoutStillActive: pivot_time이 현재 활성 epoch인 경우
        """
        pivot = self._pivots.get((tick, is_bid))
        if pivot is not None and pivot.pivot_time == pivot_time:
            raise KnockoutStillActive(f"epoch {pivot_time}는 아직 knockout 되지 않았습니다")

        loc = KnockoutPosLoc.from_pivot(tick, width, is_bid)
        pos_key = encode_pos_key(owner, tick, is_bid, loc.lower_tick, loc.upper_tick, pivot_time)
        pos = self._positions.pop(pos_key, None)
        if pos is None:
            return Payout(0, 0)

        logger.info(
            "knockout recover owner=%s tick=%d bid=%s pivot_time=%d", owner, tick, is_bid, pivot_time
        )
        return self._principal(loc, lots_to_liquidity(pos.lots))

    def build_proof(self, tick: int, is_bid: bool, pivot_time: int) -> Tuple[int, List[int]]:
        """claim 증명 생성

        Returns:
            (root, proof) 튜플. 기록에 없는 epoch이면 ValueError
        """
        history = self._history.get((tick, is_bid), [])
        for i, commit in enumerate(history):
            if commit.pivot_time == pivot_time:
                return commit.prior_root, [c.leaf for c in history[i:]]
        raise ValueError(f"tick={tick} bid={is_bid} 에 epoch {pivot_time} 기록이 없습니다")

    def get_pivot(self, tick: int, is_bid: bool) -> Optional[KnockoutPivot]:
        return self._pivots.get((tick, is_bid))

    def get_merkle(self, tick: int, is_bid: bool) -> KnockoutMerkle:
        return self._merkles.get((tick, is_bid)) or KnockoutMerkle()

    def get_position(
        self,
        owner: str,
        tick: int,
        width: int,
        is_bid: bool,
        pivot_time: Optional[int] = None
    ) -> Optional[KnockoutPos]:
        """knockout 포지션 조회 (pivot_time 생략 시 활성 epoch)"""
        if pivot_time is None:
            pivot = self._pivots.get((tick, is_bid))
            if pivot is None:
                return None
            pivot_time = pivot.pivot_time
        loc = KnockoutPosLoc.from_pivot(tick, width, is_bid)
        return self._positions.get(
            encode_pos_key(owner, tick, is_bid, loc.lower_tick, loc.upper_tick, pivot_time)
        )

    def pivot_state(self, tick: int, is_bid: bool) -> PivotState:
        key = (tick, is_bid)
        if key in self._pivots:
            return PivotState.ACTIVE
        if key in self._merkles:
            return PivotState.KNOCKED_OUT
        return PivotState.INACTIVE

    def pivots(self) -> Iterator[Tuple[PivotKey, KnockoutPivot]]:
        return iter(self._pivots.items())

    def merkles(self) -> Iterator[Tuple[PivotKey, KnockoutMerkle]]:
        return iter(self._merkles.items())

    def _check_mint(
        self,
        loc: KnockoutPosLoc,
        lots: int,
        on_curve: bool,
        curve_tick: int,
        now: int
    ) -> None:
        config = self.config
        if not config.enabled:
            raise KnockoutDisabled("knockout 주문이 비활성화되어 있습니다")

        width = loc.width
        if not is_power_of_two_width(width) or width != config.range_ticks:
            raise InvalidGrid(f"범위 폭은 {config.range_ticks} 틱이어야 합니다: {width}")
        if loc.lower_tick < MIN_TICK or loc.upper_tick > MAX_TICK:
            raise InvalidGrid(f"틱 범위를 벗어났습니다: [{loc.lower_tick}, {loc.upper_tick}]")
        if config.on_grid and loc.knockout_tick % width != 0:
            raise InvalidGrid(f"pivot 틱이 {width} 격자에 맞지 않습니다: {loc.knockout_tick}")

        if lots <= 0 or lots > UINT96_MAX:
            raise LotsOutOfBounds(f"lots가 범위를 벗어났습니다: {lots}")
        if not 0 <= now <= UINT32_MAX:
            raise InvalidTimestamp(f"now는 uint32 이어야 합니다: {now}")

        if loc.is_bid and curve_tick < loc.lower_tick:
            raise KnockoutOutOfRange(f"가격 {curve_tick}이 bid 하한 {loc.lower_tick} 아래에 있습니다")
        if not loc.is_bid and curve_tick >= loc.upper_tick:
            raise KnockoutOutOfRange(f"가격 {curve_tick}이 ask 상한 {loc.upper_tick} 이상입니다")

        inside = loc.lower_tick <= curve_tick < loc.upper_tick
        if on_curve != inside:
            raise CurveFlagMismatch(f"on_curve={on_curve} 이지만 가격 {curve_tick}의 실제 위치는 {inside}")
        if inside and not config.inside_allowed:
            raise KnockoutDisabled("가격 내부 knockout 주문이 허용되지 않습니다")

    def _principal(self, loc: KnockoutPosLoc, liquidity: int) -> Payout:
        # bid는 하한 아래로 통과하여 전부 quote, ask는 상한 위로 통과하여 전부 base
        if loc.is_bid:
            return Payout(0, quote_for_range(loc.lower_tick, loc.upper_tick, liquidity))
        return Payout(base_for_range(loc.lower_tick, loc.upper_tick, liquidity), 0)

    def _forget_if_idle(self, tick: int) -> None:
        if (tick, True) not in self._pivots and (tick, False) not in self._pivots:
            self._census.forget(tick)

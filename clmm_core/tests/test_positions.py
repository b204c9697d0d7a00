"""
Position Ledger 테스트

범위 / ambient 포지션의 추가, 제거, 이전과 보상 계산을 테스트합니다.
"""

import pytest

from ..book.positions import PositionLedger
from ..constants import Q48, MAX_JIT_THRESHOLD_SECS
from ..exceptions import (
    InsufficientLiquidity,
    JitWindowLocked,
    LiquidityOverflow,
    PositionCollision,
    PositionNotFound,
)

OWNER = "0x9c8f005ab27AdB94f3d49020A15722Db2Fcd9F27"
OWNER_TWO = "0xFe5550377b3cF7cC14cafCC7Ee378D0B979718C2"


@pytest.fixture
def ledger():
    return PositionLedger(jit_threshold=0)


class TestAdd:
    """add, get 테스트"""

    def test_empty(self, ledger):
        assert ledger.get(OWNER, 100, 110) == (0, 0)

    def test_add_liq(self, ledger):
        ledger.add(OWNER, -100, 100, 250000, 12500)
        assert ledger.get(OWNER, -100, 100) == (250000, 12500)
        assert ledger.get(OWNER_TWO, -100, 100) == (0, 0)
        assert ledger.get(OWNER, -101, 100) == (0, 0)
        assert ledger.get(OWNER, -100, 101) == (0, 0)

    def test_add_stack(self, ledger):
        """mileage는 가중 평균보다 크고 +1 이내"""
        mileage_mean = (12500 * 275 + 17500 * 175) / (275 + 175)
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.add(OWNER, -100, 100, 25000, 12500)
        ledger.add(OWNER, -100, 100, 175000, 17500)

        liquidity, mileage = ledger.get(OWNER, -100, 100)
        assert liquidity == 450000
        assert mileage_mean < mileage <= mileage_mean + 1

    def test_add_multi_pos(self, ledger):
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.add(OWNER, -101, 100, 175000, 17500)
        ledger.add(OWNER_TWO, -100, 100, 50000, 8500)

        assert ledger.get(OWNER, -100, 100) == (250000, 12500)
        assert ledger.get(OWNER, -101, 100) == (175000, 17500)
        assert ledger.get(OWNER_TWO, -100, 100) == (50000, 8500)

    def test_add_zero_is_noop(self, ledger):
        ledger.add(OWNER, -100, 100, 0, 12500)
        assert ledger.get_position(OWNER, -100, 100) is None

    def test_invalid_range(self, ledger):
        with pytest.raises(ValueError):
            ledger.add(OWNER, 100, 100, 1000, 0)

    def test_overflow(self, ledger):
        """uint128 초과 시 상태 변경 없음"""
        ledger.add(OWNER, -100, 100, 2 ** 128 - 1, 100)
        with pytest.raises(LiquidityOverflow):
            ledger.add(OWNER, -100, 100, 1, 200)
        assert ledger.get(OWNER, -100, 100) == (2 ** 128 - 1, 100)


    def test_negative_add(self, ledger):
        """음수 추가는 거부되고 상태 변경 없음"""
        ledger.add(OWNER, -100, 100, 1000, 5)
        with pytest.raises(ValueError):
            ledger.add(OWNER, -100, 100, -1000, 7)
        assert ledger.get(OWNER, -100, 100) == (1000, 5)


class TestBurn:
    """burn 테스트"""

    def test_burn_partial(self, ledger):
        """일부 제거 시 mileage 기준값 유지"""
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.burn(OWNER, -100, 100, 125000, 14500)
        ledger.burn(OWNER, -100, 100, 10000, 12800)
        assert ledger.get(OWNER, -100, 100) == (115000, 12500)

    def test_burn_full(self, ledger):
        """전부 제거 시 포지션 삭제"""
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.burn(OWNER, -100, 100, 100000, 13500)
        ledger.burn(OWNER, -100, 100, 150000, 12800)
        assert ledger.get(OWNER, -100, 100) == (0, 0)
        assert ledger.get_position(OWNER, -100, 100) is None

    def test_burn_position_only(self, ledger):
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.add(OWNER, -100, 99, 350000, 14500)
        ledger.burn(OWNER, -100, 100, 250000, 13500)
        assert ledger.get(OWNER, -100, 99) == (350000, 14500)

    def test_burn_rewards(self, ledger):
        """유동성 Q48 단위 제거 시 보상 = 보상 mileage"""
        ledger.add(OWNER, -100, 100, 4 * Q48, 12500)
        assert ledger.burn(OWNER, -100, 100, Q48, 13500) == 998
        assert ledger.burn(OWNER, -100, 100, Q48, 12500) == 0
        assert ledger.burn(OWNER, -100, 100, Q48, 14800) == 2300 - 2

        ledger.add(OWNER, -100, 100, Q48, 16500)
        assert ledger.get(OWNER, -100, 100) == (2 * Q48, 14502)
        assert ledger.burn(OWNER, -100, 100, Q48, 20500) == 6000 - 2 * 2

    def test_over_burn(self, ledger):
        """보유량 초과 제거 시 상태 변경 없음"""
        ledger.add(OWNER, -100, 100, 1000, 12500)
        with pytest.raises(InsufficientLiquidity):
            ledger.burn(OWNER, -100, 100, 1001, 13500)
        assert ledger.get(OWNER, -100, 100) == (1000, 12500)

    def test_negative_burn(self, ledger):
        """음수 제거는 거부되고 상태 변경 없음"""
        ledger.add(OWNER, -100, 100, 1000, 0)
        with pytest.raises(ValueError):
            ledger.burn(OWNER, -100, 100, -1000, 10 * Q48)
        assert ledger.get(OWNER, -100, 100) == (1000, 0)

    def test_burn_missing(self, ledger):
        with pytest.raises(InsufficientLiquidity):
            ledger.burn(OWNER, -100, 100, 1, 0)

    def test_mint_then_burn_no_reward(self, ledger):
        """mileage 변화 없이 추가 후 제거하면 보상 없음"""
        ledger.add(OWNER, -100, 100, 10 ** 24, 5000)
        assert ledger.burn(OWNER, -100, 100, 10 ** 24, 5000) == 0


class TestHarvest:
    """harvest 테스트"""

    def test_harvest_moves_baseline(self, ledger):
        ledger.add(OWNER, -100, 100, Q48, 12500)
        assert ledger.harvest(OWNER, -100, 100, 13500) == 998
        assert ledger.get(OWNER, -100, 100) == (Q48, 13500)
        assert ledger.harvest(OWNER, -100, 100, 13500) == 0

    def test_harvest_missing(self, ledger):
        assert ledger.harvest(OWNER, -100, 100, 13500) == 0


class TestTransfer:
    """transfer 테스트"""

    def test_transfer(self, ledger):
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.transfer(OWNER, OWNER_TWO, -100, 100)
        assert ledger.get(OWNER, -100, 100) == (0, 0)
        assert ledger.get(OWNER_TWO, -100, 100) == (250000, 12500)

    def test_transfer_collision(self, ledger):
        """받는 쪽 포지션과 병합하지 않음"""
        ledger.add(OWNER, -100, 100, 250000, 12500)
        ledger.add(OWNER_TWO, -100, 100, 1000, 9000)
        with pytest.raises(PositionCollision):
            ledger.transfer(OWNER, OWNER_TWO, -100, 100)
        assert ledger.get(OWNER, -100, 100) == (250000, 12500)
        assert ledger.get(OWNER_TWO, -100, 100) == (1000, 9000)

    def test_transfer_missing(self, ledger):
        with pytest.raises(PositionNotFound):
            ledger.transfer(OWNER, OWNER_TWO, -100, 100)


class TestJitGuard:
    """JIT 보호 테스트"""

    def test_locked_window(self):
        ledger = PositionLedger(jit_threshold=30)
        ledger.add(OWNER, -100, 100, 1000, 0, now=1000)
        with pytest.raises(JitWindowLocked):
            ledger.burn(OWNER, -100, 100, 1000, 0, now=1029)
        with pytest.raises(JitWindowLocked):
            ledger.harvest(OWNER, -100, 100, 0, now=1010)
        assert ledger.burn(OWNER, -100, 100, 1000, 0, now=1030) == 0

    def test_add_resets_window(self):
        ledger = PositionLedger(jit_threshold=30)
        ledger.add(OWNER, -100, 100, 1000, 0, now=1000)
        ledger.add(OWNER, -100, 100, 1000, 0, now=1100)
        with pytest.raises(JitWindowLocked):
            ledger.burn(OWNER, -100, 100, 500, 0, now=1110)

    def test_clock_required(self):
        """보호가 켜져 있으면 now 없는 호출 거부"""
        ledger = PositionLedger(jit_threshold=30)
        with pytest.raises(JitWindowLocked):
            ledger.add(OWNER, -100, 100, 1000, 0)
        ledger.add(OWNER, -100, 100, 1000, 0, now=1000)
        with pytest.raises(JitWindowLocked):
            ledger.burn(OWNER, -100, 100, 1000, 0)
        with pytest.raises(JitWindowLocked):
            ledger.harvest(OWNER, -100, 100, 0)
        assert ledger.get(OWNER, -100, 100) == (1000, 0)

    def test_disabled_without_clock(self, ledger):
        ledger.add(OWNER, -100, 100, 1000, 0)
        assert ledger.burn(OWNER, -100, 100, 1000, 0) == 0

    def test_disabled(self, ledger):
        ledger.add(OWNER, -100, 100, 1000, 0, now=1000)
        assert ledger.burn(OWNER, -100, 100, 1000, 0, now=1000) == 0

    def test_threshold_bounds(self):
        PositionLedger(jit_threshold=MAX_JIT_THRESHOLD_SECS)
        with pytest.raises(ValueError):
            PositionLedger(jit_threshold=MAX_JIT_THRESHOLD_SECS + 1)
        with pytest.raises(ValueError):
            PositionLedger(jit_threshold=-1)


class TestAmbient:
    """ambient 포지션 테스트"""

    def test_add_burn(self, ledger):
        ledger.add_ambient(OWNER, 5000)
        ledger.add_ambient(OWNER, 2500)
        assert ledger.get_ambient(OWNER) == 7500
        assert ledger.burn_ambient(OWNER, 2500) == 5000
        assert ledger.burn_ambient(OWNER, 5000) == 0
        assert ledger.get_ambient(OWNER) == 0
        assert list(ledger.ambient_positions()) == []

    def test_over_burn(self, ledger):
        ledger.add_ambient(OWNER, 5000)
        with pytest.raises(InsufficientLiquidity):
            ledger.burn_ambient(OWNER, 5001)
        assert ledger.get_ambient(OWNER) == 5000

    def test_negative_amounts(self, ledger):
        ledger.add_ambient(OWNER, 5000)
        with pytest.raises(ValueError):
            ledger.add_ambient(OWNER, -5000)
        with pytest.raises(ValueError):
            ledger.burn_ambient(OWNER, -5000)
        assert ledger.get_ambient(OWNER) == 5000

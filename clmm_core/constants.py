"""
CLMM Core 상수 정의

온체인 수준 정밀도를 위한 상수들:
- Q48: fee mileage 인코딩에 사용 (2^48)
- Q96: sqrt price 인코딩에 사용 (2^96)
- TICK_MIN / TICK_MAX: 비트맵 인덱스가 커버하는 int24 전체 범위
- LOT_SIZE_BITS: knockout lots ↔ 유동성 변환 비트 수
"""

# Fixed-point 인코딩 상수
Q48: int = 2 ** 48
Q96: int = 2 ** 96

# 비트맵 인덱스 범위 (int24 전체)
# lobby(int8) × 65536 + mezzanine × 256 + terminal
TICK_MIN: int = -128 * 256 * 256
TICK_MAX: int = 127 * 256 * 256 + 255 * 256 + 255

# 가격 변환이 가능한 틱 범위 (sqrtPriceX96 기준)
MIN_TICK: int = -887272
MAX_TICK: int = 887272

# Knockout lots: 유동성 = lots << LOT_SIZE_BITS
LOT_SIZE_BITS: int = 10
MAX_KNOCKOUT_WIDTH_BITS: int = 15

# 보상 계산 시 정밀도 손실로 인한 초과 지급을 막기 위한 내림 단위
REWARD_ROUND_DOWN: int = 2

# JIT 보호 기간 상한 (초). 10초 단위 uint8 설정과 동일한 범위
MAX_JIT_THRESHOLD_SECS: int = 255 * 10

# 비트 폭별 최대값
UINT256_MAX: int = 2 ** 256 - 1
UINT160_MAX: int = 2 ** 160 - 1
UINT128_MAX: int = 2 ** 128 - 1
UINT96_MAX: int = 2 ** 96 - 1
UINT64_MAX: int = 2 ** 64 - 1
UINT32_MAX: int = 2 ** 32 - 1

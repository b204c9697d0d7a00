"""
CLMM Core - 집중화된 유동성 AMM 회계 코어

틱 비트맵 인덱스, 유동성 포지션 원장, knockout 주문 원장을
온체인 수준 정밀도(정수 연산)로 구현한 라이브러리.
"""

__version__ = "0.1.0"

from .constants import Q48, Q96, TICK_MIN, TICK_MAX, LOT_SIZE_BITS
from .book import TickCensus, PositionLedger, KnockoutBook, KnockoutConfig

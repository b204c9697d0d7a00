"""
Book layer for CLMM Core

원장 상태를 보관하는 클래스들:
- tick_census: 3단계 틱 비트맵 인덱스
- positions: 범위 / ambient 유동성 포지션 원장
- knockout: knockout 설정, 키 인코딩, Merkle 커밋
- knockout_book: knockout 주문 원장
"""

from .tick_census import TickCensus, pin_term_word
from .positions import PositionLedger
from .knockout import (
    KnockoutConfig,
    encode_leaf,
    decode_leaf,
    root_link,
    fold_proof,
    prove_history,
)
from .knockout_book import KnockoutBook

"""
Data layer for CLMM Core

원장 레코드 타입과 pandas 스냅샷
"""

from .types import (
    RangePosition,
    AmbientPosition,
    KnockoutPivot,
    KnockoutMerkle,
    KnockoutPos,
    KnockoutPosLoc,
    PivotState,
    Payout,
    KnockoutMint,
    KnockoutBurn,
    KnockoutCommit,
)
from .snapshot import positions_frame, ambient_frame, pivots_frame

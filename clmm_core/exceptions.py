"""
CLMM Core 예외 정의

모든 검증 오류는 상태를 변경하기 전에 발생하므로, 예외가 발생한 호출은
원장에 아무런 흔적도 남기지 않습니다 (트랜잭션 롤백과 동일한 효과).
"""


class CoreError(ValueError):
    """clmm_core에서 발생하는 모든 검증 오류의 기반 클래스"""


# 포지션 원장
class InsufficientLiquidity(CoreError):
    """보유 유동성보다 많은 양을 제거하려는 경우"""


class LiquidityOverflow(CoreError):
    """유동성이 uint128 범위를 넘는 경우"""


class PositionCollision(CoreError):
    """이전 대상 키에 이미 포지션이 있는 경우 (암묵적 병합 없음)"""


class PositionNotFound(CoreError):
    """이전할 포지션이 존재하지 않는 경우"""


class JitWindowLocked(CoreError):
    """JIT 보호 기간 안에 유동성을 제거하려는 경우"""


# Knockout
class InvalidGrid(CoreError):
    """틱 정렬, 범위 폭, 틱 범위 검증 실패"""


class CurveFlagMismatch(CoreError):
    """on-curve 플래그가 실제 가격 위치와 일치하지 않는 경우"""


class KnockoutDisabled(CoreError):
    """풀 설정에서 knockout 주문(또는 가격 내부 주문)이 비활성화된 경우"""


class KnockoutOutOfRange(CoreError):
    """주문이 이미 knockout 조건을 만족하는 쪽에 놓인 경우"""


class LotsOutOfBounds(CoreError):
    """lots가 0 이하이거나 uint96 범위를 넘는 경우"""


class OverBurn(CoreError):
    """활성 lots보다 많은 양을 소각하려는 경우"""


class AlreadyKnockedOut(CoreError):
    """pivot에 활성 epoch가 없는 경우"""


class InvalidProof(CoreError):
    """Merkle 증명이 저장된 root와 일치하지 않는 경우"""


class KnockoutStillActive(CoreError):
    """아직 knockout 되지 않은 epoch를 recover 하려는 경우"""


class InvalidTimestamp(CoreError):
    """시각이 uint32 epoch 범위를 벗어난 경우"""

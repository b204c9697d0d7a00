"""
Knockout - knockout 주문 설정, 키 인코딩, Merkle 커밋

knockout 주문은 가격이 범위를 완전히 통과하면 스스로 제거되는 범위 주문입니다.
knockout 된 epoch는 (pivot_time, fee_mileage)를 leaf로 하는 연쇄 해시에 커밋되고,
LP는 나중에 해당 leaf부터의 증명으로 정산을 청구합니다.

Leaf 인코딩 (uint256):
    leaf = (entropy << 96) | (pivot_time << 64) | fee_mileage
    entropy: uint160, pivot_time: uint32, fee_mileage: uint64

Root 연쇄:
    root' = uint160(keccak256(abi.encode(uint160 root, uint256 leaf)))
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import eth_abi.abi
from web3 import Web3

from ..constants import MAX_KNOCKOUT_WIDTH_BITS, UINT160_MAX, UINT32_MAX, UINT64_MAX
from ..data.types import KnockoutMerkle
from ..exceptions import InvalidProof


@dataclass(frozen=True)
class KnockoutConfig:
    """풀 단위 knockout 설정

    비트 레이아웃 (uint8):
        bits 0-3: 범위 폭 2의 거듭제곱 (width = 2^n 틱)
        bits 4-5: 활성화 모드 (0 비활성, 1 가격 외부만, 2-3 가격 내부 허용)
        bit 6:    pivot 틱이 폭 단위 격자에 정렬되어야 하는지
    """
    enabled: bool
    inside_allowed: bool
    on_grid: bool
    width_bits: int

    @classmethod
    def from_bits(cls, bits: int) -> "KnockoutConfig":
        if bits < 0 or bits > 0xFF:
            raise ValueError(f"knockout 설정은 uint8 이어야 합니다: {bits}")
        mode = (bits >> 4) & 0x03
        return cls(
            enabled=mode > 0,
            inside_allowed=mode >= 2,
            on_grid=bits & 0x40 != 0,
            width_bits=bits & 0x0F,
        )

    def to_bits(self) -> int:
        mode = 0
        if self.enabled:
            mode = 2 if self.inside_allowed else 1
        return (int(self.on_grid) << 6) | (mode << 4) | self.width_bits

    @property
    def range_ticks(self) -> int:
        return 1 << self.width_bits


def is_power_of_two_width(width: int) -> bool:
    return 0 < width <= (1 << MAX_KNOCKOUT_WIDTH_BITS) and width & (width - 1) == 0


def encode_pivot_key(tick: int, is_bid: bool) -> bytes:
    """(tick, side) pivot 키"""
    return bytes(Web3.keccak(eth_abi.abi.encode(types=["int24", "bool"], args=[tick, is_bid])))


def encode_pos_key(
    owner: str,
    tick: int,
    is_bid: bool,
    lower_tick: int,
    upper_tick: int,
    pivot_time: int
) -> bytes:
    """epoch 단위 knockout 포지션 키"""
    return bytes(Web3.keccak(
        eth_abi.abi.encode(
            types=["string", "int24", "bool", "int24", "int24", "uint32"],
            args=[str(owner), tick, is_bid, lower_tick, upper_tick, pivot_time],
        )
    ))


def encode_leaf(pivot_time: int, fee_mileage: int, entropy: int) -> int:
    """knockout 기록을 uint256 leaf로 인코딩

    Raises:
        ValueError: 필드가 비트 폭을 넘는 경우
    """
    if not 0 <= pivot_time <= UINT32_MAX:
        raise ValueError(f"pivot_time은 uint32 이어야 합니다: {pivot_time}")
    if not 0 <= fee_mileage <= UINT64_MAX:
        raise ValueError(f"fee_mileage는 uint64 이어야 합니다: {fee_mileage}")
    if not 0 <= entropy <= UINT160_MAX:
        raise ValueError(f"entropy는 uint160 이어야 합니다: {entropy}")
    return (entropy << 96) | (pivot_time << 64) | fee_mileage


def decode_leaf(leaf: int) -> Tuple[int, int]:
    """leaf → (pivot_time, fee_mileage)"""
    return (leaf >> 64) & UINT32_MAX, leaf & UINT64_MAX


def root_link(root: int, leaf: int) -> int:
    """기존 root에 leaf 하나를 연결한 새 root"""
    digest = Web3.keccak(eth_abi.abi.encode(types=["uint160", "uint256"], args=[root, leaf]))
    return int.from_bytes(digest, "big") & UINT160_MAX


def fold_proof(root: int, proof: Sequence[int]) -> int:
    for leaf in proof:
        root = root_link(root, leaf)
    return root


def prove_history(merkle: KnockoutMerkle, root: int, proof: Sequence[int]) -> Tuple[int, int]:
    """knockout 이력 증명 검증

    빈 증명은 가장 최근 knockout(평문으로 저장된 값)을 가리킵니다. 그 외에는
    root에서 시작해 proof의 leaf를 순서대로 연결한 결과가 저장된 root와 같아야
    하며, 첫 번째 leaf가 청구 대상 epoch 입니다.

    Args:
        merkle: pivot의 Merkle 상태
        root: 대상 epoch가 커밋되기 직전의 root
        proof: 대상 epoch부터 최신까지의 leaf 목록

    Returns:
        (pivot_time, fee_mileage) 튜플

    Raises:
        InvalidProof: 연결 결과가 저장된 root와 다른 경우
    """
    if not proof:
        return merkle.pivot_time, merkle.fee_mileage

    if fold_proof(root, proof) != merkle.root:
        raise InvalidProof("knockout 증명이 저장된 root와 일치하지 않습니다")
    return decode_leaf(proof[0])


def derive_entropy(pivot_key: bytes, pivot_time: int, fee_mileage: int, seed: bytes) -> int:
    """leaf entropy 유도 (uint160)

    seed가 같으면 결과가 재현되므로 예측 불가능한 값이 아닙니다.
    """
    digest = Web3.keccak(
        eth_abi.abi.encode(
            types=["bytes32", "uint256", "uint256", "bytes32"],
            args=[pivot_key, pivot_time, fee_mileage, seed],
        )
    )
    return int.from_bytes(digest, "big") & UINT160_MAX

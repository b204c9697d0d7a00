"""
Configuration settings for the CLMM accounting core

Loads environment variables and provides default ledger / knockout parameters.
"""
import os
import secrets
from typing import Optional
from dotenv import load_dotenv

from .constants import MAX_JIT_THRESHOLD_SECS

# Load environment variables from .env file
load_dotenv()


class Settings:
    """Core settings"""

    # Position ledger
    # Minimum seconds a range position must rest before it can be burned (0 = off)
    JIT_THRESHOLD_SECS: int = int(os.getenv("CLMM_JIT_THRESHOLD_SECS", 0))

    # Knockout liquidity
    # Bits 0-3: width power, bits 4-5: enable mode, bit 6: on-grid
    KNOCKOUT_BITS: int = int(os.getenv("CLMM_KNOCKOUT_BITS", 64 + 32 + 5))
    # Hex seed for knockout leaf entropy. Random per process when unset.
    KNOCKOUT_ENTROPY_SEED: str = os.getenv("CLMM_KNOCKOUT_ENTROPY_SEED", "")

    def get_jit_threshold(self, override: Optional[int] = None) -> int:
        """Get validated JIT threshold in seconds"""
        threshold = self.JIT_THRESHOLD_SECS if override is None else override
        if threshold < 0 or threshold > MAX_JIT_THRESHOLD_SECS:
            raise ValueError(
                f"JIT threshold {threshold}s outside [0, {MAX_JIT_THRESHOLD_SECS}]"
            )
        return threshold

    def get_entropy_seed(self) -> bytes:
        """Get the 32 byte knockout entropy seed"""
        if not self.KNOCKOUT_ENTROPY_SEED:
            return secrets.token_bytes(32)
        seed = bytes.fromhex(self.KNOCKOUT_ENTROPY_SEED.removeprefix("0x"))
        return seed.rjust(32, b"\x00")[-32:]


# Create global settings instance
settings = Settings()

# chain.py — block ordinal clock + entropy source
import os, time, hashlib, threading

BLOCK_SECONDS = int(os.getenv("CREATURES_BLOCK_SECONDS", "600"))
GENESIS_TS    = int(os.getenv("CREATURES_GENESIS_TS", "1700000000"))
ENTROPY_SALT  = os.getenv("CREATURES_ENTROPY_SALT", "")

ENTROPY_SIZE = 32

# ---------- clocks ----------
class WallClock:
    """Ordinal = whole block periods elapsed since genesis."""

    def __init__(self, block_seconds: int = BLOCK_SECONDS, genesis_ts: int = GENESIS_TS):
        if block_seconds <= 0:
            raise ValueError("block_seconds must be positive")
        self.block_seconds = int(block_seconds)
        self.genesis_ts = int(genesis_ts)

    def current_ordinal(self) -> int:
        return max(0, (int(time.time()) - self.genesis_ts) // self.block_seconds)

class ManualClock:
    """Advanced only by explicit calls. Never moves backwards."""

    def __init__(self, ordinal: int = 0):
        if ordinal < 0:
            raise ValueError("ordinal must be >= 0")
        self._ordinal = int(ordinal)
        self._lock = threading.Lock()

    def current_ordinal(self) -> int:
        return self._ordinal

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._ordinal += int(blocks)
            return self._ordinal

# ---------- entropy ----------
class ChainEntropy:
    """
    Predictable per-ordinal value: sha256("block:<salt>:<ordinal>").
    Anyone who knows the salt can compute it ahead of time.
    """

    def __init__(self, salt: str = ENTROPY_SALT):
        self.salt = salt or ""

    def entropy_at(self, ordinal: int) -> bytes:
        return hashlib.sha256(f"block:{self.salt}:{int(ordinal)}".encode()).digest()

class FixedEntropy:
    def __init__(self, value: bytes = b"\x00" * ENTROPY_SIZE):
        if len(value) != ENTROPY_SIZE:
            raise ValueError(f"entropy must be {ENTROPY_SIZE} bytes")
        self.value = bytes(value)

    def entropy_at(self, ordinal: int) -> bytes:
        return self.value

# breeding.py — DNA derivation + breeding rules
import hashlib, logging

from errors import NotFound, NotAuthorized, CannotBreed

log = logging.getLogger(__name__)

DNA_SIZE = 32
BREEDING_COOLDOWN = 144  # ordinals between breeding events, per parent

# ---------- DNA ----------
def mint_dna(entropy: bytes, creature_id: int) -> bytes:
    """Fresh DNA for a minted creature: sha256(entropy || id as 8-byte big-endian)."""
    return hashlib.sha256(bytes(entropy) + int(creature_id).to_bytes(8, "big")).digest()

def offspring_dna(dna1: bytes, dna2: bytes) -> bytes:
    """
    Front half of parent1 joined to back half of parent2, then hashed.
    Depends on nothing else, so the same parent halves always give the same child.
    """
    if len(dna1) != DNA_SIZE or len(dna2) != DNA_SIZE:
        raise ValueError(f"dna must be {DNA_SIZE} bytes")
    half = DNA_SIZE // 2
    return hashlib.sha256(bytes(dna1[:half]) + bytes(dna2[half:])).digest()

def _off_cooldown(traits: dict, now: int) -> bool:
    return now - int(traits["last_breed_ordinal"]) >= BREEDING_COOLDOWN

class BreedingEngine:
    def __init__(self, registry):
        self.registry = registry
        self.store = registry.store
        self.clock = registry.clock

    def _can_breed(self, cx, id1, id2, now: int) -> bool:
        if id1 == id2:
            return False
        t1 = self.registry._traits(cx, id1)
        t2 = self.registry._traits(cx, id2)
        if not t1 or not t2:
            return False
        return _off_cooldown(t1, now) and _off_cooldown(t2, now)

    def can_breed(self, id1, id2) -> bool:
        with self.store.atomic() as cx:
            return self._can_breed(cx, id1, id2, self.clock.current_ordinal())

    def cooldown_remaining(self, creature_id) -> int | None:
        with self.store.atomic() as cx:
            t = self.registry._traits(cx, creature_id)
        if not t:
            return None
        waited = self.clock.current_ordinal() - int(t["last_breed_ordinal"])
        return max(0, BREEDING_COOLDOWN - waited)

    def breed(self, caller: str, id1: int, id2: int) -> int:
        # Only parent1's owner is checked; parent2 may belong to anyone.
        reg = self.registry
        with self.store.atomic() as cx:
            owner1 = reg._owner(cx, id1)
            owner2 = reg._owner(cx, id2)
            if owner1 is None or owner2 is None:
                raise NotFound("parent_not_found")
            if caller != owner1:
                raise NotAuthorized()
            now = self.clock.current_ordinal()
            if not self._can_breed(cx, id1, id2, now):
                raise CannotBreed()

            p1 = reg._traits(cx, id1)
            p2 = reg._traits(cx, id2)
            dna = offspring_dna(p1["dna"], p2["dna"])
            child = reg._spawn(cx, caller, dna, generation=int(p1["generation"]) + 1, parents=(id1, id2))
            cx.execute("UPDATE creatures SET last_breed_ordinal=? WHERE id IN (?, ?)", (now, id1, id2))
        log.info("CREATURE_BRED child=%s parents=%s,%s gen=%s", child, id1, id2, int(p1["generation"]) + 1)
        return child

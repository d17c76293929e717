# evolution.py — interaction points and stage advancement
import logging

from errors import InvalidParams, NotFound

log = logging.getLogger(__name__)

EVOLUTION_THRESHOLD = 100
MAX_STAGE = 4

def _clamp(v, lo, hi): return max(lo, min(hi, v))

def next_state(stage: int, points: int) -> tuple[int, int, bool]:
    """One interaction: (stage, points) -> (stage, points, evolved). At most one step."""
    points += 1
    if points >= EVOLUTION_THRESHOLD and stage < MAX_STAGE:
        return stage + 1, 0, True
    # fully evolved creatures stop accumulating just below the threshold
    return stage, _clamp(points, 0, EVOLUTION_THRESHOLD - 1), False

class EvolutionTracker:
    def __init__(self, registry):
        self.registry = registry
        self.store = registry.store

    def interact(self, creature_id: int) -> bool:
        with self.store.atomic() as cx:
            if not self.registry._in_minted_range(cx, creature_id):
                raise InvalidParams("creature_id_out_of_range")
            t = self.registry._traits(cx, creature_id)
            if not t:
                raise NotFound()
            stage, points, evolved = next_state(int(t["evolution_stage"]), int(t["interaction_points"]))
            cx.execute("UPDATE creatures SET evolution_stage=?, interaction_points=? WHERE id=?",
                       (stage, points, creature_id))
        if evolved:
            log.info("CREATURE_EVOLVED id=%s stage=%s", creature_id, stage)
        return evolved

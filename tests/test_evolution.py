"""
tests/test_evolution.py - Evolution Tracker

Validates:
- the 100th interaction evolves and clears points, the 101st only counts
- at most one stage per call, never past the final stage
- points stay below the threshold after every call
"""

import pytest

from errors import InvalidParams
from evolution import EVOLUTION_THRESHOLD, MAX_STAGE, next_state

from conftest import ALICE, BOB


def _interact_n(evolution, cid, n):
    return [evolution.interact(cid) for _ in range(n)]


class TestNextState:

    def test_plain_increment(self):
        assert next_state(1, 0) == (1, 1, False)

    def test_threshold_crossing(self):
        assert next_state(1, EVOLUTION_THRESHOLD - 1) == (2, 0, True)

    def test_one_step_even_with_surplus(self):
        assert next_state(2, 10 * EVOLUTION_THRESHOLD) == (3, 0, True)

    def test_final_stage_saturates(self):
        assert next_state(MAX_STAGE, EVOLUTION_THRESHOLD - 1) == (MAX_STAGE, EVOLUTION_THRESHOLD - 1, False)


class TestInteract:

    def test_hundred_interactions_evolve(self, registry, evolution):
        cid = registry.mint(ALICE)
        results = _interact_n(evolution, cid, 100)

        assert results[:99] == [False] * 99
        assert results[99] is True
        t = registry.get_traits(cid)
        assert (t["evolution_stage"], t["interaction_points"]) == (2, 0)

        assert evolution.interact(cid) is False
        t = registry.get_traits(cid)
        assert (t["evolution_stage"], t["interaction_points"]) == (2, 1)

    def test_anyone_may_interact(self, registry, evolution):
        cid = registry.mint(BOB)
        evolution.interact(cid)
        assert registry.get_traits(cid)["interaction_points"] == 1

    def test_stage_bounds_through_max(self, registry, evolution):
        cid = registry.mint(ALICE)
        for _ in range(EVOLUTION_THRESHOLD * (MAX_STAGE + 1)):
            evolution.interact(cid)
            t = registry.get_traits(cid)
            assert 1 <= t["evolution_stage"] <= MAX_STAGE
            assert t["interaction_points"] < EVOLUTION_THRESHOLD

        assert registry.get_traits(cid)["evolution_stage"] == MAX_STAGE

    @pytest.mark.parametrize("bad_id", [0, 2, -3])
    def test_out_of_range(self, registry, evolution, bad_id):
        registry.mint(ALICE)
        with pytest.raises(InvalidParams):
            evolution.interact(bad_id)

    def test_interaction_leaves_other_traits(self, registry, evolution):
        cid = registry.mint(ALICE)
        before = registry.get_traits(cid)
        evolution.interact(cid)
        after = registry.get_traits(cid)
        for k in ("dna", "generation", "birth_ordinal", "last_breed_ordinal"):
            assert after[k] == before[k]
        assert registry.get_owner(cid) == ALICE

"""
tests/test_breeding.py - Breeding Engine

Validates:
- offspring DNA depends only on parent1's front half and parent2's back half
- eligibility: distinct, existing, both off cooldown
- breed check order and side effects on both parents
"""

import hashlib

import pytest

from breeding import BREEDING_COOLDOWN, offspring_dna, mint_dna
from chain import ManualClock, FixedEntropy
from app import build_engines
from errors import CannotBreed, NotAuthorized, NotFound

from conftest import OWNER, ALICE, BOB, START_ORDINAL


class TestOffspringDna:

    def test_hash_of_halves(self):
        a = bytes([1]) * 32
        b = bytes([2]) * 32
        assert offspring_dna(a, b) == hashlib.sha256(a[:16] + b[16:]).digest()

    def test_ignores_unused_halves(self):
        a1 = bytes([1]) * 16 + bytes([9]) * 16
        a2 = bytes([1]) * 16 + bytes([7]) * 16
        b1 = bytes([5]) * 16 + bytes([2]) * 16
        b2 = bytes([6]) * 16 + bytes([2]) * 16
        assert offspring_dna(a1, b1) == offspring_dna(a2, b2)

    def test_order_matters(self):
        a = mint_dna(b"\x01" * 32, 1)
        b = mint_dna(b"\x01" * 32, 2)
        assert offspring_dna(a, b) != offspring_dna(b, a)

    def test_rejects_wrong_size(self):
        with pytest.raises(ValueError):
            offspring_dna(b"\x00" * 31, b"\x00" * 32)


class TestCanBreed:

    def test_fresh_pair(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        assert breeding.can_breed(a, b)

    def test_same_id(self, registry, breeding):
        a = registry.mint(ALICE)
        assert not breeding.can_breed(a, a)

    def test_unknown_id_is_false_not_error(self, registry, breeding):
        a = registry.mint(ALICE)
        assert not breeding.can_breed(a, 77)
        assert not breeding.can_breed(77, a)

    def test_early_ordinals_not_off_cooldown(self, store):
        clock = ManualClock(BREEDING_COOLDOWN - 1)
        e = build_engines(store, clock, FixedEntropy(), OWNER)
        e["ledger"].credit(ALICE, 10 ** 10)
        a, b = e["registry"].mint(ALICE), e["registry"].mint(ALICE)

        assert not e["breeding"].can_breed(a, b)
        clock.advance(1)
        assert e["breeding"].can_breed(a, b)


class TestBreed:

    def test_child_traits(self, registry, breeding, clock):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        clock.advance(5)
        child = breeding.breed(ALICE, a, b)
        t = registry.get_traits(child)

        assert child == 3
        assert registry.get_owner(child) == ALICE
        assert t["generation"] == 2
        assert (t["parent1_id"], t["parent2_id"]) == (a, b)
        assert t["birth_ordinal"] == START_ORDINAL + 5
        assert t["evolution_stage"] == 1
        assert t["interaction_points"] == 0
        assert t["last_breed_ordinal"] == 0
        assert t["dna"] == offspring_dna(registry.get_traits(a)["dna"], registry.get_traits(b)["dna"])

    def test_parents_cooldown_updated(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        breeding.breed(ALICE, a, b)
        assert registry.get_traits(a)["last_breed_ordinal"] == START_ORDINAL
        assert registry.get_traits(b)["last_breed_ordinal"] == START_ORDINAL
        assert breeding.cooldown_remaining(a) == BREEDING_COOLDOWN

    def test_immediate_rebreed_fails(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        breeding.breed(ALICE, a, b)
        with pytest.raises(CannotBreed):
            breeding.breed(ALICE, a, b)

    def test_cooldown_boundary(self, registry, breeding, clock):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        breeding.breed(ALICE, a, b)

        clock.advance(BREEDING_COOLDOWN - 1)
        with pytest.raises(CannotBreed):
            breeding.breed(ALICE, a, b)

        clock.advance(1)
        assert breeding.cooldown_remaining(a) == 0
        assert breeding.breed(ALICE, a, b) == 4

    def test_one_parent_on_cooldown(self, registry, breeding):
        a, b, c = registry.mint(ALICE), registry.mint(ALICE), registry.mint(ALICE)
        breeding.breed(ALICE, a, b)
        with pytest.raises(CannotBreed):
            breeding.breed(ALICE, c, a)

    def test_unknown_parent(self, registry, breeding):
        a = registry.mint(ALICE)
        with pytest.raises(NotFound):
            breeding.breed(ALICE, a, 50)
        with pytest.raises(NotFound):
            breeding.breed(ALICE, 50, a)

    def test_only_parent1_ownership_checked(self, registry, breeding):
        mine = registry.mint(ALICE)
        theirs = registry.mint(BOB)

        child = breeding.breed(ALICE, mine, theirs)
        assert registry.get_owner(child) == ALICE

        with pytest.raises(NotAuthorized):
            breeding.breed(ALICE, theirs, registry.mint(ALICE))

    def test_same_parent_twice(self, registry, breeding):
        a = registry.mint(ALICE)
        with pytest.raises(CannotBreed):
            breeding.breed(ALICE, a, a)

    def test_generation_follows_parent1(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        child = breeding.breed(ALICE, a, b)
        fresh = registry.mint(ALICE)

        grandchild = breeding.breed(ALICE, child, fresh)
        assert registry.get_traits(grandchild)["generation"] == 3

        other = breeding.breed(ALICE, registry.mint(ALICE), registry.mint(ALICE))
        assert registry.get_traits(other)["generation"] == 2

    def test_shared_id_counter(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(ALICE)
        assert breeding.breed(ALICE, a, b) == 3
        assert registry.mint(BOB) == 4

    def test_failed_breed_changes_nothing(self, registry, breeding):
        a, b = registry.mint(ALICE), registry.mint(BOB)
        with pytest.raises(NotAuthorized):
            breeding.breed(ALICE, b, a)
        assert registry.last_creature_id() == 2
        assert registry.get_traits(a)["last_breed_ordinal"] == 0

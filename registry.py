# registry.py — creature identity, traits, ownership and approval grants
import logging, sqlite3

from db import next_id, last_id, is_sql_int
from errors import InvalidParams, NotAuthorized
from ledger import _mask
from breeding import mint_dna

log = logging.getLogger(__name__)

MINT_PRICE = 100_000_000  # minor units

# Approval grants are stored and readable but never consulted when moving a
# creature. get_approved() always answers "no operator".
APPROVAL_ADVISORY = "advisory"

_TRAIT_COLS = ("id", "dna", "generation", "birth_ordinal", "parent1_id", "parent2_id",
               "evolution_stage", "interaction_points", "last_breed_ordinal")

def _is_id(v) -> bool:
    return is_sql_int(v) and v > 0

class CreatureRegistry:
    approval_mode = APPROVAL_ADVISORY

    def __init__(self, store, ledger, clock, entropy, owner: str):
        if not owner:
            raise ValueError("owner principal required")
        self.store = store
        self.ledger = ledger
        self.clock = clock
        self.entropy = entropy
        self.owner = owner

    # ---------- internals (shared with breeding / evolution / marketplace) ----------
    def _in_minted_range(self, cx: sqlite3.Connection, creature_id) -> bool:
        return _is_id(creature_id) and 1 <= creature_id <= last_id(cx, "creature")

    def _owner(self, cx: sqlite3.Connection, creature_id) -> str | None:
        if not _is_id(creature_id):
            return None
        row = cx.execute("SELECT owner FROM creature_owners WHERE creature_id=?", (creature_id,)).fetchone()
        return row["owner"] if row else None

    def _traits(self, cx: sqlite3.Connection, creature_id) -> dict | None:
        if not _is_id(creature_id):
            return None
        row = cx.execute(f"SELECT {', '.join(_TRAIT_COLS)} FROM creatures WHERE id=?",
                         (creature_id,)).fetchone()
        if not row:
            return None
        out = dict(row)
        out["dna"] = bytes(out["dna"])
        return out

    def _spawn(self, cx: sqlite3.Connection, owner: str, dna: bytes, generation: int,
               parents: tuple[int, int] | None = None, creature_id: int | None = None) -> int:
        cid = creature_id if creature_id is not None else next_id(cx, "creature")
        p1, p2 = parents if parents else (None, None)
        cx.execute("""
          INSERT INTO creatures(id, dna, generation, birth_ordinal, parent1_id, parent2_id,
                                evolution_stage, interaction_points, last_breed_ordinal)
          VALUES(?,?,?,?,?,?, 1, 0, 0)
        """, (cid, sqlite3.Binary(dna), int(generation), self.clock.current_ordinal(), p1, p2))
        cx.execute("INSERT INTO creature_owners(creature_id, owner) VALUES(?,?)", (cid, owner))
        return cid

    def _move(self, cx: sqlite3.Connection, creature_id: int, sender: str, recipient: str):
        current = self._owner(cx, creature_id)
        if current != sender:
            raise NotAuthorized("sender_not_owner")
        cx.execute("UPDATE creature_owners SET owner=? WHERE creature_id=?", (recipient, creature_id))

    # ---------- operations ----------
    def mint(self, caller: str) -> int:
        if not caller:
            raise InvalidParams("caller_required")
        with self.store.atomic() as cx:
            self.ledger.transfer(MINT_PRICE, caller, self.owner, memo="CREATURE MINT")
            cid = next_id(cx, "creature")
            dna = mint_dna(self.entropy.entropy_at(self.clock.current_ordinal()), cid)
            self._spawn(cx, caller, dna, generation=1, creature_id=cid)
        log.info("CREATURE_MINTED id=%s owner=%s", cid, _mask(caller))
        return cid

    def transfer(self, caller: str, creature_id: int, sender: str, recipient: str):
        with self.store.atomic() as cx:
            if not self._in_minted_range(cx, creature_id):
                raise InvalidParams("creature_id_out_of_range")
            if sender == recipient:
                raise InvalidParams("sender_is_recipient")
            if caller != sender:
                raise NotAuthorized()
            if not recipient:
                raise InvalidParams("recipient_required")
            self._move(cx, creature_id, sender, recipient)
        log.info("CREATURE_TRANSFER id=%s from=%s to=%s", creature_id, _mask(sender), _mask(recipient))

    def set_approved(self, caller: str, operator: str, approved: bool):
        if operator == self.owner or operator == caller:
            raise InvalidParams("operator_not_allowed")
        with self.store.atomic() as cx:
            cx.execute("""
              INSERT INTO approvals(owner, operator, approved) VALUES(?,?,?)
              ON CONFLICT(owner, operator) DO UPDATE SET approved=excluded.approved
            """, (caller, operator, 1 if approved else 0))

    def get_owner(self, creature_id) -> str | None:
        with self.store.atomic() as cx:
            return self._owner(cx, creature_id)

    def get_traits(self, creature_id) -> dict | None:
        with self.store.atomic() as cx:
            return self._traits(cx, creature_id)

    def get_approved(self, creature_id) -> str | None:
        return None

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        with self.store.atomic() as cx:
            row = cx.execute("SELECT approved FROM approvals WHERE owner=? AND operator=?",
                             (owner, operator)).fetchone()
        return bool(row and row["approved"])

    def creatures_of(self, owner: str, limit: int = 200) -> list[int]:
        with self.store.atomic() as cx:
            rows = cx.execute(
                "SELECT creature_id FROM creature_owners WHERE owner=? ORDER BY creature_id DESC LIMIT ?",
                (owner, int(limit))
            ).fetchall()
        return [int(r["creature_id"]) for r in rows]

    def last_creature_id(self) -> int:
        with self.store.atomic() as cx:
            return last_id(cx, "creature")

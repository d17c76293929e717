# ledger.py — fungible balances kept in the shared store
import time, logging

from db import SQL_INT_MAX, is_sql_int
from errors import InsufficientBalance, InvalidParams

log = logging.getLogger(__name__)

def _now_i() -> int:
    return int(time.time())

def _mask(k: str | None) -> str:
    if not k: return ""
    k = k.strip()
    if len(k) <= 8: return k[:1] + "…"
    return f"{k[:4]}…{k[-4:]}"

def _check_amount(amount) -> int:
    if not is_sql_int(amount) or amount < 0:
        raise InvalidParams("amount must be a non-negative 64-bit integer")
    return amount

class SqliteLedger:
    """
    Moves minor units between principals. A transfer either applies in full or
    raises; it joins whatever Store.atomic() unit is already open.
    """

    def __init__(self, store):
        self.store = store

    def balance_of(self, principal: str) -> int:
        with self.store.atomic() as cx:
            return self._balance(cx, principal)

    def _balance(self, cx, principal: str) -> int:
        row = cx.execute("SELECT amount FROM balances WHERE principal=?", (principal,)).fetchone()
        return int(row["amount"]) if row else 0

    def _add(self, cx, principal: str, delta: int):
        if delta > 0 and self._balance(cx, principal) > SQL_INT_MAX - delta:
            raise InvalidParams("balance_overflow")
        cx.execute("""
          INSERT INTO balances(principal, amount) VALUES(?, ?)
          ON CONFLICT(principal) DO UPDATE SET amount = balances.amount + excluded.amount
        """, (principal, delta))

    def credit(self, principal: str, amount: int, memo: str = "deposit") -> int:
        amount = _check_amount(amount)
        if not principal:
            raise InvalidParams("principal_required")
        with self.store.atomic() as cx:
            self._add(cx, principal, amount)
            cx.execute(
                "INSERT INTO ledger_entries(sender, recipient, amount, memo, created_at) VALUES(NULL,?,?,?,?)",
                (principal, amount, memo, _now_i())
            )
            bal = self._balance(cx, principal)
        log.info("LEDGER_CREDIT to=%s amount=%s", _mask(principal), amount)
        return bal

    def transfer(self, amount: int, sender: str, recipient: str, memo: str | None = None):
        amount = _check_amount(amount)
        if amount == 0:
            return
        with self.store.atomic() as cx:
            have = self._balance(cx, sender)
            if have < amount:
                raise InsufficientBalance(f"need {amount}, have {have}")
            if sender != recipient:
                self._add(cx, sender, -amount)
                self._add(cx, recipient, amount)
            cx.execute(
                "INSERT INTO ledger_entries(sender, recipient, amount, memo, created_at) VALUES(?,?,?,?,?)",
                (sender, recipient, amount, memo, _now_i())
            )
        log.debug("LEDGER_TRANSFER from=%s to=%s amount=%s memo=%s",
                  _mask(sender), _mask(recipient), amount, memo)

    def entries_for(self, principal: str, limit: int = 50) -> list[dict]:
        with self.store.atomic() as cx:
            rows = cx.execute("""
              SELECT id, sender, recipient, amount, memo, created_at
              FROM ledger_entries
              WHERE sender=? OR recipient=?
              ORDER BY id DESC LIMIT ?
            """, (principal, principal, int(limit))).fetchall()
        return [dict(r) for r in rows]

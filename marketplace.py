# marketplace.py — listings, expiry, escrowed purchase settlement and fee accounting
import logging

from db import next_id, is_sql_int
from ledger import _mask
from errors import NotFound, NotAuthorized, InvalidParams, ListingExpired, NotListed

log = logging.getLogger(__name__)

LISTING_DURATION  = 1440        # ordinals
MIN_LISTING_PRICE = 1_000_000   # minor units
DEFAULT_FEE_BP    = 25          # per-mille: 25 = 2.5%
MAX_FEE_BP        = 100
FEE_DENOMINATOR   = 1000

STATUS_ACTIVE    = "active"
STATUS_SOLD      = "sold"
STATUS_CANCELLED = "cancelled"

def split_amounts(price: int, fee_bp: int) -> tuple[int, int]:
    fee = price * fee_bp // FEE_DENOMINATOR
    return fee, price - fee

def _valid_price(price) -> bool:
    return is_sql_int(price) and price >= MIN_LISTING_PRICE

class MarketplaceEngine:
    def __init__(self, registry, ledger, default_fee_bp: int = DEFAULT_FEE_BP):
        if not 0 <= default_fee_bp <= MAX_FEE_BP:
            raise ValueError("default fee out of range")
        self.registry = registry
        self.ledger = ledger
        self.store = registry.store
        self.clock = registry.clock
        self.owner = registry.owner
        with self.store.atomic() as cx:
            cx.execute("INSERT OR IGNORE INTO market_account(id, fee_bp) VALUES(1, ?)", (int(default_fee_bp),))

    # ---------- internals ----------
    def _listing(self, cx, listing_id) -> dict | None:
        if not is_sql_int(listing_id):
            return None
        row = cx.execute("SELECT * FROM listings WHERE id=?", (listing_id,)).fetchone()
        return dict(row) if row else None

    def _account(self, cx) -> dict:
        return dict(cx.execute("SELECT fee_bp, total_listings, total_volume FROM market_account WHERE id=1").fetchone())

    def _purchasable(self, listing: dict, now: int) -> bool:
        return listing["status"] == STATUS_ACTIVE and now < int(listing["expiry_ordinal"])

    def _seller_listing(self, cx, caller: str, listing_id) -> dict:
        lst = self._listing(cx, listing_id)
        if not lst:
            raise NotFound("listing_not_found")
        if caller != lst["seller"]:
            raise NotAuthorized()
        if lst["status"] != STATUS_ACTIVE:
            raise NotListed()
        return lst

    def _with_validity(self, lst: dict, now: int) -> dict:
        lst["valid"] = self._purchasable(lst, now)
        return lst

    # ---------- operations ----------
    def list_creature(self, caller: str, creature_id: int, price: int) -> int:
        with self.store.atomic() as cx:
            owner = self.registry._owner(cx, creature_id)
            if owner is None:
                raise NotFound("creature_not_found")
            if caller != owner:
                raise NotAuthorized()
            if not _valid_price(price):
                raise InvalidParams("price_below_minimum")
            now = self.clock.current_ordinal()
            lid = next_id(cx, "listing")
            cx.execute("""
              INSERT INTO listings(id, creature_id, seller, price, created_ordinal, expiry_ordinal, status)
              VALUES(?,?,?,?,?,?,?)
            """, (lid, creature_id, caller, price, now, now + LISTING_DURATION, STATUS_ACTIVE))
            cx.execute("UPDATE market_account SET total_listings = total_listings + 1 WHERE id=1")
        log.info("LISTING_CREATED id=%s creature=%s seller=%s price=%s", lid, creature_id, _mask(caller), price)
        return lid

    def cancel_listing(self, caller: str, listing_id: int):
        with self.store.atomic() as cx:
            self._seller_listing(cx, caller, listing_id)
            cx.execute("UPDATE listings SET status=? WHERE id=?", (STATUS_CANCELLED, listing_id))
        log.info("LISTING_CANCELLED id=%s", listing_id)

    def update_listing_price(self, caller: str, listing_id: int, new_price: int):
        with self.store.atomic() as cx:
            self._seller_listing(cx, caller, listing_id)
            if not _valid_price(new_price):
                raise InvalidParams("price_below_minimum")
            # expiry is left where it was
            cx.execute("UPDATE listings SET price=? WHERE id=?", (new_price, listing_id))

    def buy_creature(self, caller: str, listing_id: int) -> dict:
        with self.store.atomic() as cx:
            lst = self._listing(cx, listing_id)
            if not lst:
                raise NotFound("listing_not_found")
            if not self._purchasable(lst, self.clock.current_ordinal()):
                raise ListingExpired()
            seller = lst["seller"]
            if caller == seller:
                raise InvalidParams("self_purchase")

            price = int(lst["price"])
            cid = int(lst["creature_id"])
            fee, seller_amount = split_amounts(price, self._account(cx)["fee_bp"])

            # price and fee are separate debits: the buyer pays price + fee
            self.ledger.transfer(price, caller, seller, memo=f"CREATURE SALE {listing_id}")
            self.ledger.transfer(fee, caller, self.owner, memo=f"MARKET FEE {listing_id}")
            self.registry._move(cx, cid, seller, caller)

            cx.execute("""
              INSERT INTO sale_history(creature_id, last_price, total_sales, highest_price)
              VALUES(?, ?, 1, ?)
              ON CONFLICT(creature_id) DO UPDATE SET
                last_price    = excluded.last_price,
                total_sales   = sale_history.total_sales + 1,
                highest_price = CASE WHEN excluded.highest_price > sale_history.highest_price
                                     THEN excluded.highest_price ELSE sale_history.highest_price END
            """, (cid, price, price))
            cx.execute("UPDATE listings SET status=? WHERE id=?", (STATUS_SOLD, listing_id))
            cx.execute("UPDATE market_account SET total_volume = total_volume + ? WHERE id=1", (price,))

        log.info("LISTING_SOLD id=%s creature=%s buyer=%s price=%s fee=%s",
                 listing_id, cid, _mask(caller), price, fee)
        return {
            "listing_id": listing_id,
            "creature_id": cid,
            "buyer": caller,
            "seller": seller,
            "price": price,
            "fee": fee,
            "seller_amount": seller_amount,
            "buyer_debit": price + fee,
        }

    def update_marketplace_fee(self, caller: str, new_fee: int):
        if caller != self.owner:
            raise NotAuthorized()
        if not is_sql_int(new_fee) or new_fee < 0 or new_fee > MAX_FEE_BP:
            raise InvalidParams("fee_out_of_range")
        with self.store.atomic() as cx:
            cx.execute("UPDATE market_account SET fee_bp=? WHERE id=1", (new_fee,))
        log.info("MARKET_FEE_UPDATED fee_bp=%s", new_fee)

    # ---------- reads ----------
    def get_listing(self, listing_id) -> dict | None:
        with self.store.atomic() as cx:
            lst = self._listing(cx, listing_id)
        return self._with_validity(lst, self.clock.current_ordinal()) if lst else None

    def is_listing_valid(self, listing_id) -> bool:
        lst = self.get_listing(listing_id)
        return bool(lst and lst["valid"])

    def active_listings(self, limit: int = 100) -> list[dict]:
        now = self.clock.current_ordinal()
        with self.store.atomic() as cx:
            rows = cx.execute("""
              SELECT * FROM listings
              WHERE status=? AND expiry_ordinal > ?
              ORDER BY id DESC LIMIT ?
            """, (STATUS_ACTIVE, now, int(limit))).fetchall()
        return [self._with_validity(dict(r), now) for r in rows]

    def listings_for_creature(self, creature_id) -> list[dict]:
        if not is_sql_int(creature_id):
            return []
        now = self.clock.current_ordinal()
        with self.store.atomic() as cx:
            rows = cx.execute("SELECT * FROM listings WHERE creature_id=? ORDER BY id ASC",
                              (creature_id,)).fetchall()
        return [self._with_validity(dict(r), now) for r in rows]

    def get_sale_history(self, creature_id) -> dict | None:
        if not is_sql_int(creature_id):
            return None
        with self.store.atomic() as cx:
            row = cx.execute("SELECT * FROM sale_history WHERE creature_id=?", (creature_id,)).fetchone()
        return dict(row) if row else None

    def get_stats(self) -> dict:
        with self.store.atomic() as cx:
            return self._account(cx)

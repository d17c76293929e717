# market_api.py — listings / purchase / fee endpoints
from flask import Blueprint, jsonify, request

from api_helpers import engines, require_caller, body, int_field
from errors import NotFound
from marketplace import LISTING_DURATION, MIN_LISTING_PRICE, MAX_FEE_BP, FEE_DENOMINATOR

bp_market = Blueprint("market", __name__)

def _market():
    return engines()["marketplace"]

# ---- listings ----------------------------------------------------------------

@bp_market.get("/api/market/listings")
def market_listings():
    try:
        limit = max(1, min(200, int(request.args.get("limit") or 100)))
    except ValueError:
        limit = 100
    return jsonify({"ok": True, "listings": _market().active_listings(limit)})

@bp_market.post("/api/market/listings")
def market_list_creature():
    who = require_caller()
    j = body()
    cid = int_field(j, "creature_id", "id")
    price = int_field(j, "price")
    lid = _market().list_creature(who, cid, price)
    return jsonify({"ok": True, "listing": _market().get_listing(lid)})

@bp_market.get("/api/market/listings/<int:lid>")
def market_get_listing(lid):
    lst = _market().get_listing(lid)
    if not lst:
        raise NotFound("listing_not_found")
    return jsonify({"ok": True, "listing": lst})

@bp_market.post("/api/market/listings/<int:lid>/cancel")
def market_cancel(lid):
    who = require_caller()
    _market().cancel_listing(who, lid)
    return jsonify({"ok": True, "listing": _market().get_listing(lid)})

@bp_market.post("/api/market/listings/<int:lid>/price")
def market_update_price(lid):
    who = require_caller()
    price = int_field(body(), "price")
    _market().update_listing_price(who, lid, price)
    return jsonify({"ok": True, "listing": _market().get_listing(lid)})

@bp_market.post("/api/market/listings/<int:lid>/buy")
def market_buy(lid):
    who = require_caller()
    receipt = _market().buy_creature(who, lid)
    return jsonify({"ok": True, "receipt": receipt})

# ---- history / stats / fee ---------------------------------------------------

@bp_market.get("/api/market/history/<int:cid>")
def market_history(cid):
    return jsonify({"ok": True, "creature_id": cid, "history": _market().get_sale_history(cid)})

@bp_market.get("/api/market/stats")
def market_stats():
    stats = _market().get_stats()
    stats.update({
        "fee_denominator": FEE_DENOMINATOR,
        "max_fee_bp": MAX_FEE_BP,
        "min_listing_price": MIN_LISTING_PRICE,
        "listing_duration": LISTING_DURATION,
    })
    return jsonify({"ok": True, "stats": stats})

@bp_market.post("/api/market/fee")
def market_update_fee():
    who = require_caller()
    fee = int_field(body(), "fee_bp", "fee")
    _market().update_marketplace_fee(who, fee)
    return jsonify({"ok": True, "fee_bp": fee})

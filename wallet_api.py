from flask import Blueprint, request, jsonify

from api_helpers import engines, caller_pub, _isG

bp = Blueprint("wallet_api", __name__)

@bp.get("/api/wallet/balance")
def wallet_balance():
    """
    Ledger balance for ?pub=<G...>, falling back to the caller's own wallet.
    Includes the most recent journal entries touching that wallet.
    """
    pub = (request.args.get("pub") or "").strip() or caller_pub()
    if not _isG(pub):
        return jsonify({"ok": False, "error": "pub_invalid"}), 400
    ledger = engines()["ledger"]
    return jsonify({
        "ok": True,
        "pub": pub,
        "balance": ledger.balance_of(pub),
        "entries": ledger.entries_for(pub, limit=20),
    })

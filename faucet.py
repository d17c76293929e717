# faucet.py — dev-only ledger credits (registered when FAUCET_ENABLED=true)
import os, time, logging
from flask import Blueprint, request, jsonify

from api_helpers import engines, _isG, _mask

bp_faucet = Blueprint("faucet", __name__)
log = logging.getLogger(__name__)

# -------- Config --------
FAUCET_AMOUNT = int(os.environ.get("FAUCET_AMOUNT", "1000000000"))

# -------- tiny per-IP rate limit --------
_last = {}
def rate_limited(ip, window=60, max_hits=6):
    now = time.time()
    t, c = _last.get(ip, (0, 0))
    if now - t > window:
        _last[ip] = (now, 1)
        return False
    c += 1
    _last[ip] = (t, c)
    return c > max_hits

@bp_faucet.post("/faucet/drip")
def faucet_drip():
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "?").split(",")[0].strip()
    if rate_limited(ip):
        return jsonify({"ok": False, "error": "rate_limited"}), 429

    j = request.get_json(silent=True) or {}
    pub = (j.get("pub") or "").strip() if isinstance(j.get("pub"), str) else ""
    if not _isG(pub):
        return jsonify({"ok": False, "error": "pub_invalid"}), 400

    bal = engines()["ledger"].credit(pub, FAUCET_AMOUNT, memo="FAUCET")
    log.info("FAUCET_DRIP to=%s amount=%s ip=%s", _mask(pub), FAUCET_AMOUNT, ip)
    return jsonify({"ok": True, "pub": pub, "credited": FAUCET_AMOUNT, "balance": bal})

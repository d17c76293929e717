# api_helpers.py — shared bits for the HTTP blueprints
from flask import current_app, request, session
from stellar_sdk import StrKey

from db import is_sql_int
from errors import CreaturesError, InvalidParams
from ledger import _mask  # re-exported for blueprints

class NotAuthenticated(CreaturesError):
    code = "not_authenticated"
    status = 401

def _isG(v: str | None) -> bool:
    try:
        return bool(v and StrKey.is_valid_ed25519_public_key(v.strip()))
    except Exception:
        return False

def engines() -> dict:
    return current_app.extensions["creatures"]

def caller_pub() -> str | None:
    """
    Caller identity, trusted as given:
      1) X-Wallet-Pub header
      2) session['wallet_pub']
    """
    pub = (request.headers.get("X-Wallet-Pub") or "").strip()
    if not pub:
        pub = (session.get("wallet_pub") or "").strip()
    return pub if _isG(pub) else None

def require_caller() -> str:
    pub = caller_pub()
    if not pub:
        raise NotAuthenticated()
    return pub

def body() -> dict:
    j = request.get_json(silent=True)
    return j if isinstance(j, dict) else {}

def int_field(data: dict, *names: str) -> int:
    for n in names:
        v = data.get(n)
        if v is None or v == "":
            continue
        if isinstance(v, bool):
            break
        if isinstance(v, float) and not v.is_integer():
            break
        try:
            v = int(v)
        except (TypeError, ValueError, OverflowError):
            break
        if not is_sql_int(v):
            break
        return v
    raise InvalidParams(f"{names[0]}_required")

def pub_field(data: dict, name: str) -> str:
    v = (data.get(name) or "").strip() if isinstance(data.get(name), str) else ""
    if not _isG(v):
        raise InvalidParams(f"{name}_invalid")
    return v

def creature_view(traits: dict, owner: str | None) -> dict:
    out = dict(traits)
    out["dna"] = traits["dna"].hex()
    out["owner"] = owner
    return out

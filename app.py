import os, logging, secrets
from flask import Flask, jsonify
from dotenv import load_dotenv
from stellar_sdk import StrKey

from db import Store
from errors import CreaturesError
from chain import WallClock, ManualClock, ChainEntropy
from ledger import SqliteLedger
from registry import CreatureRegistry
from breeding import BreedingEngine
from evolution import EvolutionTracker
from marketplace import MarketplaceEngine, DEFAULT_FEE_BP

log = logging.getLogger(__name__)

# ----------------- ENV -----------------
def _clean(s: str | None) -> str | None:
    if s is None: return None
    return s.strip().replace("\n", "").replace("\r", "")

def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    return _clean(v) if isinstance(v, str) else v

def _flag(name: str, default: str = "false") -> bool:
    return (_getenv(name, default) or "").lower() in ("1", "true", "yes", "on")

def build_engines(store, clock, entropy, owner: str) -> dict:
    ledger = SqliteLedger(store)
    registry = CreatureRegistry(store, ledger, clock, entropy, owner)
    return {
        "store": store,
        "clock": clock,
        "entropy": entropy,
        "ledger": ledger,
        "registry": registry,
        "breeding": BreedingEngine(registry),
        "evolution": EvolutionTracker(registry),
        "marketplace": MarketplaceEngine(registry, ledger, default_fee_bp=DEFAULT_FEE_BP),
    }

def create_app(store=None, clock=None, entropy=None, owner: str | None = None,
               faucet: bool | None = None) -> Flask:
    load_dotenv()
    logging.basicConfig(
        level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    owner = owner or _getenv("CREATURES_OWNER_PUBLIC")
    problems = []
    if not owner:
        problems.append("CREATURES_OWNER_PUBLIC missing")
    elif not StrKey.is_valid_ed25519_public_key(owner):
        problems.append("CREATURES_OWNER_PUBLIC invalid")
    clock_mode = (_getenv("CREATURES_CLOCK", "wall") or "wall").lower()
    if clock is None and clock_mode not in ("wall", "manual"):
        problems.append(f"CREATURES_CLOCK must be wall|manual, got {clock_mode}")
    if problems:
        raise RuntimeError("creatures env invalid: " + ", ".join(problems))

    if clock is None:
        clock = ManualClock() if clock_mode == "manual" else WallClock()
    entropy = entropy or ChainEntropy()
    store = store or Store(_getenv("SQLITE_DB_PATH"))

    app = Flask(__name__)
    app.secret_key = _getenv("FLASK_SECRET") or secrets.token_hex(32)
    app.extensions["creatures"] = build_engines(store, clock, entropy, owner)

    from creatures_api import bp_creatures
    from market_api import bp_market
    from wallet_api import bp as bp_wallet
    app.register_blueprint(bp_creatures)
    app.register_blueprint(bp_market)
    app.register_blueprint(bp_wallet)

    if faucet is None:
        faucet = _flag("FAUCET_ENABLED")
    if faucet:
        from faucet import bp_faucet
        app.register_blueprint(bp_faucet)

    @app.errorhandler(CreaturesError)
    def _creatures_error(e):
        return jsonify(e.to_dict()), e.status

    @app.get("/healthz")
    def healthz():
        return jsonify({"ok": True, "ordinal": clock.current_ordinal()})

    log.info("CREATURES_APP_READY db=%s clock=%s owner=%s…",
             store.path, type(clock).__name__, owner[:4])
    return app

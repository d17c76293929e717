import json, random
from flask import Blueprint, request, jsonify, make_response, url_for

from api_helpers import (
    engines, require_caller, caller_pub, body, int_field, pub_field, creature_view, _isG
)
from errors import NotFound, InvalidParams
from registry import MINT_PRICE
from breeding import BREEDING_COOLDOWN, DNA_SIZE
from evolution import EVOLUTION_THRESHOLD, MAX_STAGE

bp_creatures = Blueprint("creatures", __name__)

# ---------- art derived from DNA ----------
_PALETTES = ["gold","violet","turquoise","rose","lime","sapphire","ember","obsidian","mint",
             "amethyst","citrine","arctic","blaze","void"]
_PATTERNS = ["speckle","stripe","swirl","mosaic","grid","starfield"]

_BG = {
    "gold":"#130e00","violet":"#0e061a","turquoise":"#02151a","rose":"#1a0710","lime":"#0c1a06",
    "sapphire":"#06101e","ember":"#1a0b06","obsidian":"#0b0b10","mint":"#04130d",
    "amethyst":"#11081c","citrine":"#1c1305","arctic":"#051018","blaze":"#190803","void":"#050509"
}
_GLOW = {
    "gold":"#ffcd60","violet":"#b784ff","turquoise":"#48d4ff","rose":"#ff7aa2","lime":"#89ff7a",
    "sapphire":"#5aa8ff","ember":"#ff8a4d","obsidian":"#8a96a8","mint":"#7affc9",
    "amethyst":"#c19bff","citrine":"#ffd86b","arctic":"#7fe9ff","blaze":"#ff6a3a","void":"#c0c4d8"
}
_BODY = {
    "gold":"#ffe39a","violet":"#d7c0ff","turquoise":"#7fe6ff","rose":"#ffb6c8","lime":"#b4ffaf",
    "sapphire":"#b9d9ff","ember":"#ffd2b8","obsidian":"#cfd6e4","mint":"#c5ffeb",
    "amethyst":"#e5d4ff","citrine":"#ffe9a8","arctic":"#c9f2ff","blaze":"#ffd0bd","void":"#e2e6f4"
}
_STAGE_SCALE = {1: 0.8, 2: 0.95, 3: 1.06, 4: 1.18}

def _choose_palette(dna: bytes) -> tuple[str, str]:
    return _PALETTES[dna[0] % len(_PALETTES)], _PATTERNS[dna[1] % len(_PATTERNS)]

def _pattern_svg(pattern: str, color: str, rnd: random.Random) -> str:
    if pattern == "speckle":
        return "".join(
            f'<circle cx="{rnd.randint(-60, 60)}" cy="{rnd.randint(-40, 40)}" r="{rnd.randint(2, 5)}" fill="{color}" opacity=".25"/>'
            for _ in range(24))
    if pattern == "stripe":
        return f'<g opacity=".25" stroke="{color}" stroke-width="6">' + \
               "".join(f'<line x1="{x}" y1="-60" x2="{x+40}" y2="60"/>' for x in range(-70, 60, 14)) + "</g>"
    if pattern == "swirl":
        return f'<path d="M-60,0 C-20,-40,20,-40,60,0 C20,40,-20,40,-60,0" fill="none" stroke="{color}" stroke-width="6" opacity=".25"/>'
    if pattern == "mosaic":
        return "".join(
            f'<rect x="{rnd.randint(-70, 50)}" y="{rnd.randint(-40, 30)}" width="{rnd.randint(8, 16)}" height="{rnd.randint(8, 14)}" fill="{color}" opacity=".18"/>'
            for _ in range(20))
    if pattern == "grid":
        return f'<g opacity=".18" stroke="{color}" stroke-width="3">' + \
               "".join(f'<line x1="-80" y1="{y}" x2="80" y2="{y}"/>' for y in range(-50, 60, 12)) + \
               "".join(f'<line x1="{x}" y1="-50" x2="{x}" y2="60"/>' for x in range(-70, 80, 12)) + "</g>"
    # starfield
    return "".join(
        f'<circle cx="{rnd.randint(-80, 80)}" cy="{rnd.randint(-60, 60)}" r="{rnd.choice([1, 2, 3])}" fill="{color}" opacity=".28"/>'
        for _ in range(26))

def render_svg(traits: dict) -> str:
    dna = traits["dna"]
    base, pattern = _choose_palette(dna)
    stage = int(traits["evolution_stage"])
    rnd = random.Random(dna.hex())
    scale = _STAGE_SCALE.get(stage, 1.0)
    crown = stage >= MAX_STAGE
    return f"""<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 512 512" width="512" height="512">
  <rect width="512" height="512" fill="{_BG[base]}"/>
  <g transform="translate(256,280) scale({scale:.2f})">
    <ellipse rx="110" ry="85" fill="{_GLOW[base]}" opacity=".18"/>
    <ellipse rx="95" ry="70" fill="{_BODY[base]}"/>
    {_pattern_svg(pattern, _GLOW[base], rnd)}
    <circle cx="-28" cy="-14" r="9" fill="#180d00"/>
    <circle cx="28" cy="-14" r="9" fill="#180d00"/>
    <path d="M-18,10 Q0,22 18,10" stroke="#180d00" stroke-width="4" fill="none"/>
    {'<path d="M-40,-78 L-24,-104 L0,-84 L24,-104 L40,-78 Z" fill="#ffcd60"/>' if crown else ''}
  </g>
  <text x="24" y="40" fill="{_GLOW[base]}" font-family="monospace" font-size="18">#{traits['id']} gen {traits['generation']} stage {stage}</text>
</svg>"""

def _svg_headers(resp):
    resp.headers["Content-Type"] = "image/svg+xml"
    resp.headers["Cache-Control"] = "no-store, max-age=0"
    resp.headers["X-Content-Type-Options"] = "nosniff"
    return resp

def _traits_or_404(cid: int) -> dict:
    t = engines()["registry"].get_traits(cid)
    if not t:
        raise NotFound("creature_not_found")
    return t

# ---------- API ----------
@bp_creatures.get("/api/creatures/quote")
def creatures_quote():
    return jsonify({
        "ok": True,
        "mint_price": MINT_PRICE,
        "breeding_cooldown": BREEDING_COOLDOWN,
        "evolution_threshold": EVOLUTION_THRESHOLD,
        "max_stage": MAX_STAGE,
        "dna_size": DNA_SIZE,
        "ordinal": engines()["clock"].current_ordinal(),
    })

@bp_creatures.post("/api/creatures/mint")
def creatures_mint():
    who = require_caller()
    cid = engines()["registry"].mint(who)
    return jsonify({"ok": True, "id": cid})

@bp_creatures.post("/api/creatures/transfer")
def creatures_transfer():
    who = require_caller()
    j = body()
    cid = int_field(j, "id", "creature_id")
    sender = str(j.get("sender") or who).strip()
    recipient = pub_field(j, "recipient")
    engines()["registry"].transfer(who, cid, sender, recipient)
    return jsonify({"ok": True, "id": cid, "owner": recipient})

@bp_creatures.post("/api/creatures/approve")
def creatures_approve():
    who = require_caller()
    j = body()
    operator = pub_field(j, "operator")
    approved = j.get("approved", True)
    if not isinstance(approved, bool):
        raise InvalidParams("approved_must_be_boolean")
    engines()["registry"].set_approved(who, operator, approved)
    return jsonify({"ok": True, "operator": operator, "approved": approved})

@bp_creatures.get("/api/creatures/mine")
def creatures_mine():
    pub = (request.args.get("pub") or "").strip() or caller_pub()
    if not _isG(pub):
        return jsonify({"items": []})
    reg = engines()["registry"]
    items = []
    for cid in reg.creatures_of(pub):
        items.append(creature_view(reg.get_traits(cid), pub))
    return jsonify({"items": items})

@bp_creatures.get("/api/creatures/<int:cid>")
def creatures_get(cid):
    reg = engines()["registry"]
    t = _traits_or_404(cid)
    out = creature_view(t, reg.get_owner(cid))
    out["cooldown_remaining"] = engines()["breeding"].cooldown_remaining(cid)
    return jsonify({"ok": True, "creature": out})

@bp_creatures.get("/api/creatures/<int:cid>/approved")
def creatures_approved(cid):
    reg = engines()["registry"]
    return jsonify({"ok": True, "id": cid, "operator": reg.get_approved(cid), "mode": reg.approval_mode})

@bp_creatures.get("/api/creatures/can-breed")
def creatures_can_breed():
    try:
        a = int(request.args.get("a", ""))
        b = int(request.args.get("b", ""))
    except ValueError:
        raise InvalidParams("a_and_b_required")
    return jsonify({"ok": True, "can_breed": engines()["breeding"].can_breed(a, b)})

@bp_creatures.post("/api/creatures/breed")
def creatures_breed():
    who = require_caller()
    j = body()
    p1 = int_field(j, "parent1", "parent1_id")
    p2 = int_field(j, "parent2", "parent2_id")
    child = engines()["breeding"].breed(who, p1, p2)
    return jsonify({"ok": True, "id": child})

@bp_creatures.post("/api/creatures/interact")
def creatures_interact():
    require_caller()
    cid = int_field(body(), "id", "creature_id")
    evolved = engines()["evolution"].interact(cid)
    t = engines()["registry"].get_traits(cid)
    return jsonify({"ok": True, "evolved": evolved,
                    "stage": t["evolution_stage"], "points": t["interaction_points"]})

# ---------- metadata / art ----------
@bp_creatures.get("/nftmeta/<int:cid>.json")
def creatures_metadata(cid):
    t = _traits_or_404(cid)
    base, pattern = _choose_palette(t["dna"])
    meta = {
        "name": f"Creature #{cid}",
        "description": "A creature that breeds, evolves and trades.",
        "image": url_for("creatures.creature_svg", cid=cid, _external=True),
        "attributes": [
            {"trait_type": "Generation", "value": t["generation"]},
            {"trait_type": "Stage", "value": t["evolution_stage"]},
            {"trait_type": "Palette", "value": base},
            {"trait_type": "Pattern", "value": pattern},
            {"trait_type": "DNA", "value": t["dna"].hex()},
        ],
    }
    resp = make_response(json.dumps(meta), 200)
    resp.headers["Content-Type"] = "application/json; charset=utf-8"
    resp.headers["Cache-Control"] = "no-store"
    return resp

@bp_creatures.get("/nftsvg/<int:cid>.svg")
def creature_svg(cid):
    return _svg_headers(make_response(render_svg(_traits_or_404(cid)), 200))

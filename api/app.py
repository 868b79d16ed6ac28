"""Flask app factory for FightBook."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from flask import Flask, jsonify, request

import config
from api import services
from api.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def _requester() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def _respond(result: dict, ok_status: int = 200):
    if "error" in result:
        body = dict(result)
        status = body.pop("status", 400)
        return jsonify(body), status
    return jsonify(result), ok_status


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _seed(data: dict) -> Optional[int]:
    seed = data.get("seed")
    if isinstance(seed, bool) or not isinstance(seed, int):
        return None
    return seed


def create_app(
    db_url: Optional[str] = None,
    fighter_limiter: Optional[RateLimiter] = None,
    fight_limiter: Optional[RateLimiter] = None,
    admin_secret: Optional[str] = None,
) -> Flask:
    app = Flask(__name__)
    app.config["ADMIN_SECRET"] = config.ADMIN_SECRET if admin_secret is None else admin_secret

    services.init_db(db_url or config.DB_URL, fighter_limiter, fight_limiter)

    # ------------------------------------------------------------------
    # Fighters
    # ------------------------------------------------------------------

    @app.route("/api/fighters")
    def list_fighters():
        limit = max(1, min(_int_arg("limit", 100), 100))
        return jsonify(services.list_fighters(limit))

    @app.route("/api/fighters", methods=["POST"])
    def register_fighter():
        data = _json_body()
        result = services.register_fighter(
            name=data.get("name"),
            stats=data.get("stats"),
            metadata=data.get("metadata"),
            requester=_requester(),
        )
        return _respond(result, 201)

    @app.route("/api/fighters/<fighter_id>")
    def get_fighter(fighter_id: str):
        fighter = services.get_fighter(fighter_id)
        if not fighter:
            return jsonify({"error": "Fighter not found"}), 404
        return jsonify(fighter)

    @app.route("/api/fighters/<fighter_id>", methods=["DELETE"])
    def delete_fighter(fighter_id: str):
        secret = app.config["ADMIN_SECRET"]
        supplied = request.headers.get("Authorization", "")
        if not secret or not hmac.compare_digest(supplied, f"Bearer {secret}"):
            logger.warning("unauthorized delete attempt from %s", _requester())
            return jsonify({"error": "Unauthorized"}), 401
        return _respond(services.delete_fighter(fighter_id))

    # ------------------------------------------------------------------
    # Fights
    # ------------------------------------------------------------------

    @app.route("/api/fights")
    def list_fights():
        return jsonify(services.list_fights(_int_arg("limit", 50)))

    @app.route("/api/fights", methods=["POST"])
    def create_fight():
        data = _json_body()
        result = services.run_fight(
            data.get("fighter1_id"),
            data.get("fighter2_id"),
            requester=_requester(),
            seed=_seed(data),
        )
        return _respond(result, 201)

    @app.route("/api/fights/<int:fight_id>")
    def get_fight(fight_id: int):
        fight = services.get_fight(fight_id)
        if not fight:
            return jsonify({"error": "Fight not found"}), 404
        return jsonify(fight)

    # ------------------------------------------------------------------
    # Practice (no persistence)
    # ------------------------------------------------------------------

    @app.route("/api/simulate", methods=["POST"])
    def simulate():
        data = _json_body()
        result = services.simulate_practice(
            data.get("fighter1"),
            data.get("fighter2"),
            requester=_requester(),
            seed=_seed(data),
        )
        return _respond(result)

    return app

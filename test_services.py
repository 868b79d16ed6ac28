"""
Tests for the FightBook service layer.

Each test gets a fresh in-memory database through the ``db`` fixture.
"""

from __future__ import annotations

from conftest import FULL_STATS
from api import services
from api.rate_limit import RateLimiter


def _register(db, name, stats=None, **kwargs):
    result = db.register_fighter(name, FULL_STATS if stats is None else stats, **kwargs)
    assert "error" not in result, result
    return result


# -------------------------------------------------------------------------
# Registration
# -------------------------------------------------------------------------

def test_register_fighter(db):
    result = _register(db, "  Iron <Mike>  ", metadata={"bio": "hits hard"})
    assert result["name"] == "Iron Mike"
    assert result["stats"]["striking"] == 70
    assert result["metadata"] == {"bio": "hits hard"}
    assert result["record"] == "0-0-0"
    assert db.get_fighter(result["id"])["name"] == "Iron Mike"


def test_register_normalizes_snake_case_stats(db):
    result = _register(db, "Snake", {"punch_speed": 70, "takedown_defense": 60})
    assert result["stats"] == {"punchSpeed": 70, "takedownDefense": 60}


def test_register_requires_name(db):
    assert db.register_fighter(None, {}) == {"error": "name is required", "status": 400}
    assert db.register_fighter(123, {})["status"] == 400


def test_register_rejects_short_name(db):
    result = db.register_fighter(" <a> ", {})
    assert result["status"] == 400
    assert "at least 2" in result["error"]


def test_register_rejects_duplicate_name_case_insensitive(db):
    _register(db, "Red Baron")
    result = db.register_fighter("red baron", FULL_STATS)
    assert result["status"] == 409


def test_register_rejects_invalid_stats(db):
    result = db.register_fighter("Cheater", {"striking": 120})
    assert result["status"] == 400
    assert result["error"] == "Stats validation failed"
    assert result["details"] == ["striking: maximum is 95 (got 120)"]


def test_register_rejects_non_object_stats(db):
    result = db.register_fighter("Listy", [1, 2, 3])
    assert result["status"] == 400


def test_register_rate_limited_per_requester(db):
    services.configure_limiters(fighter_limiter=RateLimiter(2, 60))
    _register(db, "One", requester="1.2.3.4")
    _register(db, "Two", requester="1.2.3.4")
    blocked = db.register_fighter("Three", FULL_STATS, requester="1.2.3.4")
    assert blocked["status"] == 429
    assert blocked["retry_after"] >= 1
    _register(db, "Four", requester="5.6.7.8")


def test_list_fighters_orders_by_wins(db):
    a = _register(db, "Alpha")
    b = _register(db, "Bravo")
    c = _register(db, "Charlie")
    # Keep fighting until somebody has a win
    for seed in range(50):
        fight = db.run_fight(b["id"], c["id"], seed=seed)
        if fight["winner_id"]:
            break
    names = [f["name"] for f in db.list_fighters()]
    winner_name = fight["winner"]
    assert names[0] == winner_name
    assert set(names) == {"Alpha", "Bravo", "Charlie"}
    assert db.get_fighter(a["id"])["total_fights"] == 0


def test_delete_fighter(db):
    f = _register(db, "Goner")
    assert db.delete_fighter(f["id"]) == {"deleted": f["id"]}
    assert db.get_fighter(f["id"]) is None
    assert db.delete_fighter(f["id"])["status"] == 404


def test_delete_fighter_detaches_fight_history(db):
    a = _register(db, "Red")
    b = _register(db, "Blue")
    # Find a seed with a winner so winner_id is populated too
    for seed in range(50):
        fight = db.run_fight(a["id"], b["id"], seed=seed)
        if fight["winner_id"]:
            break
    assert fight["winner_id"] in (a["id"], b["id"])

    db.delete_fighter(fight["winner_id"])
    kept = db.get_fight(fight["id"])
    assert fight["winner_id"] not in (kept["fighter1_id"], kept["fighter2_id"], kept["winner_id"])
    assert kept["winner_id"] is None
    assert kept["winner"] == fight["winner"]
    assert (kept["fighter1"], kept["fighter2"]) == ("Red", "Blue")
    survivor = b["id"] if fight["winner_id"] == a["id"] else a["id"]
    assert survivor in (kept["fighter1_id"], kept["fighter2_id"])


def test_injected_limiters_are_kept():
    mine = RateLimiter(1, 3600)
    theirs = RateLimiter(2, 60)
    services.configure_limiters(fighter_limiter=theirs, fight_limiter=mine)
    assert services._fight_limiter is mine
    assert services._fighter_limiter is theirs

    services.configure_limiters()
    assert services._fight_limiter.max_requests == services.config.FIGHT_RATE_LIMIT
    assert services._fighter_limiter.max_requests == services.config.FIGHTER_RATE_LIMIT


# -------------------------------------------------------------------------
# Fights
# -------------------------------------------------------------------------

def test_run_fight_persists_and_updates_records(db):
    a = _register(db, "Red")
    b = _register(db, "Blue")
    fight = db.run_fight(a["id"], b["id"], requester="tester", seed=42)

    assert "error" not in fight
    assert fight["fighter1"] == "Red" and fight["fighter2"] == "Blue"
    assert fight["method"] in ("KO", "TKO", "SUB", "DEC")
    assert 1 <= fight["round"] <= 3
    assert fight["fight_log"][0] == "[Round 1]"
    assert db.get_fight(fight["id"]) == fight

    red, blue = db.get_fighter(a["id"]), db.get_fighter(b["id"])
    assert red["total_fights"] == blue["total_fights"] == 1
    if fight["winner"] == "DRAW":
        assert fight["winner_id"] is None
        assert red["win_count"] == blue["win_count"] == 0
        assert red["record"] == "0-0-1"
    else:
        winner, loser = (red, blue) if fight["winner_id"] == a["id"] else (blue, red)
        assert fight["winner"] == winner["name"]
        assert (winner["win_count"], winner["loss_count"]) == (1, 0)
        assert (loser["win_count"], loser["loss_count"]) == (0, 1)


def test_run_fight_is_reproducible_with_seed(db):
    a = _register(db, "Red")
    b = _register(db, "Blue")
    first = db.run_fight(a["id"], b["id"], seed=9)
    second = db.run_fight(a["id"], b["id"], seed=9)
    assert first["fight_log"] == second["fight_log"]
    assert first["id"] != second["id"]


def test_run_fight_missing_ids(db):
    assert db.run_fight(None, "x")["status"] == 400


def test_run_fight_unknown_fighters(db):
    a = _register(db, "Red")
    assert db.run_fight("nope", a["id"]) == {"error": "Fighter 1 not found", "status": 404}
    assert db.run_fight(a["id"], "nope") == {"error": "Fighter 2 not found", "status": 404}


def test_run_fight_against_self_is_rejected(db):
    a = _register(db, "Solo")
    result = db.run_fight(a["id"], a["id"])
    assert result["status"] == 400
    assert db.list_fights() == []


def test_run_fight_rate_limited(db):
    services.configure_limiters(fight_limiter=RateLimiter(1, 3600))
    a = _register(db, "Red")
    b = _register(db, "Blue")
    assert "error" not in db.run_fight(a["id"], b["id"], requester="ip", seed=1)
    assert db.run_fight(a["id"], b["id"], requester="ip", seed=1)["status"] == 429


def test_list_fights_newest_first_and_capped(db):
    a = _register(db, "Red")
    b = _register(db, "Blue")
    ids = [db.run_fight(a["id"], b["id"], seed=s)["id"] for s in range(3)]
    listed = [f["id"] for f in db.list_fights()]
    assert listed == list(reversed(ids))
    assert len(db.list_fights(limit=2)) == 2
    assert len(db.list_fights(limit=0)) == 1


def test_web_format_fighter_can_fight(db):
    web = _register(db, "Web", {"striking": 60, "speed": 70, "power": 80,
                                "grappling": 50, "stamina": 65, "chin": 55})
    cli = _register(db, "Cli")
    fight = db.run_fight(web["id"], cli["id"], seed=5)
    assert fight["winner"] in ("Web", "Cli", "DRAW")


# -------------------------------------------------------------------------
# Practice matches
# -------------------------------------------------------------------------

def test_simulate_practice(db):
    result = db.simulate_practice(
        {"name": "Red", "stats": {"striking": 80}},
        {"name": "Blue", "punchPower": 90},
        seed=4,
    )
    assert result["fighter1"] == "Red"
    assert result["winner"] in ("Red", "Blue", "DRAW")
    assert result["events"]
    assert db.list_fights() == []


def test_simulate_practice_requires_profiles(db):
    assert db.simulate_practice(None, {"name": "Blue"})["status"] == 400


def test_simulate_practice_requires_names(db):
    result = db.simulate_practice({"striking": 80}, {"name": "Blue"})
    assert result["status"] == 400

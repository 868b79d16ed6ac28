"""
Shared pytest fixtures for the FightBook test suite.

Provides:
- ScriptedRng, a stand-in generator that replays fixed draws so individual
  exchange branches can be driven exactly
- Sample skill profiles
- An in-memory database and a Flask test client
"""

from __future__ import annotations

import pytest

from api import services
from api.app import create_app
from api.rate_limit import RateLimiter
from simulation.fight_engine import CompetitorState, MatchLog, SkillProfile


class ScriptedRng:
    """Replays ``random()`` draws in order.

    ``uniform`` is derived from the next ``random()`` draw the same way
    ``random.Random.uniform`` is. ``randint`` replays exchange budgets and
    ``choice`` always picks ``choice_index``.
    """

    def __init__(self, randoms, budgets=(), choice_index=0):
        self.randoms = list(randoms)
        self.budgets = list(budgets)
        self.choice_index = choice_index

    def random(self):
        return self.randoms.pop(0)

    def uniform(self, a, b):
        return a + (b - a) * self.random()

    def randint(self, a, b):
        return self.budgets.pop(0)

    def choice(self, seq):
        return seq[self.choice_index]


RED_STATS = dict(
    striking=70, punch_speed=70, punch_power=70, wrestling=50, submissions=50,
    cardio=70, chin=70, head_movement=50, takedown_defense=50,
)


@pytest.fixture
def red_profile():
    return SkillProfile(id="red", name="Red", **RED_STATS)


@pytest.fixture
def blue_profile():
    return SkillProfile(id="blue", name="Blue", **RED_STATS)


@pytest.fixture
def red(red_profile):
    return CompetitorState(red_profile)


@pytest.fixture
def blue(blue_profile):
    return CompetitorState(blue_profile)


@pytest.fixture
def record():
    return MatchLog()


# =============================================================================
# Database / app fixtures
# =============================================================================

FULL_STATS = {
    "striking": 70, "punchSpeed": 65, "strength": 70, "wrestling": 50,
    "submissions": 50, "cardio": 60, "chin": 60, "headMovement": 50,
    "takedownDefense": 50,
}


@pytest.fixture
def db():
    services.init_db(
        "sqlite://",
        fighter_limiter=RateLimiter(1000, 60),
        fight_limiter=RateLimiter(1000, 3600),
    )
    return services


@pytest.fixture
def app():
    app = create_app(
        "sqlite://",
        fighter_limiter=RateLimiter(3, 60),
        fight_limiter=RateLimiter(1000, 3600),
        admin_secret="s3cret",
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()

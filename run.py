#!/usr/bin/env python3
"""Start the FightBook API server."""

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

import config
from api.app import create_app

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app(config.DB_URL)

if __name__ == "__main__":
    print(f"Database: {config.DB_URL}")
    print("\nStarting server at http://127.0.0.1:5000")
    app.run(host="127.0.0.1", port=5000, debug=False)

#!/usr/bin/env python3
"""
Vertical slice: Create match → Predict → Finish → Rank.
Run from project root: python3 scripts/vertical_slice.py
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bolao.persistence import (
    init_db,
    get_connection,
    CompetitionRepository,
    MatchRepository,
    PlayerRepository,
    UserRepository,
)
from bolao.persistence.db import set_db_path
from bolao.services import MatchService, PredictionService, RankingService


def main() -> None:
    # Use data/vertical_slice.db for demo (distinct from bolao.db)
    db_path = PROJECT_ROOT / "data" / "vertical_slice.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    conn = get_connection()
    try:
        users = UserRepository()
        alice = users.create(conn, name="Alice", id="alice")
        bruno = users.create(conn, name="Bruno", id="bruno")
        print(f"Created users: {alice.name}, {bruno.name}")

        comp = CompetitionRepository().ensure_by_name(conn, "Copa do Brasil")
        striker = PlayerRepository().create(conn, "Striker", number=9)
        kickoff = datetime.now(timezone.utc) + timedelta(days=1)
        match = MatchRepository().create(conn, comp.id, "Rival FC", kickoff, phase="final")
        print(f"Created match: club vs {match.opponent} ({comp.name}, {match.phase})")

        predictions = PredictionService()
        predictions.submit(conn, alice.id, match.id, 2, 1, [striker.id])
        predictions.submit(conn, bruno.id, match.id, 1, 0)
        print("Predictions: Alice 2-1 (+Striker), Bruno 1-0")

        matches = MatchService()
        matches.transition_status(conn, match.id, "live")
        matches.record_result(conn, match.id, 2, 1, [striker.id])
        matches.transition_status(conn, match.id, "finished")
        print("Final: 2-1, Striker scored")

        ranking = RankingService().ranking(conn)
        print(json.dumps(ranking, indent=2))
    finally:
        conn.close()


if __name__ == "__main__":
    main()

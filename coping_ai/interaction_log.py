from __future__ import annotations
import sqlite3, json
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List

from . import privacy

MAX_EVENTS = 500

SCHEMA = """
CREATE TABLE IF NOT EXISTS interactions(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  event_type TEXT NOT NULL,
  provider TEXT,
  outcome TEXT NOT NULL,
  duration_ms INTEGER,
  metadata TEXT,
  created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_interactions_created ON interactions(created_at);
"""

def _now_iso() -> str:
  return datetime.now(timezone.utc).isoformat()

def get_conn(db_path: str):
  return sqlite3.connect(db_path)

def init_db(db_path: str):
  conn = get_conn(db_path)
  with conn:
    conn.executescript(SCHEMA)
  conn.close()

def record_interaction(event_type: str, outcome: str, db_path: str, provider: Optional[str] = None, duration_ms: Optional[int] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
  """Store one anonymous event and keep only the newest MAX_EVENTS rows."""
  if not privacy.should_log():
    return
  conn = get_conn(db_path)
  with conn:
    conn.execute(
      "INSERT INTO interactions(event_type, provider, outcome, duration_ms, metadata, created_at) VALUES (?, ?, ?, ?, ?, ?)",
      (
        event_type,
        provider,
        outcome,
        duration_ms,
        json.dumps(privacy.sanitize_metadata(metadata or {})),
        _now_iso(),
      )
    )
    conn.execute(
      "DELETE FROM interactions WHERE id NOT IN (SELECT id FROM interactions ORDER BY id DESC LIMIT ?)",
      (MAX_EVENTS,),
    )
  conn.close()

def fetch_recent(db_path: str, limit: int = 50) -> List[Dict[str, Any]]:
  conn = get_conn(db_path)
  cur = conn.cursor()
  cur.execute(
    "SELECT event_type, provider, outcome, duration_ms, metadata, created_at FROM interactions ORDER BY id DESC LIMIT ?",
    (limit,),
  )
  rows = cur.fetchall()
  conn.close()
  return [
    {
      "event_type": r[0],
      "provider": r[1],
      "outcome": r[2],
      "duration_ms": r[3],
      "metadata": json.loads(r[4] or "{}"),
      "created_at": r[5],
    }
    for r in rows
  ]

def outcome_counts(db_path: str) -> Dict[str, int]:
  conn = get_conn(db_path)
  cur = conn.cursor()
  cur.execute("SELECT outcome, COUNT(*) FROM interactions GROUP BY outcome")
  counts = {outcome: n for outcome, n in cur.fetchall()}
  conn.close()
  return counts

# EVENT STORE
# In-memory event list for the running app, persisted to sqlite.

import logging
import sqlite3
import threading
from datetime import datetime

logger = logging.getLogger(__name__)


def parse_timestamp(raw):
    """Parse a stored ISO-8601 string into a naive local datetime."""
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


class EventStore:
    def __init__(self, path):
        self.path = path
        self.events = []
        self.skipped = 0
        self.dirty = False
        # one writer at a time; the dev server handles requests on threads
        self._lock = threading.RLock()

    # ---------------- DATABASE SETUP ----------------
    def init_db(self):
        with sqlite3.connect(self.path) as con:
            con.execute("""
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ts TEXT NOT NULL
            )""")
            con.commit()

    # ---------------- LOAD ----------------
    def read_rows(self):
        with sqlite3.connect(self.path) as con:
            rows = con.execute("SELECT ts FROM events ORDER BY id").fetchall()
        return [r[0] for r in rows]

    def load(self):
        events = []
        skipped = 0
        for raw in self.read_rows():
            try:
                events.append(parse_timestamp(raw))
            except (TypeError, ValueError):
                skipped += 1
                logger.warning("Skipping malformed timestamp %r in %s", raw, self.path)

        self.events = events
        self.skipped = skipped
        logger.info("Loaded %d events from %s (%d skipped)", len(events), self.path, skipped)
        return list(events)

    # ---------------- SAVE ----------------
    def save(self, events=None):
        """Replace the stored list with `events` (default: the in-memory list).

        Returns False instead of raising when sqlite fails; the in-memory list
        stays authoritative and the next save writes it out again.
        """
        with self._lock:
            return self._save(self.events if events is None else events)

    def _save(self, events):
        rows = [(e.isoformat(),) for e in events]

        try:
            with sqlite3.connect(self.path) as con:
                con.execute("DELETE FROM events")
                con.executemany("INSERT INTO events (ts) VALUES (?)", rows)
                con.commit()
        except sqlite3.Error:
            logger.exception("Saving %d events to %s failed", len(rows), self.path)
            self.dirty = True
            return False

        self.dirty = False
        logger.debug("Saved %d events to %s", len(rows), self.path)
        return True

    # ---------------- LOG EVENT ----------------
    def log_event(self, when=None):
        if when is None:
            when = datetime.now()
        with self._lock:
            self.events.append(when)
            return self._save(self.events)

    def snapshot(self):
        with self._lock:
            return tuple(self.events)

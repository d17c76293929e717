import os, sqlite3, threading
from contextlib import contextmanager

# --- Persistent locations (works on Render or locally) ---
DATA_ROOT = os.getenv("DATA_ROOT", "/var/data/creatures")
DB_PATH   = os.getenv("SQLITE_DB_PATH", os.path.join(DATA_ROOT, "creatures.sqlite"))
BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "3000"))  # 3s default

# sqlite INTEGER is a signed 64-bit value
SQL_INT_MIN = -(2 ** 63)
SQL_INT_MAX = 2 ** 63 - 1

def is_sql_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and SQL_INT_MIN <= v <= SQL_INT_MAX

def _ensure_dirs(path: str):
    if path == ":memory:":
        return
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

def conn(path: str | None = None):
    path = path or DB_PATH
    _ensure_dirs(path)
    # isolation_level=None: transactions are opened explicitly by Store.atomic()
    cx = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
    cx.row_factory = sqlite3.Row
    cx.execute("PRAGMA foreign_keys=ON;")
    cx.execute("PRAGMA journal_mode=WAL;")
    cx.execute("PRAGMA synchronous=NORMAL;")
    cx.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS};")
    return cx

def init_db(cx: sqlite3.Connection):
    cx.executescript("""
    -- id allocators (creature, listing); values are never reused
    CREATE TABLE IF NOT EXISTS counters(
      name  TEXT PRIMARY KEY,
      value INTEGER NOT NULL DEFAULT 0
    );
    INSERT OR IGNORE INTO counters(name, value) VALUES('creature', 0);
    INSERT OR IGNORE INTO counters(name, value) VALUES('listing', 0);

    CREATE TABLE IF NOT EXISTS creatures(
      id INTEGER PRIMARY KEY,
      dna BLOB NOT NULL,
      generation INTEGER NOT NULL,
      birth_ordinal INTEGER NOT NULL,
      parent1_id INTEGER,
      parent2_id INTEGER,
      evolution_stage INTEGER NOT NULL DEFAULT 1,
      interaction_points INTEGER NOT NULL DEFAULT 0,
      last_breed_ordinal INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS creature_owners(
      creature_id INTEGER PRIMARY KEY,
      owner TEXT NOT NULL,
      FOREIGN KEY(creature_id) REFERENCES creatures(id)
    );
    CREATE INDEX IF NOT EXISTS idx_creature_owner ON creature_owners(owner);

    CREATE TABLE IF NOT EXISTS approvals(
      owner    TEXT NOT NULL,
      operator TEXT NOT NULL,
      approved INTEGER NOT NULL DEFAULT 0,
      PRIMARY KEY(owner, operator)
    );

    ----------------------------------------------------------------------
    -- Marketplace
    ----------------------------------------------------------------------

    CREATE TABLE IF NOT EXISTS listings(
      id INTEGER PRIMARY KEY,
      creature_id INTEGER NOT NULL,
      seller TEXT NOT NULL,
      price INTEGER NOT NULL,
      created_ordinal INTEGER NOT NULL,
      expiry_ordinal INTEGER NOT NULL,
      status TEXT NOT NULL DEFAULT 'active'   -- active | sold | cancelled
    );
    CREATE INDEX IF NOT EXISTS idx_listing_creature ON listings(creature_id);
    CREATE INDEX IF NOT EXISTS idx_listing_status   ON listings(status);

    CREATE TABLE IF NOT EXISTS sale_history(
      creature_id INTEGER PRIMARY KEY,
      last_price INTEGER NOT NULL,
      total_sales INTEGER NOT NULL,
      highest_price INTEGER NOT NULL
    );

    -- single row (id=1)
    CREATE TABLE IF NOT EXISTS market_account(
      id INTEGER PRIMARY KEY CHECK (id = 1),
      fee_bp INTEGER NOT NULL,
      total_listings INTEGER NOT NULL DEFAULT 0,
      total_volume INTEGER NOT NULL DEFAULT 0
    );

    ----------------------------------------------------------------------
    -- Fungible ledger
    ----------------------------------------------------------------------

    CREATE TABLE IF NOT EXISTS balances(
      principal TEXT PRIMARY KEY,
      amount INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS ledger_entries(
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      sender TEXT,        -- NULL for faucet/deposit credits
      recipient TEXT NOT NULL,
      amount INTEGER NOT NULL,
      memo TEXT,
      created_at INTEGER NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_ledger_sender    ON ledger_entries(sender);
    CREATE INDEX IF NOT EXISTS idx_ledger_recipient ON ledger_entries(recipient);
    """)

def next_id(cx: sqlite3.Connection, name: str) -> int:
    cx.execute("UPDATE counters SET value = value + 1 WHERE name=?", (name,))
    return last_id(cx, name)

def last_id(cx: sqlite3.Connection, name: str) -> int:
    row = cx.execute("SELECT value FROM counters WHERE name=?", (name,)).fetchone()
    return int(row["value"] if row else 0)

class Store:
    """
    One shared connection plus a re-entrant lock. Every public operation runs
    inside atomic(); nested atomic() calls join the outermost unit, and any
    exception escaping the outermost block rolls the whole unit back.
    """

    def __init__(self, path: str | None = None):
        self.path = path or DB_PATH
        self._cx = conn(self.path)
        self._lock = threading.RLock()
        self._depth = 0
        with self._lock:
            init_db(self._cx)

    @contextmanager
    def atomic(self):
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self._cx
                finally:
                    self._depth -= 1
                return

            self._cx.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self._cx
            except BaseException:
                self._cx.execute("ROLLBACK")
                raise
            else:
                try:
                    self._cx.execute("COMMIT")
                except sqlite3.Error:
                    # a failed COMMIT leaves the transaction open
                    self._cx.execute("ROLLBACK")
                    raise
            finally:
                self._depth = 0

    def close(self):
        with self._lock:
            self._cx.close()

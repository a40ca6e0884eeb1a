"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence

from backend.domain.models import SLOT_DURATION, AvailabilityEntry, SalesManager, Slot, as_utc
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_DAY_MS = timedelta(days=1) // _ONE_MS
_SLOT_MS = SLOT_DURATION // _ONE_MS

# (name, languages, products, customer_ratings)
_DEMO_SALES_MANAGERS = [
    ("Seller 1", ("German",), ("SolarPanels",), ("Bronze",)),
    ("Seller 2", ("German", "English"), ("SolarPanels", "Heatpumps"), ("Gold", "Silver", "Bronze")),
    ("Seller 3", ("German", "English"), ("Heatpumps",), ("Gold", "Silver", "Bronze")),
]

# (manager index, start instant, booked)
_DEMO_SLOTS = [
    (0, "2024-05-03T10:30:00", False),
    (0, "2024-05-03T11:00:00", True),
    (0, "2024-05-03T11:30:00", False),
    (1, "2024-05-03T10:30:00", False),
    (1, "2024-05-03T11:00:00", False),
    (1, "2024-05-03T11:30:00", False),
    (2, "2024-05-03T10:30:00", True),
    (2, "2024-05-03T11:30:00", False),
    (0, "2024-05-04T10:30:00", False),
    (0, "2024-05-04T11:00:00", False),
    (0, "2024-05-04T11:30:00", True),
    (1, "2024-05-04T10:30:00", True),
    (1, "2024-05-04T11:00:00", False),
    (1, "2024-05-04T11:30:00", True),
    (2, "2024-05-04T10:30:00", True),
    (2, "2024-05-04T11:30:00", False),
]


def to_epoch_ms(value: datetime) -> int:
    return (as_utc(value) - _EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


def day_bounds_ms(date: str) -> tuple[int, int]:
    """Return the `[start, end)` epoch-millisecond range of a UTC calendar day."""
    day_start = datetime.strptime(date, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    start_ms = to_epoch_ms(day_start)
    return start_ms, start_ms + _DAY_MS


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" for _ in values)


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SalesManagers (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SalesManagerLanguages (
                        sales_manager_id INTEGER NOT NULL,
                        language TEXT NOT NULL,
                        PRIMARY KEY (sales_manager_id, language),
                        FOREIGN KEY (sales_manager_id) REFERENCES SalesManagers(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SalesManagerProducts (
                        sales_manager_id INTEGER NOT NULL,
                        product TEXT NOT NULL,
                        PRIMARY KEY (sales_manager_id, product),
                        FOREIGN KEY (sales_manager_id) REFERENCES SalesManagers(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SalesManagerRatings (
                        sales_manager_id INTEGER NOT NULL,
                        rating TEXT NOT NULL,
                        PRIMARY KEY (sales_manager_id, rating),
                        FOREIGN KEY (sales_manager_id) REFERENCES SalesManagers(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Slots (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        sales_manager_id INTEGER NOT NULL,
                        start_ms INTEGER NOT NULL,
                        end_ms INTEGER NOT NULL,
                        booked INTEGER NOT NULL CHECK (booked IN (0,1)),
                        FOREIGN KEY (sales_manager_id) REFERENCES SalesManagers(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_slots_booking
                    ON Slots(sales_manager_id, start_ms, booked);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_slots_start
                    ON Slots(start_ms);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> int:
        """Load the demo sellers and their slots only when tables are empty.

        Returns the number of slots inserted.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) AS count FROM SalesManagers;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return 0

                manager_ids = [
                    self._insert_sales_manager(cursor, name, languages, products, ratings)
                    for name, languages, products, ratings in _DEMO_SALES_MANAGERS
                ]

                slot_rows = []
                for manager_index, start_text, booked in _DEMO_SLOTS:
                    start_ms = to_epoch_ms(
                        datetime.fromisoformat(start_text).replace(tzinfo=timezone.utc)
                    )
                    slot_rows.append(
                        (manager_ids[manager_index], start_ms, start_ms + _SLOT_MS, int(booked))
                    )
                cursor.executemany(
                    """
                    INSERT INTO Slots (sales_manager_id, start_ms, end_ms, booked)
                    VALUES (?, ?, ?, ?);
                    """,
                    slot_rows,
                )
                conn.commit()
            logger.info("Demo seed completed with %s slots", len(slot_rows))
            return len(slot_rows)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    @staticmethod
    def _insert_sales_manager(
        cursor: sqlite3.Cursor,
        name: str,
        languages: Iterable[str],
        products: Iterable[str],
        customer_ratings: Iterable[str],
    ) -> int:
        cursor.execute("INSERT INTO SalesManagers (name) VALUES (?);", (name,))
        manager_id = int(cursor.lastrowid)
        cursor.executemany(
            "INSERT OR IGNORE INTO SalesManagerLanguages (sales_manager_id, language) VALUES (?, ?);",
            [(manager_id, language) for language in languages],
        )
        cursor.executemany(
            "INSERT OR IGNORE INTO SalesManagerProducts (sales_manager_id, product) VALUES (?, ?);",
            [(manager_id, product) for product in products],
        )
        cursor.executemany(
            "INSERT OR IGNORE INTO SalesManagerRatings (sales_manager_id, rating) VALUES (?, ?);",
            [(manager_id, rating) for rating in customer_ratings],
        )
        return manager_id

    def create_sales_manager(
        self,
        name: str,
        languages: Iterable[str],
        products: Iterable[str],
        customer_ratings: Iterable[str],
    ) -> int:
        """Insert a sales manager with its attribute sets and return the id."""
        with self._connect() as conn:
            cursor = conn.cursor()
            manager_id = self._insert_sales_manager(
                cursor, name, languages, products, customer_ratings
            )
            conn.commit()
            return manager_id

    def create_slot(
        self,
        sales_manager_id: int,
        start_date: datetime,
        booked: bool,
        end_date: Optional[datetime] = None,
    ) -> int:
        """Insert a slot; the end defaults to one hour after the start."""
        start_ms = to_epoch_ms(start_date)
        end_ms = to_epoch_ms(end_date) if end_date is not None else start_ms + _SLOT_MS
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Slots (sales_manager_id, start_ms, end_ms, booked)
                VALUES (?, ?, ?, ?);
                """,
                (sales_manager_id, start_ms, end_ms, int(booked)),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def _load_sales_managers(
        self,
        conn: sqlite3.Connection,
        rows: Sequence[sqlite3.Row],
    ) -> list[SalesManager]:
        if not rows:
            return []
        manager_ids = [int(row["id"]) for row in rows]
        placeholders = _placeholders(manager_ids)

        attributes: dict[str, dict[int, set[str]]] = {}
        for table, column in (
            ("SalesManagerLanguages", "language"),
            ("SalesManagerProducts", "product"),
            ("SalesManagerRatings", "rating"),
        ):
            values_by_manager: dict[int, set[str]] = {manager_id: set() for manager_id in manager_ids}
            cursor = conn.execute(
                f"""
                SELECT sales_manager_id, {column} AS value
                FROM {table}
                WHERE sales_manager_id IN ({placeholders});
                """,
                tuple(manager_ids),
            )
            for attribute_row in cursor.fetchall():
                values_by_manager[int(attribute_row["sales_manager_id"])].add(
                    str(attribute_row["value"])
                )
            attributes[column] = values_by_manager

        return [
            SalesManager(
                id=int(row["id"]),
                name=str(row["name"]),
                languages=frozenset(attributes["language"][int(row["id"])]),
                products=frozenset(attributes["product"][int(row["id"])]),
                customer_ratings=frozenset(attributes["rating"][int(row["id"])]),
            )
            for row in rows
        ]

    def find_by_criteria(
        self,
        language: str,
        products: Sequence[str],
        rating: str,
    ) -> list[SalesManager]:
        """Return managers speaking `language`, serving `rating` and offering any of `products`.

        Product matching is an overlap, not containment; callers needing every
        product must filter the result again.
        """
        if not products:
            return []
        product_list = list(products)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT sm.id, sm.name
                FROM SalesManagers AS sm
                WHERE EXISTS (
                        SELECT 1 FROM SalesManagerLanguages AS l
                        WHERE l.sales_manager_id = sm.id AND l.language = ?
                    )
                  AND EXISTS (
                        SELECT 1 FROM SalesManagerRatings AS r
                        WHERE r.sales_manager_id = sm.id AND r.rating = ?
                    )
                  AND EXISTS (
                        SELECT 1 FROM SalesManagerProducts AS p
                        WHERE p.sales_manager_id = sm.id
                          AND p.product IN ({_placeholders(product_list)})
                    )
                ORDER BY sm.id ASC;
                """,
                (language, rating, *product_list),
            )
            return self._load_sales_managers(conn, cursor.fetchall())

    def _find_slots(
        self,
        date: str,
        manager_ids: Sequence[int],
        only_unbooked: bool,
    ) -> list[Slot]:
        if not manager_ids:
            return []
        day_start_ms, day_end_ms = day_bounds_ms(date)
        ids = list(manager_ids)
        booked_clause = "AND booked = 0" if only_unbooked else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT id, sales_manager_id, start_ms, end_ms, booked
                FROM Slots
                WHERE start_ms >= ?
                  AND start_ms < ?
                  AND sales_manager_id IN ({_placeholders(ids)})
                  {booked_clause}
                ORDER BY start_ms ASC, id ASC;
                """,
                (day_start_ms, day_end_ms, *ids),
            )
            return [
                Slot(
                    id=int(row["id"]),
                    sales_manager_id=int(row["sales_manager_id"]),
                    start_date=from_epoch_ms(int(row["start_ms"])),
                    end_date=from_epoch_ms(int(row["end_ms"])),
                    booked=bool(row["booked"]),
                )
                for row in cursor.fetchall()
            ]

    def find_all_slots(self, date: str, manager_ids: Sequence[int]) -> list[Slot]:
        """Return booked and free slots starting on the UTC day `date`."""
        return self._find_slots(date, manager_ids, only_unbooked=False)

    def find_available_slots(self, date: str, manager_ids: Sequence[int]) -> list[Slot]:
        """Return only the unbooked slots starting on the UTC day `date`."""
        return self._find_slots(date, manager_ids, only_unbooked=True)

    def find_availability_from_db(
        self,
        date: str,
        language: str,
        products: Sequence[str],
        rating: str,
    ) -> list[AvailabilityEntry]:
        """Compute per-instant availability counts entirely inside SQLite.

        Mirrors the in-memory aggregation: products must all be offered,
        candidate instants come from every slot of the eligible pool on that
        day, and a manager counts only with an exact free slot and no
        intersecting booked one.
        """
        if not products:
            return []
        required_products = sorted(set(products))
        day_start_ms, day_end_ms = day_bounds_ms(date)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                WITH eligible_managers AS (
                    SELECT sm.id
                    FROM SalesManagers AS sm
                    WHERE EXISTS (
                            SELECT 1 FROM SalesManagerLanguages AS l
                            WHERE l.sales_manager_id = sm.id AND l.language = ?
                        )
                      AND EXISTS (
                            SELECT 1 FROM SalesManagerRatings AS r
                            WHERE r.sales_manager_id = sm.id AND r.rating = ?
                        )
                      AND (
                            SELECT COUNT(DISTINCT p.product)
                            FROM SalesManagerProducts AS p
                            WHERE p.sales_manager_id = sm.id
                              AND p.product IN ({_placeholders(required_products)})
                        ) = ?
                ),
                day_slots AS (
                    SELECT s.sales_manager_id, s.start_ms, s.end_ms, s.booked
                    FROM Slots AS s
                    INNER JOIN eligible_managers AS em ON em.id = s.sales_manager_id
                    WHERE s.start_ms >= ? AND s.start_ms < ?
                ),
                candidate_instants AS (
                    SELECT DISTINCT start_ms FROM day_slots
                ),
                available_managers AS (
                    SELECT ci.start_ms, em.id AS manager_id
                    FROM candidate_instants AS ci
                    CROSS JOIN eligible_managers AS em
                    WHERE EXISTS (
                            SELECT 1 FROM day_slots AS ds
                            WHERE ds.sales_manager_id = em.id
                              AND ds.booked = 0
                              AND ds.start_ms = ci.start_ms
                              AND ds.end_ms = ci.start_ms + ?
                        )
                      AND NOT EXISTS (
                            SELECT 1 FROM day_slots AS ds
                            WHERE ds.sales_manager_id = em.id
                              AND ds.booked = 1
                              AND ds.start_ms < ci.start_ms + ?
                              AND ci.start_ms < ds.end_ms
                        )
                )
                SELECT
                    strftime(
                        '%Y-%m-%dT%H:%M:%S',
                        (start_ms - ((start_ms % 1000) + 1000) % 1000) / 1000,
                        'unixepoch'
                    ) || printf('.%03dZ', ((start_ms % 1000) + 1000) % 1000) AS start_date,
                    COUNT(DISTINCT manager_id) AS available_count
                FROM available_managers
                GROUP BY start_ms
                ORDER BY start_ms ASC;
                """,
                (
                    language,
                    rating,
                    *required_products,
                    len(required_products),
                    day_start_ms,
                    day_end_ms,
                    _SLOT_MS,
                    _SLOT_MS,
                ),
            )
            return [
                AvailabilityEntry(
                    start_date=str(row["start_date"]),
                    available_count=int(row["available_count"]),
                )
                for row in cursor.fetchall()
            ]

    def count_sales_managers(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM SalesManagers;")
            return int(cursor.fetchone()["count"])

    def count_slots(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Slots;")
            return int(cursor.fetchone()["count"])

"""SQLite-backed anime catalog.

This is the storage collaborator the recognition engine reads its snapshot
from. Every write here changes what recognition should see, so owners must
invalidate their RecognitionEngine afterwards (RecognitionWorker does this
automatically).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Iterable, Optional, Union

from animatch.core.models import Anime, AnimeIds, AnimeTitle
from animatch.errors import StorageReadFailure, StorageWriteFailure, ValidationError

_SCHEMA_VERSION = 1
_SERVICES = ("anilist", "kitsu", "mal")
# Key preference when batch importing records with several external ids.
_IMPORT_KEY_ORDER = ("anilist", "mal", "kitsu")

_ANIME_COLUMNS = (
    "anilist_id",
    "kitsu_id",
    "mal_id",
    "title_romaji",
    "title_english",
    "title_native",
    "synonyms",
    "episodes",
    "cover_url",
    "season",
    "year",
    "synopsis",
    "genres",
    "media_type",
    "airing_status",
    "mean_score",
    "studios",
    "source",
    "rating",
    "start_date",
    "end_date",
)
_SELECT_ANIME = "SELECT id, " + ", ".join(_ANIME_COLUMNS) + " FROM anime"


class CatalogStore:
    """SQLite-backed store for catalogued anime."""

    def __init__(self, path: Union[Path, str], now_fn=None) -> None:
        """Open (and create if needed) a catalog database.

        Args:
            path: Database file path, or ":memory:" for a private in-memory DB
            now_fn: Optional clock for created_at/updated_at (tests)
        """
        self.path = path
        if str(path) != ":memory:":
            self.path = Path(path)
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))
        self._logger = logging.getLogger(__name__)
        try:
            self._init_schema()
        except Exception:
            self._conn.close()
            raise

    @classmethod
    def open_memory(cls, now_fn=None) -> "CatalogStore":
        return cls(":memory:", now_fn=now_fn)

    def __enter__(self) -> "CatalogStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _now_iso(self) -> str:
        value = self._now_fn()
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_metadata (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS anime (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                anilist_id     INTEGER,
                kitsu_id       INTEGER,
                mal_id         INTEGER,
                title_romaji   TEXT,
                title_english  TEXT,
                title_native   TEXT,
                synonyms       TEXT,
                episodes       INTEGER,
                cover_url      TEXT,
                season         TEXT,
                year           INTEGER,
                synopsis       TEXT,
                genres         TEXT,
                media_type     TEXT,
                airing_status  TEXT,
                mean_score     REAL,
                studios        TEXT,
                source         TEXT,
                rating         TEXT,
                start_date     TEXT,
                end_date       TEXT,
                created_at     TEXT NOT NULL,
                updated_at     TEXT NOT NULL
            )
            """
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_anime_anilist ON anime(anilist_id)")
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_anime_kitsu ON anime(kitsu_id)")
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_anime_mal ON anime(mal_id)")
        self._ensure_schema_version()
        self._conn.commit()

    def _ensure_schema_version(self) -> None:
        version = self._get_metadata("schema_version")
        if version is None:
            self._set_metadata("schema_version", str(_SCHEMA_VERSION))
            return
        if int(version) > _SCHEMA_VERSION:
            raise ValueError(
                f"Catalog schema {version} > supported {_SCHEMA_VERSION}. "
                "Please upgrade animatch."
            )

    def _get_metadata(self, key: str) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value FROM schema_metadata WHERE key = ?",
            (key,),
        ).fetchone()
        return row[0] if row else None

    def _set_metadata(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO schema_metadata (key, value) VALUES (?, ?)",
            (key, value),
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # Reads
    def all_anime(self) -> list[Anime]:
        """Return every catalogued anime ordered by id (catalog order)."""
        rows = self._fetch_all(f"{_SELECT_ANIME} ORDER BY id ASC", ())
        return [_row_to_anime(row) for row in rows]

    def get_anime(self, anime_id: int) -> Optional[Anime]:
        rows = self._fetch_all(f"{_SELECT_ANIME} WHERE id = ?", (anime_id,))
        return _row_to_anime(rows[0]) if rows else None

    def search_anime(self, text: str) -> list[Anime]:
        """Case-insensitive substring search over the title columns."""
        pattern = f"%{text}%"
        rows = self._fetch_all(
            f"""
            {_SELECT_ANIME}
            WHERE title_romaji LIKE ? OR title_english LIKE ? OR title_native LIKE ?
            ORDER BY id ASC
            """,
            (pattern, pattern, pattern),
        )
        return [_row_to_anime(row) for row in rows]

    def get_anime_by_service_id(self, service: str, service_id: int) -> Optional[Anime]:
        column = _service_column(service)
        rows = self._fetch_all(
            f"{_SELECT_ANIME} WHERE {column} = ? ORDER BY id ASC LIMIT 1",
            (service_id,),
        )
        return _row_to_anime(rows[0]) if rows else None

    def get_anime_by_anilist_id(self, anilist_id: int) -> Optional[Anime]:
        return self.get_anime_by_service_id("anilist", anilist_id)

    def get_anime_by_kitsu_id(self, kitsu_id: int) -> Optional[Anime]:
        return self.get_anime_by_service_id("kitsu", kitsu_id)

    def get_anime_by_mal_id(self, mal_id: int) -> Optional[Anime]:
        return self.get_anime_by_service_id("mal", mal_id)

    def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageReadFailure(f"Catalog read failed: {exc}") from exc

    # Writes
    def insert_anime(self, anime: Anime) -> int:
        """Insert a new anime (its ``id`` is ignored) and return the new id."""
        try:
            with self._lock:
                anime_id = self._insert_row(anime)
                self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageWriteFailure(f"Catalog insert failed: {exc}") from exc
        return anime_id

    def upsert_anime(self, anime: Anime, service: str) -> int:
        """Update the row carrying ``anime``'s id for ``service``, or insert it.

        Raises:
            ValidationError: if the anime has no id for that service
        """
        _service_column(service)
        if anime.ids.get(service) is None:
            raise ValidationError(f"Anime has no {service} id to upsert by")
        try:
            with self._lock:
                anime_id = self._upsert_row(anime, service)
                self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageWriteFailure(f"Catalog upsert failed: {exc}") from exc
        return anime_id

    def import_anime(self, records: Iterable[Anime]) -> int:
        """Batch import in one transaction.

        Records are upserted by their first present external id (anilist,
        then mal, then kitsu) and inserted when they carry none.

        Returns:
            Number of records written
        """
        count = 0
        with self._lock:
            try:
                for anime in records:
                    service = next(
                        (name for name in _IMPORT_KEY_ORDER if anime.ids.get(name) is not None),
                        None,
                    )
                    if service is None:
                        self._insert_row(anime)
                    else:
                        self._upsert_row(anime, service)
                    count += 1
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StorageWriteFailure(
                    f"Catalog import failed after {count} records: {exc}"
                ) from exc
        self._logger.info("Imported %d anime into catalog", count)
        return count

    def _insert_row(self, anime: Anime) -> int:
        now = self._now_iso()
        values = _anime_to_row(anime)
        columns = _ANIME_COLUMNS + ("created_at", "updated_at")
        placeholders = ", ".join("?" for _ in columns)
        cursor = self._conn.execute(
            f"INSERT INTO anime ({', '.join(columns)}) VALUES ({placeholders})",
            values + (now, now),
        )
        return int(cursor.lastrowid)

    def _upsert_row(self, anime: Anime, service: str) -> int:
        column = _service_column(service)
        row = self._conn.execute(
            f"SELECT id FROM anime WHERE {column} = ? ORDER BY id ASC LIMIT 1",
            (anime.ids.get(service),),
        ).fetchone()
        if row is None:
            return self._insert_row(anime)

        assignments = ", ".join(f"{name} = ?" for name in _ANIME_COLUMNS)
        self._conn.execute(
            f"UPDATE anime SET {assignments}, updated_at = ? WHERE id = ?",
            _anime_to_row(anime) + (self._now_iso(), row[0]),
        )
        return int(row[0])


def load_catalog_file(path: Path) -> list[Anime]:
    """Read a JSON array of anime objects (see ``Anime.from_dict``)."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Catalog file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise ValidationError(f"Catalog file {path} must contain a JSON array")
    return [Anime.from_dict(item) for item in payload]


def _service_column(service: str) -> str:
    if service not in _SERVICES:
        raise ValidationError(f"Unknown service: {service}")
    return f"{service}_id"


def _anime_to_row(anime: Anime) -> tuple[Any, ...]:
    return (
        anime.ids.anilist,
        anime.ids.kitsu,
        anime.ids.mal,
        anime.title.romaji,
        anime.title.english,
        anime.title.native,
        json.dumps(anime.synonyms, ensure_ascii=False),
        anime.episodes,
        anime.cover_url,
        anime.season,
        anime.year,
        anime.synopsis,
        json.dumps(anime.genres, ensure_ascii=False),
        anime.media_type,
        anime.airing_status,
        anime.mean_score,
        json.dumps(anime.studios, ensure_ascii=False),
        anime.source,
        anime.rating,
        anime.start_date,
        anime.end_date,
    )


def _row_to_anime(row: tuple[Any, ...]) -> Anime:
    return Anime(
        id=row[0],
        ids=AnimeIds(anilist=row[1], kitsu=row[2], mal=row[3]),
        title=AnimeTitle(romaji=row[4], english=row[5], native=row[6]),
        synonyms=_json_list(row[7]),
        episodes=row[8],
        cover_url=row[9],
        season=row[10],
        year=row[11],
        synopsis=row[12],
        genres=_json_list(row[13]),
        media_type=row[14],
        airing_status=row[15],
        mean_score=row[16],
        studios=_json_list(row[17]),
        source=row[18],
        rating=row[19],
        start_date=row[20],
        end_date=row[21],
    )


def _json_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [str(item) for item in parsed] if isinstance(parsed, list) else []

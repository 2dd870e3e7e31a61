"""SQLite word store for collections, sections, words and AI info."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from vocabmaster.core.errors import DuplicateError, NotFoundError, StoreError
from vocabmaster.core.models import (
    Collection,
    Level,
    MasteryStatus,
    PracticeMode,
    Section,
    Word,
    WordType,
)


# Word attribute -> (column, to-database converter)
WORD_COLUMNS = {
    "word": ("word", str),
    "section_id": ("section_id", lambda v: v),
    "word_type": ("type", lambda v: v.value),
    "level": ("level", lambda v: v.value),
    "phonetic": ("phonetic", str),
    "meaning_en": ("meaning_en", str),
    "translation": ("translation", str),
    "example": ("example", str),
    "my_example": ("my_example", str),
    "related_forms": ("related_forms", str),
    "synonyms": ("synonyms", str),
    "tags": ("tags", lambda v: json.dumps(list(v))),
    "status": ("status", lambda v: v.value),
    "passed_modes": ("passed_modes", lambda v: json.dumps(sorted(m.value for m in v))),
}


class Database:
    """SQLite database for the vocabulary and cached AI output."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema and seed the first collection."""
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS collections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    icon TEXT NOT NULL DEFAULT '📚'
                );

                CREATE TABLE IF NOT EXISTS sections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection_id INTEGER NOT NULL
                        REFERENCES collections(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    icon TEXT NOT NULL DEFAULT '📖'
                );

                CREATE TABLE IF NOT EXISTS words (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    section_id INTEGER
                        REFERENCES sections(id) ON DELETE CASCADE,
                    word TEXT UNIQUE NOT NULL COLLATE NOCASE,
                    type TEXT NOT NULL DEFAULT 'noun',
                    level TEXT NOT NULL DEFAULT 'B1',
                    phonetic TEXT NOT NULL DEFAULT '',
                    meaning_en TEXT NOT NULL DEFAULT '',
                    translation TEXT NOT NULL DEFAULT '',
                    example TEXT NOT NULL DEFAULT '',
                    my_example TEXT NOT NULL DEFAULT '',
                    related_forms TEXT NOT NULL DEFAULT '',
                    synonyms TEXT NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '[]',
                    status TEXT NOT NULL DEFAULT 'new',
                    passed_modes TEXT NOT NULL DEFAULT '[]',
                    added_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_words_section ON words(section_id);
                CREATE INDEX IF NOT EXISTS idx_words_status ON words(status);

                CREATE TABLE IF NOT EXISTS info_cache (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    lookup_key TEXT UNIQUE NOT NULL,
                    info_type TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
            """)

            count = conn.execute("SELECT COUNT(*) FROM collections").fetchone()[0]
            if count == 0:
                cursor = conn.execute(
                    "INSERT INTO collections (name, icon) VALUES (?, ?)",
                    ("English", "📚"),
                )
                conn.execute(
                    "INSERT INTO sections (collection_id, name, icon) VALUES (?, ?, ?)",
                    (cursor.lastrowid, "Topic 1", "📖"),
                )

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # Collection operations

    def list_collections(self) -> list[Collection]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM collections ORDER BY id").fetchall()
            return [Collection(id=r["id"], name=r["name"], icon=r["icon"]) for r in rows]

    def create_collection(self, collection: Collection) -> Collection:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO collections (name, icon) VALUES (?, ?)",
                (collection.name, collection.icon),
            )
            return Collection(id=cursor.lastrowid, name=collection.name, icon=collection.icon)

    def update_collection(self, collection_id: int, name: Optional[str] = None, icon: Optional[str] = None) -> None:
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE collections SET name = COALESCE(?, name), icon = COALESCE(?, icon) WHERE id = ?",
                (name, icon, collection_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"No collection {collection_id}")

    def delete_collection(self, collection_id: int) -> bool:
        """Delete a collection with its sections and their words."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
            return cursor.rowcount > 0

    # Section operations

    def list_sections(self, collection_id: Optional[int] = None) -> list[Section]:
        """List sections in creation order."""
        with self._connection() as conn:
            if collection_id is None:
                rows = conn.execute("SELECT * FROM sections ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM sections WHERE collection_id = ? ORDER BY id",
                    (collection_id,),
                ).fetchall()
            return [self._row_to_section(r) for r in rows]

    def get_section(self, section_id: int) -> Optional[Section]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM sections WHERE id = ?", (section_id,)).fetchone()
            return self._row_to_section(row) if row else None

    def create_section(self, section: Section) -> Section:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO sections (collection_id, name, icon) VALUES (?, ?, ?)",
                (section.collection_id, section.name, section.icon),
            )
            return Section(
                id=cursor.lastrowid,
                name=section.name,
                collection_id=section.collection_id,
                icon=section.icon,
            )

    def update_section(self, section_id: int, name: Optional[str] = None, icon: Optional[str] = None) -> None:
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE sections SET name = COALESCE(?, name), icon = COALESCE(?, icon) WHERE id = ?",
                (name, icon, section_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"No section {section_id}")

    def delete_section(self, section_id: int) -> bool:
        """Delete a section and its words."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM sections WHERE id = ?", (section_id,))
            return cursor.rowcount > 0

    def _row_to_section(self, row: sqlite3.Row) -> Section:
        return Section(
            id=row["id"],
            name=row["name"],
            collection_id=row["collection_id"],
            icon=row["icon"],
        )

    # Word operations

    def get_word(self, word_id: int) -> Optional[Word]:
        """Get a word by id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM words WHERE id = ?", (word_id,)).fetchone()
            return self._row_to_word(row) if row else None

    def find_word(self, headword: str) -> Optional[Word]:
        """Get a word by headword, ignoring case."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM words WHERE word = ? COLLATE NOCASE",
                (headword.strip(),),
            ).fetchone()
            return self._row_to_word(row) if row else None

    def list_words(self, section_ids: Optional[Iterable[int]] = None) -> list[Word]:
        """List words in insertion order, optionally limited to sections."""
        with self._connection() as conn:
            if section_ids is None:
                rows = conn.execute("SELECT * FROM words ORDER BY id").fetchall()
            else:
                ids = list(section_ids)
                if not ids:
                    return []
                placeholders = ", ".join("?" for _ in ids)
                rows = conn.execute(
                    f"SELECT * FROM words WHERE section_id IN ({placeholders}) ORDER BY id",
                    ids,
                ).fetchall()
            return [self._row_to_word(row) for row in rows]

    def create_word(self, word: Word) -> Word:
        """
        Insert a new word.

        Raises:
            DuplicateError: the headword exists already, in any case
        """
        now = datetime.now().isoformat()
        values = {column: convert(getattr(word, attr)) for attr, (column, convert) in WORD_COLUMNS.items()}
        columns = list(values) + ["added_at", "updated_at"]
        params = list(values.values()) + [word.added_at.isoformat(), now]

        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    f"INSERT INTO words ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    params,
                )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e):
                    raise DuplicateError(word.word) from e
                raise
            row = conn.execute("SELECT * FROM words WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return self._row_to_word(row)

    def update_word(self, word_id: int, **patch) -> Word:
        """
        Update selected fields of a word and return the stored result.

        Raises:
            NotFoundError: no word with this id
            DuplicateError: renaming onto an existing headword
        """
        unknown = set(patch) - set(WORD_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown word fields: {', '.join(sorted(unknown))}")

        assignments = []
        params = []
        for attr, value in patch.items():
            column, convert = WORD_COLUMNS[attr]
            assignments.append(f"{column} = ?")
            params.append(convert(value))
        assignments.append("updated_at = ?")
        params.append(datetime.now().isoformat())

        with self._connection() as conn:
            try:
                cursor = conn.execute(
                    f"UPDATE words SET {', '.join(assignments)} WHERE id = ?",
                    params + [word_id],
                )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e):
                    raise DuplicateError(patch.get("word", "")) from e
                raise
            if cursor.rowcount == 0:
                raise NotFoundError(f"No word {word_id}")
            row = conn.execute("SELECT * FROM words WHERE id = ?", (word_id,)).fetchone()
            return self._row_to_word(row)

    def delete_word(self, word_id: int) -> bool:
        """Delete a word from vocabulary."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM words WHERE id = ?", (word_id,))
            return cursor.rowcount > 0

    def _row_to_word(self, row: sqlite3.Row) -> Word:
        """Convert database row to Word object."""
        return Word(
            id=row["id"],
            section_id=row["section_id"],
            word=row["word"],
            word_type=WordType(row["type"]),
            level=Level(row["level"]),
            phonetic=row["phonetic"],
            meaning_en=row["meaning_en"],
            translation=row["translation"],
            example=row["example"],
            my_example=row["my_example"],
            related_forms=row["related_forms"],
            synonyms=row["synonyms"],
            tags=json.loads(row["tags"] or "[]"),
            status=MasteryStatus(row["status"]),
            passed_modes=frozenset(
                PracticeMode(m) for m in json.loads(row["passed_modes"] or "[]")
            ),
            added_at=datetime.fromisoformat(row["added_at"]),
        )

    # Statistics

    def get_vocabulary_stats(self) -> dict[str, int]:
        """Get counts by mastery status."""
        with self._connection() as conn:
            rows = conn.execute("""
                SELECT status, COUNT(*) as count
                FROM words
                GROUP BY status
            """).fetchall()

            stats = {status.value: 0 for status in MasteryStatus}
            for row in rows:
                stats[row["status"]] = row["count"]
            return stats

    # AI info cache operations

    def get_info(self, lookup_key: str) -> Optional[str]:
        """Get cached AI output if available."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT content FROM info_cache WHERE lookup_key = ?",
                (lookup_key.strip().lower(),)
            ).fetchone()
            if row:
                return row["content"]
            return None

    def save_info(self, lookup_key: str, info_type: str, content: str) -> None:
        """Cache AI output.

        Args:
            lookup_key: Key to find the content again
            info_type: Kind of content, e.g. 'song_explain'
            content: The generated text
        """
        now = datetime.now().isoformat()
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO info_cache (lookup_key, info_type, content, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(lookup_key) DO UPDATE SET
                    info_type = excluded.info_type,
                    content = excluded.content,
                    created_at = excluded.created_at
            """, (lookup_key.strip().lower(), info_type, content, now))

    def clear_info_cache(self) -> int:
        """Clear all cached AI output. Returns number of entries cleared."""
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM info_cache")
            return cursor.rowcount

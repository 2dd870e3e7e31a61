"""JSON file storage for songs and song folders."""

import json
import logging
from pathlib import Path
from typing import TypeVar, Generic, Callable

from vocabmaster.core.errors import StoreError
from vocabmaster.core.models import Song, SongFolder

logger = logging.getLogger(__name__)

T = TypeVar("T", Song, SongFolder)


class FileStorage(Generic[T]):
    """Generic JSON file storage, one file per item."""

    def __init__(
        self,
        directory: str | Path,
        from_dict: Callable[[dict], T],
        to_dict: Callable[[T], dict],
    ):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._from_dict = from_dict
        self._to_dict = to_dict

    def _get_path(self, id: str) -> Path:
        """Get file path for an item."""
        return self.directory / f"{id}.json"

    def list_all(self) -> list[T]:
        """List all items in storage, newest first."""
        items = []
        for path in self.directory.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    items.append(self._from_dict(data))
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning("Could not load %s: %s", path, e)
        return sorted(items, key=lambda x: x.created_at, reverse=True)

    def get(self, id: str) -> T | None:
        """Get an item by ID."""
        path = self._get_path(id)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
                return self._from_dict(data)
        except (json.JSONDecodeError, KeyError, ValueError):
            logger.warning("Could not load %s", path)
            return None

    def save(self, item: T) -> None:
        """Save an item to storage."""
        path = self._get_path(item.id)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self._to_dict(item), f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e

    def delete(self, id: str) -> bool:
        """Delete an item by ID."""
        path = self._get_path(id)
        if path.exists():
            path.unlink()
            return True
        return False

    def exists(self, id: str) -> bool:
        """Check if an item exists."""
        return self._get_path(id).exists()


class SongStorage(FileStorage[Song]):
    """Storage for song lyrics."""

    def __init__(self, directory: str | Path):
        super().__init__(
            directory,
            from_dict=Song.from_dict,
            to_dict=lambda s: s.to_dict(),
        )

    def list_by_folder(self, folder_id: str) -> list[Song]:
        """List songs in a folder."""
        return [s for s in self.list_all() if s.folder_id == folder_id]


class SongFolderStorage(FileStorage[SongFolder]):
    """Storage for song folders."""

    def __init__(self, directory: str | Path):
        super().__init__(
            directory,
            from_dict=SongFolder.from_dict,
            to_dict=lambda f: f.to_dict(),
        )

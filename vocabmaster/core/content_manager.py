"""Content management for songs and song folders."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from vocabmaster.core.errors import OracleError
from vocabmaster.core.models import Song, SongFolder
from vocabmaster.storage.database import Database
from vocabmaster.storage.files import SongFolderStorage, SongStorage

if TYPE_CHECKING:
    from vocabmaster.ai.oracle import TranslationOracle

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "My Songs"
EXPLANATION_TYPE = "song_explain"


@dataclass
class ContentSummary:
    """Summary of content item for display in lists."""
    id: str
    title: str
    subtitle: str


class ContentManager:
    """Songs, song folders and their cached explanations."""

    def __init__(
        self,
        songs_dir: str | Path,
        folders_dir: str | Path,
        database: Database,
    ):
        self.songs = SongStorage(songs_dir)
        self.folders = SongFolderStorage(folders_dir)
        self.db = database
        self.ensure_default_folder()

    # Folder operations

    def ensure_default_folder(self) -> SongFolder:
        """Create the default folder if there are no folders at all."""
        folders = self.folders.list_all()
        if folders:
            return folders[-1]
        folder = SongFolder.create(DEFAULT_FOLDER_NAME)
        self.folders.save(folder)
        return folder

    def list_folders(self) -> list[SongFolder]:
        """List folders, oldest first."""
        return list(reversed(self.folders.list_all()))

    def create_folder(self, name: str) -> SongFolder:
        folder = SongFolder.create(name.strip())
        self.folders.save(folder)
        return folder

    def rename_folder(self, folder_id: str, name: str) -> bool:
        folder = self.folders.get(folder_id)
        if folder is None:
            return False
        folder.name = name.strip()
        self.folders.save(folder)
        return True

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a folder and every song in it."""
        for song in self.songs.list_by_folder(folder_id):
            self.songs.delete(song.id)
        return self.folders.delete(folder_id)

    # Song operations

    def list_songs(self, folder_id: Optional[str] = None) -> list[ContentSummary]:
        """List songs with summaries, newest first."""
        songs = self.songs.list_all() if folder_id is None else self.songs.list_by_folder(folder_id)
        return [
            ContentSummary(
                id=s.id,
                title=s.title,
                subtitle=f"{len(s.text.splitlines())} lines",
            )
            for s in songs
        ]

    def get_song(self, song_id: str) -> Optional[Song]:
        return self.songs.get(song_id)

    def add_song(self, title: str, text: str, folder_id: Optional[str] = None) -> Song:
        """Save a pasted song; untitled songs get a placeholder title."""
        song = Song.create(
            title=title.strip() or "Untitled",
            text=text,
            folder_id=folder_id or self.ensure_default_folder().id,
        )
        self.songs.save(song)
        return song

    def save_song(self, song: Song) -> None:
        self.songs.save(song)

    def move_song(self, song_id: str, folder_id: str) -> bool:
        song = self.songs.get(song_id)
        if song is None:
            return False
        song.folder_id = folder_id
        self.songs.save(song)
        return True

    def delete_song(self, song_id: str) -> bool:
        """Delete a song."""
        return self.songs.delete(song_id)

    # Explanations

    def get_explanation(self, song: Song) -> Optional[str]:
        return self.db.get_info(f"{EXPLANATION_TYPE}:{song.id}")

    async def explain_song(self, song: Song, oracle: "TranslationOracle") -> Optional[str]:
        """
        Explanation of a song, from the store or the oracle.

        Returns None if the oracle fails; the failure is logged.
        """
        cached = self.get_explanation(song)
        if cached:
            return cached

        try:
            explanation = await oracle.explain_song(song.title, song.text)
        except OracleError as e:
            logger.warning("Could not explain song %r: %s", song.title, e)
            return None

        self.db.save_info(f"{EXPLANATION_TYPE}:{song.id}", EXPLANATION_TYPE, explanation)
        return explanation

"""Tests for song storage and the content manager."""

import asyncio
import json
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from vocabmaster.core.content_manager import DEFAULT_FOLDER_NAME, ContentManager
from vocabmaster.core.errors import OracleError
from vocabmaster.core.models import Song
from vocabmaster.storage.database import Database
from vocabmaster.storage.files import SongStorage


class FakeOracle:
    """Oracle stand-in for song explanations."""

    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def explain_song(self, title, text):
        self.calls += 1
        if self.fail:
            raise OracleError("no network")
        return f"About {title}"


class TestSongStorage:
    """Test JSON file storage."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.storage = SongStorage(Path(self.temp_dir) / "songs")

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_save_and_get(self):
        song = Song.create(title="Yesterday", text="All my troubles\nseemed so far away", folder_id="f1")
        self.storage.save(song)

        loaded = self.storage.get(song.id)
        assert loaded.title == "Yesterday"
        assert loaded.text == song.text
        assert loaded.folder_id == "f1"
        assert self.storage.exists(song.id)

    def test_list_newest_first(self):
        now = datetime.now()
        old = Song.create(title="Old", text="", created_at=now - timedelta(days=1))
        new = Song.create(title="New", text="", created_at=now)
        self.storage.save(old)
        self.storage.save(new)
        assert [s.title for s in self.storage.list_all()] == ["New", "Old"]

    def test_corrupt_file_skipped(self):
        self.storage.save(Song.create(title="Good", text=""))
        (self.storage.directory / "broken.json").write_text("{not json", encoding="utf-8")
        (self.storage.directory / "partial.json").write_text(json.dumps({"title": "x"}), encoding="utf-8")
        assert [s.title for s in self.storage.list_all()] == ["Good"]

    def test_delete(self):
        song = Song.create(title="Gone", text="")
        self.storage.save(song)
        assert self.storage.delete(song.id)
        assert self.storage.get(song.id) is None
        assert not self.storage.delete(song.id)


class TestContentManager:
    """Test songs, folders and explanations."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        base = Path(self.temp_dir)
        self.db = Database(base / "test.db")
        self.content = ContentManager(base / "songs", base / "folders", self.db)

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_default_folder_created_once(self):
        folders = self.content.list_folders()
        assert [f.name for f in folders] == [DEFAULT_FOLDER_NAME]

        base = Path(self.temp_dir)
        ContentManager(base / "songs", base / "folders", self.db)
        assert len(self.content.list_folders()) == 1

    def test_add_song_defaults(self):
        song = self.content.add_song("  ", "line one\nline two")
        assert song.title == "Untitled"
        assert song.folder_id == self.content.ensure_default_folder().id

        summaries = self.content.list_songs(song.folder_id)
        assert [s.subtitle for s in summaries] == ["2 lines"]

    def test_folders(self):
        folder = self.content.create_folder(" Rock ")
        assert folder.name == "Rock"
        assert self.content.rename_folder(folder.id, "Classic Rock")
        assert [f.name for f in self.content.list_folders()] == [DEFAULT_FOLDER_NAME, "Classic Rock"]
        assert not self.content.rename_folder("missing", "x")

    def test_move_song(self):
        folder = self.content.create_folder("Rock")
        song = self.content.add_song("Help", "Help me if you can")
        assert self.content.move_song(song.id, folder.id)
        assert [s.title for s in self.content.list_songs(folder.id)] == ["Help"]
        assert not self.content.move_song("missing", folder.id)

    def test_delete_folder_deletes_songs(self):
        folder = self.content.create_folder("Rock")
        kept = self.content.add_song("Kept", "")
        gone = self.content.add_song("Gone", "", folder_id=folder.id)

        assert self.content.delete_folder(folder.id)
        assert self.content.get_song(gone.id) is None
        assert self.content.get_song(kept.id) is not None

    def test_explain_song_cached(self):
        song = self.content.add_song("Help", "Help me if you can")
        oracle = FakeOracle()

        first = asyncio.run(self.content.explain_song(song, oracle))
        second = asyncio.run(self.content.explain_song(song, oracle))

        assert first == second == "About Help"
        assert oracle.calls == 1
        assert self.content.get_explanation(song) == "About Help"

    def test_explain_song_failure(self):
        song = self.content.add_song("Help", "Help me if you can")
        oracle = FakeOracle(fail=True)

        assert asyncio.run(self.content.explain_song(song, oracle)) is None
        assert self.content.get_explanation(song) is None

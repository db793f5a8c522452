"""Unit tests for the low-confidence archive."""
import numpy as np

from tablereader.core.entities import FieldType, MatchResult, RecognitionResult, Region
from tablereader.services.archive_service import BadMatchArchive


def processed_image():
    return np.zeros((20, 40, 3), dtype=np.uint8)


class TestBadMatchArchive:
    """Test suite for BadMatchArchive."""

    def test_archive_writes_event_folder(self, temp_dir):
        archive = BadMatchArchive(str(temp_dir / "bad"))
        region = Region("seat1_bet", 0, 0, 10, 10)
        folder = archive.archive(FieldType.PLAYER_BET, processed_image(),
                                 RecognitionResult("12", 0.4234), threshold=0.8,
                                 region=region, original=processed_image())

        assert folder is not None
        assert folder.name.endswith("_score0.42")
        assert (folder / "processed.png").is_file()
        assert (folder / "original.png").is_file()

        meta = archive.load_metadata(folder)
        assert meta["field_type"] == "player_bet"
        assert meta["raw_text"] == "12"
        assert meta["threshold"] == 0.8
        assert meta["region"] == "seat1_bet"
        assert meta["region_id"] == region.id
        assert meta["template_id"] is None

    def test_match_metadata(self, temp_dir):
        archive = BadMatchArchive(str(temp_dir))
        match = MatchResult("Ah", "t1", (2, 3), 0.55)
        folder = archive.archive(FieldType.CARD_TEMPLATE, processed_image(),
                                 RecognitionResult("Ah", 0.55), 0.8, match=match)
        meta = archive.load_metadata(folder)
        assert meta["template_id"] == "t1"
        assert meta["matched_label"] == "Ah"
        assert meta["match_point"] == [2, 3]
        assert not (folder / "original.png").exists()

    def test_same_instant_events_get_distinct_folders(self, temp_dir):
        archive = BadMatchArchive(str(temp_dir))
        folders = {archive.archive(FieldType.BASE, processed_image(),
                                   RecognitionResult("x", 0.1), 0.8) for _ in range(5)}
        assert len(folders) == 5
        assert len(archive.list_events()) == 5

    def test_clear(self, temp_dir):
        archive = BadMatchArchive(str(temp_dir / "bad"))
        assert archive.list_events() == []
        archive.archive(FieldType.BASE, processed_image(), RecognitionResult("x", 0.1), 0.8)
        assert archive.clear() == 1
        assert archive.list_events() == []

    def test_write_failure_returns_none(self, temp_dir):
        blocker = temp_dir / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        archive = BadMatchArchive(str(blocker))
        assert archive.archive(FieldType.BASE, processed_image(),
                               RecognitionResult("x", 0.1), 0.8) is None

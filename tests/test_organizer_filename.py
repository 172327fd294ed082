import tempfile
import unittest
from datetime import date
from pathlib import Path

from movie_meta.config import TaggingSettings
from movie_meta.models import MediaKind, ResolvedMetadata
from movie_meta.organizer import Organizer


def _meta(title: str) -> ResolvedMetadata:
    return ResolvedMetadata(kind=MediaKind.MOVIE, title=title, release_date=date(2019, 7, 26))


class TestOrganizerFilename(unittest.TestCase):
    def test_default_pattern(self) -> None:
        organizer = Organizer(TaggingSettings(rename_files=True))
        self.assertEqual(organizer.build_filename(_meta("Once Upon a Time"), ".mp4"), "Once Upon a Time (2019).mp4")

    def test_invalid_characters_removed(self) -> None:
        organizer = Organizer(TaggingSettings(rename_files=True, movie_rename_pattern="{title} - {date}"))
        name = organizer.build_filename(_meta('Face/Off: "Redux"?'), ".m4v")
        self.assertEqual(name, "Face-Off Redux - 2019-07-26.m4v")

    def test_rename_skips_existing_target(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            src = tmp / "film.mp4"
            src.write_bytes(b"a")
            (tmp / "Film (2019).mp4").write_bytes(b"b")
            organizer = Organizer(TaggingSettings(rename_files=True))
            self.assertIsNone(organizer.rename(src, _meta("Film")))
            self.assertTrue(src.exists())

    def test_rename_noop_when_name_already_matches(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            src = Path(tmpdir) / "Film (2019).mp4"
            src.write_bytes(b"a")
            organizer = Organizer(TaggingSettings(rename_files=True))
            self.assertIsNone(organizer.rename(src, _meta("Film")))
            self.assertTrue(src.exists())


if __name__ == "__main__":
    unittest.main()

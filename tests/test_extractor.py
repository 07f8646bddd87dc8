import pytest

from shared.errors import NoAudioFound
from catalog_tool.archive import ArchiveEntry, ArchiveReader
from catalog_tool.extractor import extract_contents, is_metadata_entry, title_from_path
from tests.conftest import make_zip


def _entries(data):
    with ArchiveReader(data) as reader:
        return list(reader.entries())


def _entry(path, size=1):
    return ArchiveEntry(path=path, is_dir=path.endswith("/"), file_size=size)


def test_two_songs_and_cover():
    data = make_zip({"01-intro.mp3": b"a", "02-song.mp3": b"b", "cover.jpg": b"c"})
    result = extract_contents(_entries(data))

    assert result.cover.path == "cover.jpg"
    assert [(t.title, t.order) for t in result.tracks] == [("01-intro", 0), ("02-song", 1)]
    assert result.warnings == []


def test_track_cap_adds_warning():
    files = {f"track{i:02d}.wav": b"x" for i in range(32)}
    result = extract_contents(_entries(make_zip(files)))

    assert len(result.tracks) == 30
    assert [t.order for t in result.tracks] == list(range(30))
    assert result.tracks[-1].title == "track29"
    assert result.warnings == ["TooManyTracks"]


def test_exactly_at_cap_has_no_warning():
    files = {f"t{i:02d}.ogg": b"x" for i in range(30)}
    result = extract_contents(_entries(make_zip(files)))
    assert len(result.tracks) == 30
    assert result.warnings == []


def test_no_audio_raises():
    with pytest.raises(NoAudioFound):
        extract_contents(_entries(make_zip({"readme.txt": b"hello"})))


def test_only_directories_raise():
    with pytest.raises(NoAudioFound):
        extract_contents([_entry("a/"), _entry("a/b/")])


def test_cover_is_first_image_in_path_order():
    entries = [_entry("z.png"), _entry("song.mp3"), _entry("a.jpg")]
    assert extract_contents(entries).cover.path == "a.jpg"


def test_cover_is_deterministic_regardless_of_container_order():
    first = extract_contents([_entry("b.jpg"), _entry("s.mp3"), _entry("a.png")])
    second = extract_contents([_entry("a.png"), _entry("s.mp3"), _entry("b.jpg")])
    assert first.cover.path == second.cover.path == "a.png"


def test_container_order_when_not_sorting():
    entries = [_entry("b.jpg"), _entry("2.mp3"), _entry("a.png"), _entry("1.mp3")]
    result = extract_contents(entries, sort_entries=False)

    assert result.cover.path == "b.jpg"
    assert [t.title for t in result.tracks] == ["2", "1"]


def test_no_cover_when_no_image():
    result = extract_contents([_entry("only.m4a")])
    assert result.cover is None
    assert len(result.tracks) == 1


def test_mixed_case_extensions_and_nested_paths():
    entries = [_entry("Disc 1/01 Opening.MP3", 10), _entry("Disc 1/Art/Front.JPEG"), _entry("Disc 1/info.nfo")]
    result = extract_contents(entries)

    assert result.tracks[0].title == "01 Opening"
    assert result.tracks[0].source_path == "Disc 1/01 Opening.MP3"
    assert result.tracks[0].file_size == 10
    assert result.cover.filename == "Front.JPEG"


def test_title_strips_only_last_extension():
    assert title_from_path("a/b/My.Song.v2.mp3") == "My.Song.v2"
    assert title_from_path(".mp3") == ".mp3"
    assert title_from_path("plain") == "plain"


def test_macos_resource_forks_are_skipped():
    data = make_zip({
        "cover.jpg": b"c",
        "01.mp3": b"a",
        "__MACOSX/._cover.jpg": b"fork",
        "__MACOSX/._01.mp3": b"fork",
        "._02.mp3": b"fork",
    })
    result = extract_contents(_entries(data))

    assert result.cover.path == "cover.jpg"
    assert [t.title for t in result.tracks] == ["01"]


def test_only_resource_forks_means_no_audio():
    with pytest.raises(NoAudioFound):
        extract_contents([_entry("__MACOSX/._01.mp3"), _entry("disc/._02.mp3")])


@pytest.mark.parametrize("path,expected", [
    ("__MACOSX/._cover.jpg", True),
    ("__MACOSX/disc/song.mp3", True),
    ("disc/._song.mp3", True),
    ("disc/song.mp3", False),
    ("MACOSX/song.mp3", False),
    ("disc/.hidden.mp3", False),
])
def test_is_metadata_entry(path, expected):
    assert is_metadata_entry(path) is expected

import pytest

from shared.errors import ArchiveCorrupt
from catalog_tool.archive import ArchiveEntry, ArchiveReader, EntryKind, classify
from tests.conftest import make_zip


def test_classify_is_case_insensitive():
    assert classify("Disc/01 Intro.MP3") is EntryKind.AUDIO
    assert classify("track.FlAc") is EntryKind.AUDIO
    assert classify("art/Cover.JPEG") is EntryKind.IMAGE
    assert classify("readme.txt") is EntryKind.OTHER
    assert classify("no_extension") is EntryKind.OTHER


def test_entries_keep_container_order_and_directories():
    data = make_zip({"b.mp3": b"b", "a.mp3": b"aa"}, directories=["disc1"])
    with ArchiveReader(data) as reader:
        entries = list(reader.entries())

    assert [e.path for e in entries] == ["disc1/", "b.mp3", "a.mp3"]
    assert entries[0].is_dir
    assert entries[2].file_size == 2


def test_classified_entries_skip_directories():
    data = make_zip({"x/01.mp3": b"1", "x/cover.png": b"2", "notes.txt": b"3"}, directories=["x"])
    with ArchiveReader(data) as reader:
        kinds = {c.entry.path: c.kind for c in reader.classified_entries()}

    assert kinds == {
        "x/01.mp3": EntryKind.AUDIO,
        "x/cover.png": EntryKind.IMAGE,
        "notes.txt": EntryKind.OTHER,
    }


def test_reads_from_path_and_stream(tmp_path):
    data = make_zip({"song.wav": b"RIFFdata"})
    path = tmp_path / "album.zip"
    path.write_bytes(data)

    with ArchiveReader(str(path)) as reader:
        assert reader.read("song.wav") == b"RIFFdata"
    with open(path, "rb") as f, ArchiveReader(f) as reader:
        assert reader.read(next(reader.entries())) == b"RIFFdata"


def test_extract_to_streams_payload(tmp_path):
    payload = bytes(range(256)) * 1000
    with ArchiveReader(make_zip({"big.flac": payload})) as reader:
        entry = next(reader.entries())
        written = reader.extract_to(entry, tmp_path / "out.flac")

    assert written == len(payload)
    assert (tmp_path / "out.flac").read_bytes() == payload


def test_entry_filename_and_extension():
    entry = ArchiveEntry(path="Album/Art/Front.JPG", is_dir=False, file_size=0)
    assert entry.filename == "Front.JPG"
    assert entry.extension == ".jpg"


def test_not_a_zip_is_corrupt():
    with pytest.raises(ArchiveCorrupt):
        ArchiveReader(b"this is not a zip archive")


def test_truncated_zip_is_corrupt():
    data = make_zip({"a.mp3": b"x" * 1000})
    with pytest.raises(ArchiveCorrupt):
        ArchiveReader(data[: len(data) // 2])

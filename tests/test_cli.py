from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from shared.errors import Unauthorized
from catalog_tool import cli as cli_module
from catalog_tool.cli import cli, parse_move
from tests.conftest import make_zip

ALBUM = {"01-intro.mp3": b"intro", "02-song.mp3": b"song", "cover.jpg": b"jpeg"}


@pytest.fixture
def album(tmp_path):
    path = tmp_path / "album.zip"
    path.write_bytes(make_zip(ALBUM))
    return path


def test_parse_move():
    assert parse_move("2:1") == (1, 0)


def test_preview_lists_tracks(album):
    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "preview", str(album), "--move", "2:1"])
    assert result.exit_code == 0, result.output
    assert result.output.index("02-song") < result.output.index("01-intro")
    assert "cover.jpg" in result.output


def test_preview_without_audio(tmp_path):
    path = tmp_path / "docs.zip"
    path.write_bytes(make_zip({"readme.txt": b"x"}))
    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "preview", str(path)])
    assert result.exit_code == 1
    assert "No audio files found" in result.output


def test_preview_bad_move(album):
    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "preview", str(album), "--move", "1:9"])
    assert result.exit_code == 1


def test_upload_refreshes_once_on_401(album, monkeypatch):
    client = MagicMock()
    client.upload_cd_zip.side_effect = [
        Unauthorized("Invalid token"),
        {"success": True, "cd": {"id": "cd_1", "title": "T", "artist": "A", "songs": [{}, {}]}, "warnings": []},
    ]
    monkeypatch.setattr(cli_module, "_client", lambda server: client)

    result = CliRunner().invoke(cli, [
        "--log-level", "WARNING", "upload", str(album),
        "--title", "T", "--artist", "A", "--genre", "G", "--move", "2:1",
    ])

    assert result.exit_code == 0, result.output
    assert client.upload_cd_zip.call_count == 2
    client.refresh.assert_called_once()
    assert client.upload_cd_zip.call_args[0][4] == ["02-song.mp3", "01-intro.mp3"]
    assert "cd_1" in result.output

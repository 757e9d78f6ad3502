"""Tests for locating and reading request files."""

from unittest.mock import patch

import pytest

from httpwatch.config import RunConfig
from httpwatch.errors import EmptyResultError, NotFoundError, UnreadableFileError
from httpwatch.loader import load_sources, resolve_source_paths


class TestResolveSourcePaths:
    def test_explicit_file(self, tmp_path):
        f = tmp_path / "api.http"
        f.write_text("GET /a")
        paths = resolve_source_paths(RunConfig(http_file=str(f)))
        assert paths == [f]

    def test_explicit_file_missing(self, tmp_path):
        with pytest.raises(NotFoundError):
            resolve_source_paths(RunConfig(http_file=str(tmp_path / "nope.http")))

    def test_folder_keeps_http_and_rest_only(self, tmp_path):
        (tmp_path / "b.rest").write_text("GET /b")
        (tmp_path / "a.http").write_text("GET /a")
        (tmp_path / "notes.txt").write_text("x")
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "c.http").write_text("GET /c")
        paths = resolve_source_paths(RunConfig(http_folder=str(tmp_path)))
        assert [p.name for p in paths] == ["a.http", "b.rest"]

    def test_folder_without_matches(self, tmp_path):
        (tmp_path / "notes.txt").write_text("x")
        with pytest.raises(EmptyResultError, match="no .http files found"):
            resolve_source_paths(RunConfig(http_folder=str(tmp_path)))

    def test_folder_missing(self, tmp_path):
        with pytest.raises(NotFoundError):
            resolve_source_paths(RunConfig(http_folder=str(tmp_path / "missing")))

    def test_cwd_fallback_takes_first_only(self, tmp_path):
        (tmp_path / "b.http").write_text("GET /b")
        (tmp_path / "a.http").write_text("GET /a")
        paths = resolve_source_paths(RunConfig(), cwd=tmp_path)
        assert [p.name for p in paths] == ["a.http"]

    def test_cwd_fallback_nothing_found(self, tmp_project):
        with pytest.raises(EmptyResultError, match="current directory"):
            resolve_source_paths(RunConfig())


class TestLoadSources:
    def test_reads_raw_content(self, tmp_path):
        f = tmp_path / "api.http"
        f.write_text("GET http://localhost:8080/v1/comments/1 HTTP/1.1", encoding="utf-8")
        (source,) = load_sources(RunConfig(http_file=str(f)))
        assert source.raw_content == "GET http://localhost:8080/v1/comments/1 HTTP/1.1"
        assert source.file_path == str(f)
        assert source.blocks == ()

    def test_invalid_utf8(self, tmp_path):
        f = tmp_path / "api.http"
        f.write_bytes(b"GET http://x/\xff\xfe HTTP/1.1")
        with pytest.raises(UnreadableFileError, match="not valid UTF-8") as exc:
            load_sources(RunConfig(http_file=str(f)))
        assert exc.value.file_path == str(f)

    def test_unreadable_file(self, tmp_path):
        f = tmp_path / "api.http"
        f.write_text("GET /a")
        with patch("pathlib.Path.read_text", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(UnreadableFileError, match="cannot read file: Permission denied"):
                load_sources(RunConfig(http_file=str(f)))

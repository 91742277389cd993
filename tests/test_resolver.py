"""Tests for input resolution."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from pathlib import Path

import pytest

from chat_highlights import InputNotFoundError, NoHtmlFoundError
from chat_highlights.resolver import resolve_input

MESSAGE_MARKUP = '<div class="message default" id="message1">hi</div>'


def test_missing_path(tmp_path):
    with pytest.raises(InputNotFoundError):
        resolve_input(tmp_path / "nope")


def test_file_input(tmp_path):
    html = tmp_path / "messages.html"
    html.write_text(MESSAGE_MARKUP)
    (tmp_path / "photos").mkdir()
    (tmp_path / "css").mkdir()

    r = resolve_input(html)
    assert r.kind == "file"
    assert r.messages_html == html.resolve()
    assert r.export_root == tmp_path.resolve()
    assert list(r.assets) == ["photos", "css"]
    assert r.assets["photos"].is_absolute()


def test_any_html_file_accepted(tmp_path):
    html = tmp_path / "Chat.HTML"
    html.write_text("<html></html>")
    assert resolve_input(html).messages_html.name == "Chat.HTML"


def test_non_html_file_rejected(tmp_path):
    txt = tmp_path / "messages.txt"
    txt.write_text("hello")
    with pytest.raises(NoHtmlFoundError):
        resolve_input(txt)


def test_dir_prefers_exact_candidate(tmp_path):
    (tmp_path / "messages2.html").write_text(MESSAGE_MARKUP)
    (tmp_path / "messages.html").write_text(MESSAGE_MARKUP)
    r = resolve_input(tmp_path)
    assert r.kind == "dir"
    assert r.messages_html.name == "messages.html"
    assert r.export_root == tmp_path.resolve()


def test_dir_messages_glob_lexicographic(tmp_path):
    (tmp_path / "messages3.html").write_text("")
    (tmp_path / "messages10.html").write_text("")
    assert resolve_input(tmp_path).messages_html.name == "messages10.html"


def test_dir_marker_scan_top_level_before_nested(tmp_path):
    (tmp_path / "a_index.html").write_text("<p>no blocks here</p>")
    (tmp_path / "b_chat.html").write_text(MESSAGE_MARKUP)
    nested = tmp_path / "a_sub"
    nested.mkdir()
    (nested / "0.html").write_text(MESSAGE_MARKUP)
    assert resolve_input(tmp_path).messages_html.name == "b_chat.html"


def test_dir_marker_scan_nested(tmp_path):
    nested = tmp_path / "ChatExport_2024"
    nested.mkdir()
    (nested / "export.html").write_text(MESSAGE_MARKUP)
    deeper = nested / "deeper"
    deeper.mkdir()
    r = resolve_input(tmp_path)
    assert r.messages_html == (nested / "export.html").resolve()
    assert r.export_root == tmp_path.resolve()


def test_dir_marker_scan_skips_unreadable_subdir(tmp_path, monkeypatch):
    locked = tmp_path / "a_locked"
    locked.mkdir()
    readable = tmp_path / "b_export"
    readable.mkdir()
    (readable / "chat.html").write_text(MESSAGE_MARKUP)

    real_iterdir = Path.iterdir

    def iterdir(self):
        if self.name == "a_locked":
            raise PermissionError(13, "Permission denied", str(self))
        return real_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", iterdir)
    assert resolve_input(tmp_path).messages_html == (readable / "chat.html").resolve()


def test_dir_too_deep_is_not_scanned(tmp_path):
    deep = tmp_path / "one" / "two"
    deep.mkdir(parents=True)
    (deep / "export.html").write_text(MESSAGE_MARKUP)
    with pytest.raises(NoHtmlFoundError):
        resolve_input(tmp_path)


def test_empty_dir(tmp_path):
    with pytest.raises(NoHtmlFoundError):
        resolve_input(tmp_path)


def test_source_meta(tmp_path):
    html = tmp_path / "messages.html"
    html.write_text(MESSAGE_MARKUP)
    (tmp_path / "js").mkdir()
    source = resolve_input(tmp_path).source()
    assert source["input_path"] == str(tmp_path.resolve())
    assert source["html_file"] == "messages.html"
    assert source["assets"] == {"js": str((tmp_path / "js").resolve())}

from __future__ import annotations

from multiboot_usb import logging_utils


def test_file_handler_on_requested_path(tmp_path):
    target = tmp_path / "logs" / "run.log"
    handler, path = logging_utils._open_file_handler(str(target))
    try:
        assert path == str(target)
        assert target.parent.is_dir()
    finally:
        handler.close()


def test_file_handler_falls_back_to_cwd(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    handler, path = logging_utils._open_file_handler(str(blocker / "run.log"))
    try:
        assert path == str(tmp_path / logging_utils.FALLBACK_LOG_NAME)
    finally:
        handler.close()

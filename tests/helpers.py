from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import os
import stat
from unittest import mock


@contextmanager
def temp_env(overrides: dict[str, str | None]):
    """Apply environment overrides; None removes a variable. Restored on exit."""
    with mock.patch.dict(os.environ):
        for key, value in overrides.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        yield


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def make_site(root: Path) -> Path:
    """Lay out a small document root used across the server tests."""
    (root / "index.html").write_bytes(b"<h1>hi</h1>\n")
    (root / "notes.txt").write_bytes(b"plain notes")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(b"<p>docs</p>")
    (root / "empty").mkdir()
    write_script(root / "scripts" / "echo", 'printf "%s" "$HTTP_X_TOKEN"\n')
    write_script(root / "scripts" / "fail", 'printf "boom" >&2\nexit 3\n')
    return root


def parse_response(raw: bytes) -> tuple[int, dict[str, str], bytes]:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    version, status, _reason = lines[0].split(" ", 2)
    if version != "HTTP/1.1":
        raise ValueError(f"unexpected version {version!r}")
    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return int(status), headers, body

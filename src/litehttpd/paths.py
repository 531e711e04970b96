from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlsplit

INDEX_FILE = "index.html"


class PathKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    MISSING = "missing"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class ResolvedPath:
    kind: PathKind
    path: Path | None = None

    @property
    def is_file(self) -> bool:
        return self.kind is PathKind.FILE


MISSING = ResolvedPath(PathKind.MISSING)
FORBIDDEN = ResolvedPath(PathKind.FORBIDDEN)


def decode_target(target: str) -> str:
    """Drop the query string and percent-decode the request path."""
    return unquote(urlsplit(target).path, errors="surrogateescape")


def has_parent_segment(path: str) -> bool:
    return ".." in path.replace("\\", "/").split("/")


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.relative_to(base)
        return True
    except ValueError:
        return False


def resolve_path(
    target: str,
    root: Path,
    within: Path | None = None,
    index_fallback: bool = True,
) -> ResolvedPath:
    """Resolve a request target against ``root``.

    ``root`` must already be canonical. The canonical result has to stay
    under ``within`` (``root`` when omitted), otherwise the path is
    forbidden, whether or not it exists. With ``index_fallback`` a
    directory resolves to its ``index.html`` or is forbidden when it has
    none; without it the directory itself comes back tagged DIRECTORY.
    """
    decoded = decode_target(target)
    if "\x00" in decoded or has_parent_segment(decoded):
        return FORBIDDEN

    base = within if within is not None else root
    candidate = root / decoded.lstrip("/")
    try:
        canonical = candidate.resolve()
    except (OSError, RuntimeError):
        return FORBIDDEN
    if not (_is_within(root, canonical) and _is_within(base, canonical)):
        return FORBIDDEN

    if not canonical.exists():
        return MISSING
    if canonical.is_file():
        return ResolvedPath(PathKind.FILE, canonical)
    if not canonical.is_dir():
        return FORBIDDEN
    if not index_fallback:
        return ResolvedPath(PathKind.DIRECTORY, canonical)

    index = (canonical / INDEX_FILE).resolve()
    if _is_within(root, index) and _is_within(base, index) and index.is_file():
        return ResolvedPath(PathKind.FILE, index)
    return FORBIDDEN


def resolve_script(target: str, root: Path, scripts_dir: Path) -> ResolvedPath:
    return resolve_path(target, root, within=scripts_dir, index_fallback=False)

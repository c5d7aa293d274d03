"""Read-only views of an ISO filesystem tree, plus shell-style glob expansion.

Paths handed to and returned from these helpers are POSIX strings rooted at
the ISO root ("/casper/vmlinuz"), never host paths. Two implementations exist:

- MountedFilesystem: a loop-mounted ISO (or any directory) on the host.
- MemoryFilesystem: an in-memory tree, used for fixtures and dry runs.

Globbing follows bash defaults: '*', '?' and '[...]' never cross a '/', and
wildcards do not match a leading '.' unless the pattern segment starts with one.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Union

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES = 64 * 1024

_MAGIC = re.compile(r"[*?\[]")


class PathEscapesRoot(ValueError):
    pass


class IsoFilesystem(Protocol):
    def is_file(self, path: str) -> bool:
        ...

    def is_dir(self, path: str) -> bool:
        ...

    def list_dir(self, path: str) -> List[str]:
        ...

    def read_text(self, path: str) -> Optional[str]:
        ...


def normalize(path: str) -> str:
    """Normalize to an absolute ISO path; '..' never climbs above '/'."""
    return posixpath.normpath("/" + path.lstrip("/"))


def _decode(data: bytes) -> str:
    return data[:MAX_TEXT_BYTES].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class MountedFilesystem:
    root: Path

    @classmethod
    def from_path(cls, root: Union[str, Path]) -> "MountedFilesystem":
        p = Path(root).expanduser()
        try:
            p = p.resolve()
        except OSError:
            p = p.absolute()
        return cls(root=p)

    def resolve(self, path: str) -> Path:
        """Map an ISO path onto the host, refusing symlinks that leave the tree."""
        candidate = (self.root / normalize(path).lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as e:
            raise PathEscapesRoot(f"Path escapes ISO root: {path}") from e
        return candidate

    def is_file(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except (PathEscapesRoot, OSError):
            return False

    def is_dir(self, path: str) -> bool:
        try:
            return self.resolve(path).is_dir()
        except (PathEscapesRoot, OSError):
            return False

    def list_dir(self, path: str) -> List[str]:
        try:
            p = self.resolve(path)
            return sorted(child.name for child in p.iterdir())
        except (PathEscapesRoot, OSError):
            return []

    def read_text(self, path: str) -> Optional[str]:
        try:
            with self.resolve(path).open("rb") as f:
                return _decode(f.read(MAX_TEXT_BYTES))
        except (PathEscapesRoot, OSError) as e:
            logger.debug("Unreadable %s: %s", path, e)
            return None


class MemoryFilesystem:
    """In-memory ISO tree.

    `files` maps ISO paths to contents; parent directories are implied.
    `dirs` adds directories that hold no files (e.g. an empty '/antergos').
    """

    def __init__(
        self,
        files: Optional[Mapping[str, Union[str, bytes]]] = None,
        dirs: Iterable[str] = (),
    ) -> None:
        self._files: Dict[str, Union[str, bytes]] = {normalize(k): v for k, v in (files or {}).items()}
        self._dirs = {"/"}
        for d in dirs:
            self._add_dir(normalize(d))
        for f in self._files:
            self._add_dir(posixpath.dirname(f))

    def _add_dir(self, path: str) -> None:
        while path not in self._dirs:
            self._dirs.add(path)
            path = posixpath.dirname(path)

    def is_file(self, path: str) -> bool:
        return normalize(path) in self._files

    def is_dir(self, path: str) -> bool:
        return normalize(path) in self._dirs

    def list_dir(self, path: str) -> List[str]:
        parent = normalize(path)
        if parent not in self._dirs:
            return []
        names = {
            posixpath.basename(p)
            for p in list(self._files) + list(self._dirs)
            if p != "/" and posixpath.dirname(p) == parent
        }
        return sorted(names)

    def read_text(self, path: str) -> Optional[str]:
        data = self._files.get(normalize(path))
        if data is None:
            return None
        if isinstance(data, bytes):
            return _decode(data)
        return data


def has_magic(segment: str) -> bool:
    return _MAGIC.search(segment) is not None


def translate_segment(segment: str) -> "re.Pattern[str]":
    """Compile one path component of a shell glob into a regex."""

    out: List[str] = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                # Unterminated class: literal '['.
                out.append(re.escape(c))
                continue
            body = segment[i:j]
            i = j + 1
            negate = body[0] in "!^"
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\").replace("[", "\\[")
            out.append(f"[{'^' if negate else ''}{body}]")
        else:
            out.append(re.escape(c))
    return re.compile("".join(out))


def expand_glob(fs: IsoFilesystem, pattern: str) -> List[str]:
    """Expand `pattern` against `fs`, returning sorted matching ISO paths.

    Matches may be files or directories; callers filter further. A pattern
    without matches expands to nothing.
    """

    parts = [p for p in pattern.strip("/").split("/") if p]
    if not parts:
        return []

    current = ["/"]
    for part in parts:
        matched: List[str] = []
        for base in current:
            if not has_magic(part):
                candidate = posixpath.join(base, part)
                if fs.is_file(candidate) or fs.is_dir(candidate):
                    matched.append(candidate)
                continue
            if not fs.is_dir(base):
                continue
            rx = translate_segment(part)
            for name in fs.list_dir(base):
                if name.startswith(".") and not part.startswith("."):
                    continue
                if rx.fullmatch(name):
                    matched.append(posixpath.join(base, name))
        current = matched
        if not current:
            break

    return sorted(current)

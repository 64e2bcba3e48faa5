"""
Path helpers for game trees authored on Windows.

Gothic script lists use backslashes and ignore case. On case-sensitive
filesystems a reference like ``AI\\Magic\\Spells.d`` has to be matched
against whatever case the files actually have on disk.
"""

import os
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, os.PathLike]


def find_ci(directory: Path, name: str) -> Optional[Path]:
    """
    Find an entry of directory named name, ignoring case.

    The result carries the name as stored on disk, also on case-insensitive
    filesystems, so equal files always give equal paths. An exact match
    wins over a case-insensitive one. Returns None when the directory does
    not exist or contains no such entry.
    """
    if not directory.is_dir():
        return None
    folded = name.casefold()
    match = None
    for candidate in sorted(directory.iterdir()):
        if candidate.name == name:
            return candidate
        if match is None and candidate.name.casefold() == folded:
            match = candidate
    return match


def resolve_ci(base: Path, relative: PathLike) -> Path:
    """
    Join a Windows-style relative path onto base, matching case per component.

    Components that cannot be found are kept as written so callers can still
    report the path the user referenced.
    """
    parts = str(relative).replace("\\", "/").split("/")
    current = Path(base)
    for index, part in enumerate(parts):
        if part in ("", "."):
            continue
        if part == "..":
            current = current.parent
            continue
        # Wildcard components are matched later by the expander.
        if "*" in part:
            current = current.joinpath(*[p for p in parts[index:] if p])
            break
        found = find_ci(current, part)
        current = found if found is not None else current / part
    return Path(os.path.normpath(current))

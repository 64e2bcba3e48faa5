"""
Script List Resolution

Flattens a Daedalus ``.src`` include file into the ordered list of ``.d``
scripts it references. Each non-comment line of an include file is one
reference, relative to the include file's own directory:

    _intern\\Constants.d        script
    AI\\AI_Intern\\*.d           wildcard: every .d in AI\\AI_Intern
    Story\\B_*.d                wildcard: every .d starting with "B_"
    Items\\Items.src            nested include file

The result lists every script once, in the order it is first reached by a
depth-first walk of the include tree.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from gmbt.errors import IncludeCycleError, MissingReferenceError
from gmbt.paths import resolve_ci
from gmbt.text import read_lines, remove_comments

logger = logging.getLogger(__name__)

WILDCARD_MARKER = "*"
DEFAULT_ENCODING = "windows-1250"


class ReferenceKind(Enum):
    """What a line of an include file points at."""

    SCRIPT = ".d"
    INCLUDE = ".src"

    @classmethod
    def for_path(cls, path: Path) -> Optional["ReferenceKind"]:
        """Classify by extension, ignoring case. Unknown extensions give None."""
        suffix = path.suffix.lower()
        for kind in cls:
            if kind.value == suffix:
                return kind
        return None


@dataclass(frozen=True)
class ScriptReference:
    """One resolved line of an include file."""
    path: Path
    kind: ReferenceKind
    line: str
    line_number: int

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD_MARKER in self.path.name


@dataclass(frozen=True)
class WildcardPattern:
    """A prefix match over the files of one directory."""
    directory: Path
    prefix: str
    extension: str

    @classmethod
    def from_path(cls, path: Path) -> Optional["WildcardPattern"]:
        """
        Build a pattern from a path like ``dir/B_*.d``.

        The marker must end the filename stem. Anything else (``B*_x.d``,
        ``*.*``) is not a valid wildcard and gives None.
        """
        stem, extension = path.stem, path.suffix
        if not stem.endswith(WILDCARD_MARKER) or WILDCARD_MARKER in extension:
            return None
        prefix = stem[:-len(WILDCARD_MARKER)]
        if WILDCARD_MARKER in prefix:
            return None
        return cls(directory=path.parent, prefix=prefix, extension=extension)

    def matches(self, name: str) -> bool:
        """Case-insensitive prefix and extension test on a bare filename."""
        folded = name.casefold()
        return (
            Path(folded).suffix == self.extension.casefold()
            and folded.startswith(self.prefix.casefold())
        )


def expand_wildcard(path: Path) -> List[Path]:
    """
    Expand a wildcard reference to the files it matches.

    Never raises for a miss: an invalid pattern, a missing directory or no
    matching files all give an empty list. Matches are ordered by
    case-folded filename so the result does not depend on the filesystem.
    """
    pattern = WildcardPattern.from_path(Path(path))
    if pattern is None or not pattern.directory.is_dir():
        return []

    matches = [
        entry for entry in pattern.directory.iterdir()
        if entry.is_file() and pattern.matches(entry.name)
    ]
    return sorted(matches, key=lambda p: (p.name.casefold(), p.name))


def dedupe(paths: Iterable[Path]) -> List[Path]:
    """Drop repeated paths, keeping the first occurrence of each."""
    seen: Dict[str, Path] = {}
    for path in paths:
        # Resolved paths carry on-disk case; normcase also folds on Windows
        seen.setdefault(os.path.normcase(str(path)), path)
    return list(seen.values())


def parse_references(src_path: Path, encoding: str = DEFAULT_ENCODING) -> List[ScriptReference]:
    """
    Read an include file into references, in line order.

    Comments and blank lines are skipped; lines with an extension other
    than .d or .src are ignored.
    """
    src_path = Path(src_path)
    base_directory = src_path.parent
    lines = read_lines(src_path, encoding)

    references = []
    for line_number, raw in enumerate(lines, start=1):
        line = remove_comments(raw)
        if not line:
            continue
        path = resolve_ci(base_directory, line)
        kind = ReferenceKind.for_path(path)
        if kind is None:
            logger.debug(f"Ignoring {src_path.name}:{line_number}: {line}")
            continue
        references.append(ScriptReference(
            path=path,
            kind=kind,
            line=raw.strip(),
            line_number=line_number,
        ))
    return references


class SrcFile:
    """
    A root include file.

    Usage:
        scripts = SrcFile(work_data / "Scripts" / "Content" / "Gothic.src").get_scripts()
    """

    def __init__(self, src_path: Path, encoding: str = DEFAULT_ENCODING):
        self.src_path = Path(os.path.normpath(Path(src_path).absolute()))
        self.encoding = encoding

    def get_scripts(self) -> List[Path]:
        """
        Resolve the include tree into a flat, duplicate-free script list.

        Raises:
            MissingReferenceError: a direct reference does not exist or a
                wildcard matches nothing.
            IncludeCycleError: an include file includes one of its ancestors.
            OSError: an include file cannot be read.
        """
        scripts = dedupe(self._collect(self.src_path, []))
        logger.debug(f"Resolved {len(scripts)} scripts from {self.src_path}")
        return scripts

    def _collect(self, src_path: Path, ancestors: List[Path]) -> List[Path]:
        if src_path in ancestors:
            chain = ancestors[ancestors.index(src_path):] + [src_path]
            raise IncludeCycleError(chain)

        chain = ancestors + [src_path]
        collected: List[Path] = []

        for ref in parse_references(src_path, self.encoding):
            if ref.kind is ReferenceKind.INCLUDE:
                if not ref.path.is_file():
                    raise MissingReferenceError(ref.line, ref.line_number, src_path)
                collected.extend(self._collect(ref.path, chain))
            elif ref.is_wildcard:
                matches = expand_wildcard(ref.path)
                if not matches:
                    raise MissingReferenceError(ref.line, ref.line_number, src_path)
                collected.extend(matches)
            elif ref.path.is_file():
                collected.append(ref.path)
            else:
                raise MissingReferenceError(ref.line, ref.line_number, src_path)

        return collected


def resolve_scripts(src_path: Path, encoding: str = DEFAULT_ENCODING) -> List[Path]:
    """Convenience wrapper around SrcFile(src_path).get_scripts()."""
    return SrcFile(src_path, encoding).get_scripts()

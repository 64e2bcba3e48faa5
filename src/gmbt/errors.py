"""
gmbt error taxonomy.

Every fatal condition is a GmbtError carrying a message key and named
parameters. The CLI is the reporting boundary: it renders the message
through gmbt.messages and terminates the run. Nothing in gmbt retries.
"""

from pathlib import Path
from typing import List, Sequence

from gmbt.messages import translate


class GmbtError(Exception):
    """Base class for fatal gmbt errors."""

    key = "Unknown.Error.Fatal"

    def __init__(self, **params):
        self.params = params
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return translate(self.key, **self.params)


class ConfigError(GmbtError):
    """Configuration file is invalid or incomplete."""

    def __init__(self, key: str, /, **params):
        self.key = key
        super().__init__(**params)


class MissingReferenceError(GmbtError):
    """A reference in an include file resolves to zero files."""

    key = "SrcFile.Error.MatchingFilesNotFound"

    def __init__(self, line: str, line_number: int, src: Path):
        self.line = line
        self.line_number = line_number
        self.src = Path(src)
        super().__init__(line=line, line_number=line_number, src=self.src)


class IncludeCycleError(GmbtError):
    """An include file includes itself, directly or transitively."""

    key = "SrcFile.Error.IncludeCycle"

    def __init__(self, chain: Sequence[Path]):
        self.chain = [Path(p) for p in chain]
        super().__init__(chain=" -> ".join(str(p) for p in self.chain))


class RequiredAssetMissingError(GmbtError):
    """A mandatory content archive shipped with the game is absent."""

    key = "Test.Error.RequireReinstall"

    def __init__(self, name: str):
        self.name = name
        super().__init__(name=name)


class WorldNotFoundError(GmbtError):
    """The requested world exists in none of the candidate sources."""

    key = "Test.Error.WorldNotFound"

    def __init__(self, world: str):
        self.world = world
        super().__init__(world=world)


class HookFailure(GmbtError):
    """A configured hook command exited unsuccessfully."""

    key = "Hooks.Error.Failed"

    def __init__(self, command: str, status: int):
        self.command = command
        self.status = status
        super().__init__(command=command, status=status)


class ProcessTimeoutError(GmbtError):
    """The engine process exceeded the configured timeout."""

    key = "Gothic.Error.Timeout"

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(seconds=seconds)


class GothicNotFoundError(GmbtError):
    key = "Gothic.Error.ExecutableNotFound"

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(path=self.path)


class ArchiveFormatError(GmbtError):
    """File is not a readable VDFS archive."""

    def __init__(self, key: str, path: Path):
        self.key = key
        self.path = Path(path)
        super().__init__(path=self.path)


class ArchiveRestoreError(GmbtError):
    """One or more disabled archives could not be renamed back."""

    key = "Vdfs.Error.RestoreFailed"

    def __init__(self, paths: List[Path]):
        self.paths = [Path(p) for p in paths]
        super().__init__(paths=", ".join(str(p) for p in self.paths))

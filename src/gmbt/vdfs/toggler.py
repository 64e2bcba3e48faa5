"""
Archive Toggler - hides animation archives from the engine.

Gothic only rebuilds compiled animation data when it cannot find the
packed version. Before a full test every archive in ``Data/`` that holds
an ``ANIMS`` group is renamed to ``*.disabled``; afterwards they are all
renamed back.

Every disabled archive is recorded twice: in the session's in-memory list
and in a JSON journal next to the archives. The journal entry is written
before the rename and removed only after the archive is restored, so a
crash in between leaves enough on disk for ``gmbt restore``.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, List, Optional

from gmbt.errors import ArchiveRestoreError
from gmbt.vdfs.reader import ArchiveEntry, read_entries

logger = logging.getLogger(__name__)

ANIMS_GROUP = "ANIMS"
ARCHIVE_EXTENSION = ".vdf"
DISABLED_EXTENSION = ".disabled"
JOURNAL_NAME = ".gmbt_disabled.json"

EntryReader = Callable[[Path], List[ArchiveEntry]]


@dataclass(frozen=True)
class DisabledArchive:
    """An archive renamed out of the engine's sight."""
    original_path: Path
    disabled_path: Path

    def to_dict(self) -> dict:
        return {k: str(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict) -> "DisabledArchive":
        return cls(Path(data["original_path"]), Path(data["disabled_path"]))


class ArchiveJournal:
    """JSON record of archives that are currently disabled."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[DisabledArchive]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [DisabledArchive.from_dict(item) for item in json.load(f)]

    def add(self, archive: DisabledArchive) -> None:
        entries = self.load()
        if archive not in entries:
            entries.append(archive)
        self._save(entries)

    def remove(self, archive: DisabledArchive) -> None:
        self._save([entry for entry in self.load() if entry != archive])

    def _save(self, entries: List[DisabledArchive]) -> None:
        if not entries:
            if self.path.exists():
                self.path.unlink()
            return
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps([e.to_dict() for e in entries], indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)


def contains_anims(entries: List[ArchiveEntry]) -> bool:
    """True if an entry is named exactly ANIMS, ignoring case."""
    return any(entry.name.casefold() == ANIMS_GROUP.casefold() for entry in entries)


class ArchiveToggler:
    """
    Disables and re-enables the archives of one data directory.

    The caller owns the list of disabled archives; the toggler appends to
    it in disable() and drains it in enable().
    """

    def __init__(
        self,
        data_dir: Path,
        reader: EntryReader = read_entries,
        journal: Optional[ArchiveJournal] = None,
    ):
        self.data_dir = Path(data_dir)
        self.reader = reader
        self.journal = journal or ArchiveJournal(self.data_dir / JOURNAL_NAME)

    def archives(self) -> List[Path]:
        """Every .vdf archive directly inside the data directory, sorted."""
        if not self.data_dir.is_dir():
            return []
        return sorted(
            p for p in self.data_dir.iterdir()
            if p.is_file() and p.suffix.lower() == ARCHIVE_EXTENSION
        )

    def disable(self, disabled: List[DisabledArchive]) -> List[DisabledArchive]:
        """
        Rename every archive holding an ANIMS group to .disabled.

        Returns the archives disabled by this call; they are also appended
        to disabled. Read and rename failures propagate, with everything
        renamed so far already recorded.
        """
        newly_disabled = []
        for archive in self.archives():
            if not contains_anims(self.reader(archive)):
                continue

            record = DisabledArchive(archive, archive.with_suffix(DISABLED_EXTENSION))
            self.journal.add(record)
            try:
                os.rename(record.original_path, record.disabled_path)
            except OSError:
                self.journal.remove(record)
                raise
            disabled.append(record)
            newly_disabled.append(record)
            logger.info(f"Disabled {archive.name}")

        return newly_disabled

    def enable(self, disabled: List[DisabledArchive]) -> None:
        """
        Rename every recorded archive back to its original name.

        The list is always fully drained. Archives that could not be
        renamed stay in the journal and are reported together in one
        ArchiveRestoreError afterwards.
        """
        failed: List[Path] = []

        while disabled:
            record = disabled.pop(0)
            if self._restore(record):
                self.journal.remove(record)
            else:
                failed.append(record.disabled_path)

        if failed:
            raise ArchiveRestoreError(failed)

    def restore_journal(self) -> List[DisabledArchive]:
        """Re-enable whatever the journal still lists. Returns those entries."""
        pending = self.journal.load()
        if pending:
            self.enable(list(pending))
        return pending

    def _restore(self, record: DisabledArchive) -> bool:
        if not record.disabled_path.exists() and record.original_path.exists():
            logger.debug(f"{record.original_path.name} is already enabled")
            return True
        try:
            os.rename(record.disabled_path, record.original_path)
        except OSError as e:
            logger.error(f"Could not restore {record.disabled_path}: {e}")
            return False
        logger.info(f"Enabled {record.original_path.name}")
        return True

"""
gmbt.vdfs - VDFS archive catalog reading and archive toggling.
"""

from gmbt.vdfs.reader import ArchiveEntry, ArchiveHeader, read_entries
from gmbt.vdfs.toggler import (
    ANIMS_GROUP,
    ArchiveJournal,
    ArchiveToggler,
    DisabledArchive,
    contains_anims,
)

__all__ = [
    "ArchiveEntry",
    "ArchiveHeader",
    "read_entries",
    "ANIMS_GROUP",
    "ArchiveJournal",
    "ArchiveToggler",
    "DisabledArchive",
    "contains_anims",
]

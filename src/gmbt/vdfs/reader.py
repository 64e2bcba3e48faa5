"""
VDFS archive catalog reader.

Only the catalog is read; file contents are never touched. Layout of a
Gothic VDFS v2 archive (all integers little-endian u32):

    0x000  comment        256 bytes, padded with 0x1A
    0x100  signature       16 bytes, "PSVDSC_V2.00\\r\\n\\r\\n" or "PSVDSC_V2.00\\n\\r\\n\\r"
    0x110  entry_count
    0x114  file_count
    0x118  timestamp       DOS date/time
    0x11C  data_size
    0x120  catalog_offset
    0x124  entry_size      always 80
    0x128  catalog: entry_count entries of
           name 64 bytes (space padded), offset, size, type, attributes

The type field carries ENTRY_DIRECTORY for directory groups and
ENTRY_LAST on the last entry of each directory level.
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List

from gmbt.errors import ArchiveFormatError

SIGNATURES = (
    b"PSVDSC_V2.00\r\n\r\n",
    b"PSVDSC_V2.00\n\r\n\r",
)

COMMENT_SIZE = 256
SIGNATURE_SIZE = 16
HEADER = struct.Struct("<6I")
HEADER_SIZE = COMMENT_SIZE + SIGNATURE_SIZE + HEADER.size  # 296
ENTRY = struct.Struct("<64s4I")

ENTRY_DIRECTORY = 0x80000000
ENTRY_LAST = 0x40000000


@dataclass(frozen=True)
class ArchiveEntry:
    """One catalog entry. Read-only."""
    name: str
    is_directory: bool
    offset: int
    size: int
    is_last: bool = False


@dataclass(frozen=True)
class ArchiveHeader:
    comment: str
    entry_count: int
    file_count: int
    timestamp: int
    data_size: int
    catalog_offset: int
    entry_size: int


def _read_header(data: bytes, path: Path) -> ArchiveHeader:
    if len(data) < HEADER_SIZE:
        raise ArchiveFormatError("Vdfs.Error.Truncated", path)

    signature = data[COMMENT_SIZE:COMMENT_SIZE + SIGNATURE_SIZE]
    if signature not in SIGNATURES:
        raise ArchiveFormatError("Vdfs.Error.BadSignature", path)

    comment = data[:COMMENT_SIZE].split(b"\x1a", 1)[0].rstrip(b"\x00")
    fields = HEADER.unpack_from(data, COMMENT_SIZE + SIGNATURE_SIZE)
    return ArchiveHeader(comment.decode("latin-1"), *fields)


def read_entries(path: Path) -> List[ArchiveEntry]:
    """
    Read the catalog of a VDFS archive in on-disk order.

    Raises:
        ArchiveFormatError: bad signature or truncated catalog.
        OSError: the file cannot be opened.
    """
    path = Path(path)
    with open(path, "rb") as f:
        header = _read_header(f.read(HEADER_SIZE), path)
        entry_size = header.entry_size or ENTRY.size
        f.seek(header.catalog_offset)
        catalog = f.read(header.entry_count * entry_size)

    if len(catalog) < header.entry_count * entry_size:
        raise ArchiveFormatError("Vdfs.Error.Truncated", path)

    entries = []
    for index in range(header.entry_count):
        raw_name, offset, size, entry_type, _attributes = ENTRY.unpack_from(catalog, index * entry_size)
        name = raw_name.split(b"\x00", 1)[0].decode("latin-1").rstrip(" ")
        entries.append(ArchiveEntry(
            name=name,
            is_directory=bool(entry_type & ENTRY_DIRECTORY),
            offset=offset,
            size=size,
            is_last=bool(entry_type & ENTRY_LAST),
        ))
    return entries

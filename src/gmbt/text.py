"""
Text preprocessing for Daedalus script lists.
"""

import codecs
import re
from pathlib import Path
from typing import List

# Block comments are only recognised when they open and close on the same line.
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/")


def remove_comments(line: str) -> str:
    """Strip /* ... */ blocks and a trailing // comment from one line."""
    line = _BLOCK_COMMENT.sub("", line)
    index = line.find("//")
    if index != -1:
        line = line[:index]
    return line.strip()


def read_lines(path: Path, encoding: str, errors: str = "strict") -> List[str]:
    """
    Read a text file into lines.

    A UTF-8 byte order mark overrides encoding and is not part of the
    first line.
    """
    data = Path(path).read_bytes()
    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors).splitlines()
    return data.decode(encoding, errors).splitlines()

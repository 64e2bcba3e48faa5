"""
gmbt.scripts - Daedalus script list resolution.
"""

from gmbt.scripts.src_file import (
    ReferenceKind,
    ScriptReference,
    WildcardPattern,
    SrcFile,
    dedupe,
    expand_wildcard,
    parse_references,
    resolve_scripts,
)

__all__ = [
    "ReferenceKind",
    "ScriptReference",
    "WildcardPattern",
    "SrcFile",
    "dedupe",
    "expand_wildcard",
    "parse_references",
    "resolve_scripts",
]

"""
Message Registry - user-facing strings keyed by stable message keys.

Keys are stable identifiers; the wording may evolve but a key must never
change meaning. Fatal errors carry a key plus named parameters and are
rendered through this registry at the reporting boundary.

Key Format: Area.Kind.Name
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Message:
    """Definition of a message in the registry."""
    key: str
    template: str
    required_params: tuple[str, ...] = ()

    def format(self, **params) -> str:
        """Format the template with provided parameters."""
        try:
            return self.template.format(**params)
        except KeyError:
            return self.template


# =============================================================================
# Registry Definition
# =============================================================================

_MESSAGE_LIST: List[Message] = [
    # Configuration
    Message(
        key="Config.Error.FileDidNotFound",
        template="File does not exist: {path}",
        required_params=("path",),
    ),
    Message(
        key="Config.Error.Invalid",
        template="Invalid configuration in {path}: {reason}",
        required_params=("path", "reason"),
    ),
    Message(
        key="Config.Error.RequiredKey",
        template="Required configuration key is missing: {key}",
        required_params=("key",),
    ),

    # Script lists
    Message(
        key="SrcFile.Error.MatchingFilesNotFound",
        template="No files match reference \"{line}\" ({src}, line {line_number})",
        required_params=("line", "line_number", "src"),
    ),
    Message(
        key="SrcFile.Error.IncludeCycle",
        template="Include cycle detected: {chain}",
        required_params=("chain",),
    ),

    # Test session
    Message(
        key="Test.Error.RequireReinstall",
        template="Required file {name} is missing. Reinstall the game.",
        required_params=("name",),
    ),
    Message(
        key="Test.Error.WorldNotFound",
        template="World does not exist: {world}",
        required_params=("world",),
    ),

    # Hooks
    Message(
        key="Hooks.Error.Failed",
        template="Hook \"{command}\" failed with exit status {status}",
        required_params=("command", "status"),
    ),

    # Engine process
    Message(
        key="Gothic.Error.Timeout",
        template="Gothic did not exit within {seconds} seconds and was terminated",
        required_params=("seconds",),
    ),
    Message(
        key="Gothic.Error.ExecutableNotFound",
        template="Gothic executable does not exist: {path}",
        required_params=("path",),
    ),

    # Archives
    Message(
        key="Vdfs.Error.BadSignature",
        template="Not a VDFS archive: {path}",
        required_params=("path",),
    ),
    Message(
        key="Vdfs.Error.Truncated",
        template="VDFS archive is truncated: {path}",
        required_params=("path",),
    ),
    Message(
        key="Vdfs.Error.RestoreFailed",
        template="Could not restore disabled archives: {paths}. Run 'gmbt restore' to retry.",
        required_params=("paths",),
    ),
]


REGISTRY: Dict[str, Message] = {}


def _build_registry() -> None:
    """Build the registry dict from the list, validating uniqueness."""
    for entry in _MESSAGE_LIST:
        if entry.key in REGISTRY:
            raise ValueError(f"Duplicate message key in registry: {entry.key}")
        if len(entry.key.split(".")) != 3:
            raise ValueError(f"Invalid message key: {entry.key} (expected Area.Kind.Name)")
        REGISTRY[entry.key] = entry


def get_entry(key: str) -> Optional[Message]:
    """Get a message definition, or None if not found."""
    return REGISTRY.get(key)


def translate(key: str, /, **params) -> str:
    """Get the formatted message for a key."""
    entry = get_entry(key)
    if entry is None:
        return f"Unknown message: {key}"
    return entry.format(**params)


# Build registry on import
_build_registry()

"""
Lifecycle hooks.

Hooks are shell commands configured per scope, stage and event:

    hooks:
      common:
        pre:
          assets_merge:
            - python tools/pack_textures.py
      full_test:
        post:
          subtitles_update:
            - git diff --stat

Commands run from the project directory, in configured order. A command
exiting with a non-zero status aborts the run with HookFailure.
"""

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from gmbt.errors import ConfigError, HookFailure

logger = logging.getLogger(__name__)


class HookMode(Enum):
    """Scope a hook is registered for."""
    COMMON = "common"
    TEST = "test"
    FULL_TEST = "full_test"
    QUICK_TEST = "quick_test"


class HookType(Enum):
    PRE = "pre"
    POST = "post"


class HookEvent(Enum):
    ASSETS_MERGE = "assets_merge"
    SUBTITLES_UPDATE = "subtitles_update"


class HooksManager:
    """Runs the hook commands registered in the configuration."""

    def __init__(self, hooks: Optional[Dict[str, Any]] = None, cwd: Optional[Path] = None):
        self.cwd = Path(cwd) if cwd else None
        self._hooks = self._parse(hooks or {})

    @staticmethod
    def _parse(hooks: Dict[str, Any]) -> Dict[tuple, List[str]]:
        """Validate the raw config mapping into (mode, type, event) -> commands."""
        parsed: Dict[tuple, List[str]] = {}
        for mode_key, stages in hooks.items():
            try:
                mode = HookMode(mode_key)
                for type_key, events in (stages or {}).items():
                    hook_type = HookType(type_key)
                    for event_key, commands in (events or {}).items():
                        event = HookEvent(event_key)
                        if isinstance(commands, str):
                            commands = [commands]
                        parsed[(mode, hook_type, event)] = [str(c) for c in commands or []]
            except (ValueError, AttributeError) as e:
                raise ConfigError("Config.Error.Invalid", path="hooks", reason=e) from e
        return parsed

    def get_hooks(self, mode: HookMode, hook_type: HookType, event: HookEvent) -> List[str]:
        return list(self._hooks.get((mode, hook_type, event), []))

    def run_hooks(self, mode: HookMode, hook_type: HookType, event: HookEvent) -> None:
        """
        Run every command registered for (mode, hook_type, event).

        Raises:
            HookFailure: a command exited with a non-zero status.
        """
        for command in self.get_hooks(mode, hook_type, event):
            logger.info(f"Hook [{mode.value}/{hook_type.value}/{event.value}]: {command}")
            result = subprocess.run(command, shell=True, cwd=self.cwd)
            if result.returncode != 0:
                raise HookFailure(command, result.returncode)

"""
Gothic engine process control.

Knows the layout of a game installation, builds engine command lines and
supervises one running engine process at a time.

Usage:
    gothic = Gothic(config)
    process = gothic.start(arguments)
    outcome = process.wait(timeout=3600, cancel=cancel_event)
"""

import logging
import subprocess
import threading
import time
from enum import Enum, auto
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import psutil

from gmbt.config import GmbtConfig
from gmbt.errors import GothicNotFoundError, ProcessTimeoutError
from gmbt.paths import find_ci, resolve_ci

logger = logging.getLogger(__name__)

# How often the wait loop checks for cancellation and the deadline
POLL_INTERVAL = 0.1

EXECUTABLES = {
    "gothic1": "GothicMod.exe",
    "gothic2": "Gothic2.exe",
}


class GameVersion(Enum):
    GOTHIC1 = "gothic1"
    GOTHIC2 = "gothic2"


class GameDirectory(Enum):
    """Well-known directories of an installation, relative to its root."""
    DATA = "Data"
    SYSTEM = "System"
    WORK_DATA = "_Work/Data"
    SCRIPTS = "_Work/Data/Scripts"
    SCRIPTS_CONTENT = "_Work/Data/Scripts/Content"
    SCRIPTS_COMPILED = "_Work/Data/Scripts/_compiled"
    CUTSCENE = "_Work/Data/Scripts/Content/CUTSCENE"
    WORLDS = "_Work/Data/Worlds"


class ProcessOutcome(Enum):
    EXITED = auto()
    CANCELLED = auto()


class GothicArguments:
    """
    Ordered, name-unique engine parameters.

    Rendered as ``-name`` or ``-name:value``. Adding a name that is already
    present replaces its value and keeps its original position.
    """

    def __init__(self):
        self._params: Dict[str, Optional[str]] = {}

    def add(self, name: str, value: Optional[str] = None) -> "GothicArguments":
        self._params[name] = None if value is None else str(value)
        return self

    def get(self, name: str) -> Optional[str]:
        return self._params.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[Tuple[str, Optional[str]]]:
        return iter(self._params.items())

    def __len__(self) -> int:
        return len(self._params)

    def names(self) -> List[str]:
        return list(self._params)

    def to_list(self) -> List[str]:
        return [f"-{name}" if value is None else f"-{name}:{value}" for name, value in self]

    def __str__(self) -> str:
        return " ".join(self.to_list())


class GothicProcess:
    """Handle for one running engine process."""

    def __init__(self, popen: subprocess.Popen):
        self.popen = popen
        self.pid = popen.pid
        self._terminated = threading.Event()

    @property
    def returncode(self) -> Optional[int]:
        return self.popen.returncode

    @property
    def was_terminated(self) -> bool:
        return self._terminated.is_set()

    def is_running(self) -> bool:
        return self.popen.poll() is None

    def wait(self, timeout: Optional[float] = None, cancel: Optional[threading.Event] = None) -> ProcessOutcome:
        """
        Block until the process exits.

        If cancel is set while the process runs, the process tree is killed
        and CANCELLED is returned. A process that exits on its own before the
        cancel is noticed counts as EXITED.

        Raises:
            ProcessTimeoutError: still running after timeout seconds; the
                process tree has been killed.
        """
        deadline = time.monotonic() + timeout if timeout else None

        while True:
            try:
                self.popen.wait(timeout=POLL_INTERVAL)
                return ProcessOutcome.EXITED
            except subprocess.TimeoutExpired:
                pass

            if cancel is not None and cancel.is_set():
                logger.info(f"Terminating Gothic (pid={self.pid})")
                self.terminate()
                return ProcessOutcome.CANCELLED

            if deadline is not None and time.monotonic() >= deadline:
                logger.error(f"Gothic (pid={self.pid}) exceeded {timeout}s")
                self.terminate()
                raise ProcessTimeoutError(timeout)

    def terminate(self) -> None:
        """Kill the process and all of its children, then reap it."""
        self._terminated.set()
        try:
            parent = psutil.Process(self.pid)
            children = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            children = []
        except psutil.Error as e:
            logger.warning(f"Cannot list children of Gothic (pid={self.pid}): {e}")
            children = []

        for proc in children:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                continue
            except psutil.Error as e:
                logger.warning(f"Cannot kill pid {proc.pid}: {e}")

        if self.popen.poll() is None:
            self.popen.kill()
        self.popen.wait()


class Gothic:
    """A game installation."""

    def __init__(self, config: GmbtConfig):
        self.config = config
        self.root = config.gothic_path
        self.version = GameVersion(config.gothic_version)

    def get_game_directory(self, directory: GameDirectory) -> Path:
        """Absolute path of a well-known directory, matching on-disk case."""
        return resolve_ci(self.root, directory.value)

    def get_executable(self) -> Path:
        system = self.get_game_directory(GameDirectory.SYSTEM)
        name = EXECUTABLES[self.version.value]
        return find_ci(system, name) or system / name

    def compiled_file_exists(self, name: str) -> bool:
        """True if _compiled/name exists, ignoring case."""
        return find_ci(self.get_game_directory(GameDirectory.SCRIPTS_COMPILED), name) is not None

    def build_command(self, arguments: GothicArguments) -> List[str]:
        return [*self.config.launcher, str(self.get_executable()), *arguments.to_list()]

    def start(self, arguments: GothicArguments) -> GothicProcess:
        """Launch the engine. The caller must wait() on the returned handle."""
        executable = self.get_executable()
        if not executable.exists():
            raise GothicNotFoundError(executable)

        command = self.build_command(arguments)
        logger.info(f"Starting Gothic: {arguments}")
        popen = subprocess.Popen(command, cwd=str(executable.parent))
        return GothicProcess(popen)

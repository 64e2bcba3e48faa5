"""
Pytest configuration and shared fixtures.
"""

import struct
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gmbt.config import GmbtConfig
from gmbt.errors import HookFailure
from gmbt.gothic import Gothic, GothicArguments, GothicProcess
from gmbt.hooks import HookEvent, HookMode, HooksManager, HookType
from gmbt.vdfs.reader import ENTRY_DIRECTORY, ENTRY_LAST


# =============================================================================
# ARCHIVE HELPERS
# =============================================================================

def write_vdf(path: Path, entries: Sequence[Tuple[str, bool]], comment: bytes = b"gmbt test archive") -> Path:
    """Write a catalog-only VDFS archive. entries are (name, is_directory)."""
    catalog = b""
    for index, (name, is_directory) in enumerate(entries):
        entry_type = ENTRY_DIRECTORY if is_directory else 0
        if index == len(entries) - 1:
            entry_type |= ENTRY_LAST
        catalog += struct.pack("<64s4I", name.encode("latin-1").ljust(64, b" "), 0, 0, entry_type, 0)

    file_count = sum(1 for _, is_directory in entries if not is_directory)
    header = (
        comment.ljust(256, b"\x1a")
        + b"PSVDSC_V2.00\r\n\r\n"
        + struct.pack("<6I", len(entries), file_count, 0, 0, 296, 80)
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(header + catalog)
    return path


# =============================================================================
# GAME TREE FIXTURES
# =============================================================================

@pytest.fixture
def game_dir(tmp_path):
    """A minimal Gothic 2 installation."""
    root = tmp_path / "Gothic II"
    data = root / "Data"
    write_vdf(data / "Worlds.vdf", [("WORLDS", True), ("NEWWORLD.ZEN", False), ("OLDWORLD.ZEN", False)])
    write_vdf(data / "Worlds_Addon.vdf", [("WORLDS", True), ("ADDONWORLD.ZEN", False)])
    write_vdf(data / "Anims.vdf", [("_WORK", True), ("ANIMS", True), ("HUMANS.MDS", False)])
    write_vdf(data / "Textures.vdf", [("_WORK", True), ("TEXTURES", True), ("STONE.TGA", False)])

    system = root / "System"
    system.mkdir(parents=True)
    (system / "Gothic2.exe").write_bytes(b"")

    (root / "_Work" / "Data" / "Scripts" / "_compiled").mkdir(parents=True)
    (root / "_Work" / "Data" / "Scripts" / "Content" / "CUTSCENE").mkdir(parents=True)
    return root


@pytest.fixture
def asset_dir(tmp_path):
    """A mod asset directory shipping one world."""
    assets = tmp_path / "mod"
    worlds = assets / "Worlds" / "Sub"
    worlds.mkdir(parents=True)
    (worlds / "MyWorld.zen").write_text("world")
    return assets


@pytest.fixture
def config_data(game_dir, asset_dir, tmp_path) -> Dict:
    return {
        "gothic_path": str(game_dir),
        "gothic_version": "gothic2",
        "mod_files": {
            "assets": [str(asset_dir)],
            "default_world": "NEWWORLD.ZEN",
        },
        "process_timeout_seconds": 30,
        "log_dir": str(tmp_path / "logs"),
    }


@pytest.fixture
def config(config_data) -> GmbtConfig:
    return GmbtConfig(data=config_data)


# =============================================================================
# COLLABORATOR DOUBLES
# =============================================================================

class CountingProcess(GothicProcess):
    """GothicProcess that counts terminate() calls."""

    def __init__(self, popen: subprocess.Popen):
        super().__init__(popen)
        self.terminate_count = 0

    def terminate(self) -> None:
        self.terminate_count += 1
        super().terminate()


class ScriptedGothic(Gothic):
    """
    Gothic whose engine is a short Python program.

    programs[i] is the Python source run for the i-th launch (default: exit
    immediately). on_start, if set, is called with the launch index right
    after each process starts.
    """

    def __init__(self, config: GmbtConfig, programs: Optional[List[str]] = None):
        super().__init__(config)
        self.programs = programs or []
        self.launches: List[GothicArguments] = []
        self.processes: List[CountingProcess] = []
        self.on_start: Optional[Callable[[int], None]] = None

    def start(self, arguments: GothicArguments) -> CountingProcess:
        index = len(self.launches)
        self.launches.append(arguments)
        program = self.programs[index] if index < len(self.programs) else "pass"
        process = CountingProcess(subprocess.Popen([sys.executable, "-c", program]))
        self.processes.append(process)
        if self.on_start is not None:
            self.on_start(index)
        return process


class RecordingHooks(HooksManager):
    """Records dispatched hooks instead of running commands."""

    def __init__(self, fail_on: Optional[Tuple[HookMode, HookType, HookEvent]] = None):
        super().__init__({})
        self.calls: List[Tuple[HookMode, HookType, HookEvent]] = []
        self.fail_on = fail_on

    def run_hooks(self, mode: HookMode, hook_type: HookType, event: HookEvent) -> None:
        self.calls.append((mode, hook_type, event))
        if self.fail_on == (mode, hook_type, event):
            raise HookFailure("failing-hook", 1)


class FakeWatcher:
    """Stands in for CompilingAssetsWatcher without touching the filesystem."""

    def __init__(self):
        self.on_file_compile = None
        self.started = 0
        self.stopped = 0

    def start(self) -> None:
        self.started += 1

    def stop(self) -> None:
        self.stopped += 1


class RecordingMerger:
    def __init__(self):
        self.options = []

    def merge(self, option):
        self.options.append(option)
        return []


class RecordingSubtitles:
    def __init__(self):
        self.updates = 0

    def update(self):
        self.updates += 1


@pytest.fixture
def hooks():
    return RecordingHooks()


@pytest.fixture
def watcher():
    return FakeWatcher()

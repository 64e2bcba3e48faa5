"""
Test Session

Runs a mod in the game:

1. Validate that the selected world exists
2. Merge assets (optional), with assets_merge hooks
3. Update subtitles (optional), with subtitles_update hooks
4. Full mode: disable archives holding ANIMS
5. First engine pass
6. Full mode: enable archives, second engine pass

A quick test launches the engine once, straight into the world. A full
test first makes the engine convert every asset: with the animation
archives hidden it rebuilds all compiled data, and as soon as it writes
MENU.DAT the conversion is done and the process is killed. The second pass
then starts the world normally.

Threading:
    The watchdog observer thread calls on_file_compile(). It only flips
    SessionState flags under a lock and sets the cancel event; the main
    thread, which owns the process handle, does the killing.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from gmbt.config import GmbtConfig
from gmbt.errors import (
    ArchiveRestoreError,
    RequiredAssetMissingError,
    WorldNotFoundError,
)
from gmbt.gothic import GameDirectory, GameVersion, Gothic, GothicArguments, ProcessOutcome
from gmbt.hooks import HookEvent, HookMode, HooksManager, HookType
from gmbt.merge import AssetsMerger, MergeOptions
from gmbt.output_units import OutputUnitsUpdater
from gmbt.paths import find_ci, resolve_ci
from gmbt.session_log import SessionLogger
from gmbt.vdfs.reader import ArchiveEntry, read_entries
from gmbt.vdfs.toggler import ArchiveToggler, DisabledArchive
from gmbt.watcher import CompilingAssetsWatcher

logger = logging.getLogger(__name__)

MENU_DAT = "MENU.DAT"
MUSIC_DAT = "MUSIC.DAT"
SFX_DAT = "SFX.DAT"
GOTHIC_SRC = "Gothic.src"

WORLDS_VDF = "Worlds.vdf"
WORLDS_ADDON_VDF = "Worlds_Addon.vdf"
WORLD_EXTENSION = ".zen"

# Engine parameters that make a pass convert every asset instead of playing
BULK_CONVERSION = (
    ("3d", "none"),
    ("zconvertall", None),
    ("ztexconvert", None),
    ("nomenu", None),
    ("zautoconvertdata", None),
)


class TestMode(Enum):
    QUICK = "quick"
    FULL = "full"


# Hook scopes dispatched for every lifecycle event, in order
HOOK_SCOPES: Dict[TestMode, Tuple[HookMode, ...]] = {
    TestMode.QUICK: (HookMode.COMMON, HookMode.TEST, HookMode.QUICK_TEST),
    TestMode.FULL: (HookMode.COMMON, HookMode.TEST, HookMode.FULL_TEST),
}


@dataclass
class TestOptions:
    """Command line choices for one test run."""
    __test__ = False

    world: Optional[str] = None
    merge: MergeOptions = MergeOptions.NONE
    windowed: bool = False
    in_game_time: Optional[str] = None
    dev_mode: bool = False
    no_audio: bool = False
    no_menu: bool = False
    no_update_subtitles: bool = False


class SessionState:
    """
    Mutable state of one session.

    assets_compiled and the cancel decision are shared with the watcher
    thread and only change under the lock. disabled_archives is touched by
    the main thread only.
    """

    def __init__(self, mode: TestMode):
        self.mode = mode
        self.disabled_archives: List[DisabledArchive] = []
        self.compile_cancel = threading.Event()
        self.cancelled_by: Optional[Path] = None
        self._lock = threading.Lock()
        self._assets_compiled = False

    @property
    def assets_compiled(self) -> bool:
        with self._lock:
            return self._assets_compiled

    def mark_assets_compiled(self) -> None:
        with self._lock:
            self._assets_compiled = True

    def request_compile_cancel(self, path: Path) -> bool:
        """
        Ask the main thread to stop the first pass.

        Only honoured once, in full mode, before assets are compiled.
        Returns True if this call raised the cancel event.
        """
        with self._lock:
            if self.mode is not TestMode.FULL or self._assets_compiled:
                return False
            if self.compile_cancel.is_set():
                return False
            self.cancelled_by = path
            self.compile_cancel.set()
            return True


class TestSession:
    """Orchestrates one quick or full test."""
    __test__ = False

    def __init__(
        self,
        config: GmbtConfig,
        mode: TestMode,
        options: Optional[TestOptions] = None,
        gothic: Optional[Gothic] = None,
        hooks: Optional[HooksManager] = None,
        archive_reader: Callable[[Path], List[ArchiveEntry]] = read_entries,
        toggler: Optional[ArchiveToggler] = None,
        merger: Optional[AssetsMerger] = None,
        subtitles: Optional[OutputUnitsUpdater] = None,
        watcher: Optional[CompilingAssetsWatcher] = None,
        session_log: Optional[SessionLogger] = None,
    ):
        self.config = config
        self.options = options or TestOptions()
        self.gothic = gothic or Gothic(config)
        self.state = SessionState(mode)
        self.hook_scopes = HOOK_SCOPES[mode]
        self.hooks = hooks or HooksManager(config.hooks, config.project_dir)
        self.archive_reader = archive_reader

        data_dir = self.gothic.get_game_directory(GameDirectory.DATA)
        work_data = self.gothic.get_game_directory(GameDirectory.WORK_DATA)
        scripts_content = self.gothic.get_game_directory(GameDirectory.SCRIPTS_CONTENT)

        self.toggler = toggler or ArchiveToggler(data_dir, archive_reader)
        self.merger = merger or AssetsMerger(config.asset_dirs, work_data)
        self.subtitles = subtitles or OutputUnitsUpdater(
            resolve_ci(scripts_content, GOTHIC_SRC),
            self.gothic.get_game_directory(GameDirectory.CUTSCENE),
            config.script_encoding,
        )
        self.watcher = watcher or CompilingAssetsWatcher(work_data)
        self.watcher.on_file_compile = self.on_file_compile
        self.session_log = session_log or SessionLogger()

    @property
    def mode(self) -> TestMode:
        return self.state.mode

    @property
    def world(self) -> str:
        return self.options.world or self.config.default_world

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """
        Run the whole session.

        Raises:
            GmbtError: any fatal condition; the session stops at that stage.

        Disabled archives are re-enabled whatever the exception.
        """
        logger.info(f"Starting {self.mode.value} test of {self.world}")
        self.session_log.session_start(self.mode.value)
        try:
            self._run()
        except BaseException as e:
            self.session_log.session_error(e)
            raise
        self.session_log.session_complete()

    def _run(self) -> None:
        with self._stage("detect_world"):
            self.detect_world()

        merge = self.options.merge
        if merge is not MergeOptions.NONE:
            self.run_hooks(HookType.PRE, HookEvent.ASSETS_MERGE)
            with self._stage("assets_merge"):
                self.merger.merge(merge)
            self.run_hooks(HookType.POST, HookEvent.ASSETS_MERGE)

        if merge.merges_scripts and not self.options.no_update_subtitles:
            self.run_hooks(HookType.PRE, HookEvent.SUBTITLES_UPDATE)
            with self._stage("subtitles_update"):
                self.subtitles.update()
            self.run_hooks(HookType.POST, HookEvent.SUBTITLES_UPDATE)

        try:
            if self.mode is TestMode.FULL:
                self.disable_archives()

            self.watcher.start()
            self._first_pass()

            if self.mode is TestMode.FULL:
                self.enable_archives()
                self._second_pass()
        except BaseException:
            self._restore_archives_after_failure()
            raise
        finally:
            self.watcher.stop()

    @contextmanager
    def _stage(self, name: str) -> Iterator[None]:
        self.session_log.stage_start(name)
        yield
        self.session_log.stage_complete(name)

    def run_hooks(self, hook_type: HookType, event: HookEvent) -> None:
        """Dispatch one event to every scope of the active mode, in order."""
        for scope in self.hook_scopes:
            self.hooks.run_hooks(scope, hook_type, event)

    # =========================================================================
    # World validation
    # =========================================================================

    def list_worlds(self) -> List[str]:
        """
        Every world the engine could load: .ZEN entries of the world
        archives plus .zen files under each asset directory's Worlds folder.

        Raises:
            RequiredAssetMissingError: a world archive shipped with the game
                is missing.
        """
        data_dir = self.gothic.get_game_directory(GameDirectory.DATA)
        containers = [WORLDS_VDF]
        if self.gothic.version is GameVersion.GOTHIC2:
            containers.append(WORLDS_ADDON_VDF)

        worlds: List[str] = []
        for name in containers:
            archive = find_ci(data_dir, name)
            if archive is None:
                raise RequiredAssetMissingError(name)
            worlds.extend(
                entry.name for entry in self.archive_reader(archive)
                if entry.name.lower().endswith(WORLD_EXTENSION)
            )

        for asset_dir in self.config.asset_dirs:
            worlds_dir = find_ci(asset_dir, "Worlds")
            if worlds_dir is None or not worlds_dir.is_dir():
                continue
            worlds.extend(
                str(p) for p in sorted(worlds_dir.rglob("*"))
                if p.is_file() and p.suffix.lower() == WORLD_EXTENSION
            )

        return worlds

    def detect_world(self) -> None:
        """
        Raises:
            RequiredAssetMissingError: see list_worlds().
            WorldNotFoundError: the selected world is not among them.
        """
        world_name = _file_name(self.world).casefold()
        if not any(_file_name(w).casefold() == world_name for w in self.list_worlds()):
            raise WorldNotFoundError(self.world)

    # =========================================================================
    # Archives
    # =========================================================================

    def disable_archives(self) -> None:
        with self._stage("disable_archives"):
            for record in self.toggler.disable(self.state.disabled_archives):
                self.session_log.archive_disabled(record.original_path)

    def enable_archives(self) -> None:
        """Drain state.disabled_archives; raises ArchiveRestoreError on partial failure."""
        records = list(self.state.disabled_archives)
        with self._stage("enable_archives"):
            try:
                self.toggler.enable(self.state.disabled_archives)
            finally:
                for record in records:
                    if record.original_path.exists():
                        self.session_log.archive_enabled(record.original_path)

    def _restore_archives_after_failure(self) -> None:
        if not self.state.disabled_archives:
            return
        logger.warning("Test aborted, restoring disabled archives")
        try:
            self.enable_archives()
        except ArchiveRestoreError as e:
            logger.error(e.message)
        except OSError as e:
            logger.error(f"Could not update the archive journal: {e}")

    # =========================================================================
    # Engine passes
    # =========================================================================

    def on_file_compile(self, path: Path) -> None:
        """Watcher callback. Runs on the observer thread."""
        if Path(path).name.casefold() != MENU_DAT.casefold():
            return
        if self.state.request_compile_cancel(Path(path)):
            logger.info(f"{MENU_DAT} compiled, stopping asset conversion")

    def _first_pass(self) -> None:
        with self._stage("first_pass"):
            outcome = self._run_gothic(cancel=self.state.compile_cancel)
        self.state.mark_assets_compiled()
        if outcome is ProcessOutcome.CANCELLED:
            self.session_log.compile_cancelled(self.state.cancelled_by)

    def _second_pass(self) -> None:
        with self._stage("second_pass"):
            self._run_gothic(cancel=None)

    def _run_gothic(self, cancel: Optional[threading.Event]) -> ProcessOutcome:
        arguments = self.get_gothic_arguments()
        timeout = self.config.process_timeout
        process = self.gothic.start(arguments)
        self.session_log.process_start(process.pid, arguments.to_list())
        try:
            return process.wait(timeout=timeout, cancel=cancel)
        except BaseException:
            # Never leave the engine running behind an aborted session
            if process.is_running():
                process.popen.kill()
                process.popen.wait()
            raise
        finally:
            self.session_log.process_exit(process.pid, process.returncode)

    def get_gothic_arguments(self) -> GothicArguments:
        """Engine parameters for the next pass."""
        options = self.options
        converting = self.mode is TestMode.FULL and not self.state.assets_compiled

        arguments = GothicArguments()
        arguments.add("zreparse")

        if options.windowed or converting:
            arguments.add("zwindow")

        if options.in_game_time is not None:
            arguments.add("time", options.in_game_time)

        arguments.add("vdfs", "physicalfirst")

        if options.dev_mode:
            arguments.add("devmode")

        if converting:
            for name, value in BULK_CONVERSION:
                arguments.add(name, value)
        else:
            arguments.add("3d", self.world)

        if options.no_audio:
            if self.gothic.compiled_file_exists(MUSIC_DAT):
                arguments.add("znomusic")
            if self.gothic.compiled_file_exists(SFX_DAT):
                arguments.add("znosound")

        if options.no_menu:
            arguments.add("nomenu")

        return arguments


def _file_name(path: str) -> str:
    return Path(str(path).replace("\\", "/")).name

"""
Compiling assets watcher.

While the engine runs it rewrites compiled assets (``MENU.DAT``,
``GOTHIC.DAT``, converted textures and meshes) under ``_Work/Data``.
The watcher reports every such write through a callback.

The callback runs on the watchdog observer thread. It must return quickly
and must not touch the engine process or the filesystem.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

FileCompileCallback = Callable[[Path], None]


class _CompileEventHandler(FileSystemEventHandler):
    """Forwards file writes to the callback."""

    def __init__(self, on_file_compile: FileCompileCallback):
        super().__init__()
        self.on_file_compile = on_file_compile

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(event.dest_path)

    def _dispatch(self, path) -> None:
        if isinstance(path, bytes):
            path = path.decode()
        path = Path(path)
        logger.debug(f"Compiled: {path.name}")
        self.on_file_compile(path)


class CompilingAssetsWatcher:
    """Watches a directory tree for compiled asset writes."""

    def __init__(self, directory: Path, on_file_compile: Optional[FileCompileCallback] = None):
        self.directory = Path(directory)
        self.on_file_compile = on_file_compile
        self._observer: Optional[Observer] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def _callback(self, path: Path) -> None:
        if self.on_file_compile is not None:
            self.on_file_compile(path)

    def start(self) -> None:
        if self._observer is not None:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        observer = Observer()
        observer.schedule(_CompileEventHandler(self._callback), str(self.directory), recursive=True)
        observer.start()
        self._observer = observer
        logger.debug(f"Watching {self.directory}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None

"""
Assets merge.

Copies the mod's asset directories over the game's ``_Work/Data`` so the
engine sees them as physical files (``-vdfs:physicalfirst``). Each asset
directory mirrors the ``_Work/Data`` layout:

    mod/
        Scripts/Content/...
        Worlds/NEWWORLD.ZEN
        Sound/SFX/...
"""

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple

from gmbt.paths import resolve_ci

logger = logging.getLogger(__name__)


class MergeOptions(Enum):
    NONE = "none"
    ALL = "all"
    SCRIPTS = "scripts"
    WORLDS = "worlds"
    SOUNDS = "sounds"

    @property
    def merges_scripts(self) -> bool:
        return self in (MergeOptions.SCRIPTS, MergeOptions.ALL)


# Top-level folders of an asset directory copied for each option
MERGE_FOLDERS: Dict[MergeOptions, Tuple[str, ...]] = {
    MergeOptions.NONE: (),
    MergeOptions.SCRIPTS: ("Scripts",),
    MergeOptions.WORLDS: ("Worlds",),
    MergeOptions.SOUNDS: ("Sound",),
}


class AssetsMerger:
    """Copies asset directories into a work data directory."""

    def __init__(self, asset_dirs: List[Path], work_data: Path):
        self.asset_dirs = [Path(p) for p in asset_dirs]
        self.work_data = Path(work_data)

    def _sources(self, asset_dir: Path, option: MergeOptions) -> List[Path]:
        if option is MergeOptions.ALL:
            return sorted(asset_dir.iterdir())
        folders = {name.casefold() for name in MERGE_FOLDERS[option]}
        return sorted(p for p in asset_dir.iterdir() if p.name.casefold() in folders)

    def merge(self, option: MergeOptions) -> List[Path]:
        """
        Copy the selected folders. Returns the written target files.

        Later asset directories overwrite files of earlier ones.
        """
        written: List[Path] = []
        for asset_dir in self.asset_dirs:
            if not asset_dir.is_dir():
                logger.warning(f"Asset directory does not exist: {asset_dir}")
                continue
            for source in self._sources(asset_dir, option):
                written.extend(self._copy(source, asset_dir))

        logger.info(f"Merged {len(written)} files ({option.value})")
        return written

    def _copy(self, source: Path, asset_dir: Path) -> List[Path]:
        files = [source] if source.is_file() else sorted(p for p in source.rglob("*") if p.is_file())
        written = []
        for path in files:
            target = resolve_ci(self.work_data, path.relative_to(asset_dir))
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
            written.append(target)
        return written

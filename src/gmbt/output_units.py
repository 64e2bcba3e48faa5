"""
Output units (dialogue subtitles) update.

Scans the mod's scripts for dialogue lines of the form

    AI_Output(self, other, "DIA_Xardas_Hello_14_00"); //Who are you?

and writes ``OU.csl``, the ZenGin ASCII archive the engine reads subtitles
from. ``OU.BIN`` is removed so the engine rebuilds it from the new CSL.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from gmbt.paths import find_ci
from gmbt.scripts.src_file import DEFAULT_ENCODING, SrcFile
from gmbt.text import read_lines

logger = logging.getLogger(__name__)

OUTPUT_UNITS_CSL = "OU.csl"
OUTPUT_UNITS_BIN = "OU.bin"

_AI_OUTPUT = re.compile(
    r'AI_Output\s*\(\s*\w+\s*,\s*\w+\s*,\s*"(?P<name>[^"]+)"\s*\)\s*;\s*//(?P<text>.*)$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class OutputUnit:
    name: str
    text: str
    script: Path
    line_number: int


def parse_output_units(script: Path, encoding: str = DEFAULT_ENCODING) -> List[OutputUnit]:
    """Extract every AI_Output with a trailing comment from one script."""
    units = []
    lines = read_lines(script, encoding, errors="replace")
    for line_number, line in enumerate(lines, start=1):
        match = _AI_OUTPUT.search(line)
        # Commented-out call
        if match and "//" not in line[:match.start()]:
            units.append(OutputUnit(
                name=match.group("name").upper(),
                text=match.group("text").strip(),
                script=Path(script),
                line_number=line_number,
            ))
    return units


def collect_output_units(scripts: Iterable[Path], encoding: str = DEFAULT_ENCODING) -> List[OutputUnit]:
    """Collect units from scripts in order. The first unit with a name wins."""
    units: Dict[str, OutputUnit] = {}
    for script in scripts:
        for unit in parse_output_units(script, encoding):
            if unit.name in units:
                first = units[unit.name]
                logger.warning(
                    f"Duplicate output unit {unit.name} in {unit.script.name}:{unit.line_number} "
                    f"(first defined in {first.script.name}:{first.line_number})"
                )
                continue
            units[unit.name] = unit
    return list(units.values())


def render_csl(units: List[OutputUnit], timestamp: Optional[datetime] = None) -> str:
    """Render units as a zCCSLib ZenGin ASCII archive."""
    timestamp = timestamp or datetime.now()
    lines = [
        "ZenGin Archive",
        "ver 1",
        "zCArchiverGeneric",
        "ASCII",
        "saveGame 0",
        f"date {timestamp.strftime('%d.%m.%Y %H:%M:%S')}",
        "user gmbt",
        "END",
        f"objects {1 + 3 * len(units)}",
        "END",
        "",
        "[% zCCSLib 0 0]",
        f"\tNumOfItems=int:{len(units)}",
    ]

    index = 1
    for unit in units:
        lines.extend([
            f"\t[% zCCSBlock 0 {index}]",
            f"\t\tblockName=string:{unit.name}",
            "\t\tnumOfBlocks=int:1",
            "\t\tsubBlock0=float:0",
            f"\t\t[% zCCSAtomicBlock 0 {index + 1}]",
            f"\t\t\t[% oCMsgConversation:oCNpcMessage:zCEventMessage 0 {index + 2}]",
            "\t\t\t\tsubType=enum:0",
            f"\t\t\t\ttext=string:{unit.text}",
            f"\t\t\t\tname=string:{unit.name}.WAV",
            "\t\t\t[]",
            "\t\t[]",
            "\t[]",
        ])
        index += 3

    lines.append("[]")
    return "\n".join(lines) + "\n"


class OutputUnitsUpdater:
    """Regenerates OU.csl from the scripts listed in Gothic.src."""

    def __init__(self, src_path: Path, cutscene_dir: Path, encoding: str = DEFAULT_ENCODING):
        self.src_path = Path(src_path)
        self.cutscene_dir = Path(cutscene_dir)
        self.encoding = encoding

    def update(self) -> Path:
        """
        Write OU.csl and drop a stale OU.bin. Returns the CSL path.

        Raises:
            MissingReferenceError, IncludeCycleError: from script resolution.
        """
        scripts = SrcFile(self.src_path, self.encoding).get_scripts()
        units = collect_output_units(scripts, self.encoding)

        self.cutscene_dir.mkdir(parents=True, exist_ok=True)
        csl_path = find_ci(self.cutscene_dir, OUTPUT_UNITS_CSL) or self.cutscene_dir / OUTPUT_UNITS_CSL
        csl_path.write_text(render_csl(units), encoding=self.encoding, errors="replace")

        stale_bin = find_ci(self.cutscene_dir, OUTPUT_UNITS_BIN)
        if stale_bin is not None:
            stale_bin.unlink()

        logger.info(f"Wrote {len(units)} output units to {csl_path.name}")
        return csl_path

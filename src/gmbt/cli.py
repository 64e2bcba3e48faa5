"""
CLI entry point for gmbt.

Usage:
    gmbt test [--full] [--world W] [--merge M]   Run the mod in the game
    gmbt scripts <src>                           Print the scripts an include file resolves to
    gmbt worlds                                  List the worlds the game can load
    gmbt restore                                 Re-enable archives left disabled by a crashed test
"""

import argparse
import logging
import sys
from pathlib import Path

from gmbt import __version__
from gmbt.config import GmbtConfig
from gmbt.errors import GmbtError
from gmbt.gothic import GameDirectory, Gothic
from gmbt.merge import MergeOptions
from gmbt.scripts import resolve_scripts
from gmbt.session import TestMode, TestOptions, TestSession
from gmbt.session_log import SessionLogger, get_log_file
from gmbt.vdfs.toggler import ArchiveToggler

logger = logging.getLogger("gmbt")


def cmd_test(args, config: GmbtConfig) -> int:
    """Run a quick or full test."""
    options = TestOptions(
        world=args.world,
        merge=MergeOptions(args.merge),
        windowed=args.windowed,
        in_game_time=args.time,
        dev_mode=args.devmode,
        no_audio=args.noaudio,
        no_menu=args.nomenu,
        no_update_subtitles=args.no_update_subtitles,
    )
    mode = TestMode.FULL if args.full else TestMode.QUICK
    session_log = SessionLogger(get_log_file(config.log_dir))

    session = TestSession(config, mode, options, session_log=session_log)
    session.start()
    return 0


def cmd_scripts(args, config: GmbtConfig) -> int:
    """Print the resolved script list of an include file."""
    for script in resolve_scripts(Path(args.src), config.script_encoding):
        print(script)
    return 0


def cmd_worlds(args, config: GmbtConfig) -> int:
    """List every world the game can load."""
    session = TestSession(config, TestMode.QUICK)
    for world in session.list_worlds():
        print(world)
    return 0


def cmd_restore(args, config: GmbtConfig) -> int:
    """Re-enable archives recorded in the journal."""
    data_dir = Gothic(config).get_game_directory(GameDirectory.DATA)
    restored = ArchiveToggler(data_dir).restore_journal()
    if restored:
        print(f"Restored {len(restored)} archives")
    else:
        print("Nothing to restore")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmbt",
        description="Gothic Mod Build Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    gmbt test --world NEWWORLD.ZEN --merge scripts
    gmbt test --full --windowed
    gmbt scripts _Work/Data/Scripts/Content/Gothic.src
"""
    )
    parser.add_argument('--version', action='version', version=f'gmbt {__version__}')
    parser.add_argument('-c', '--config', type=Path, help='Path to .gmbt.yml')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # test
    test_p = subparsers.add_parser('test', help='Run the mod in the game')
    test_p.add_argument('--full', action='store_true', help='Recompile all assets before playing')
    test_p.add_argument('-w', '--world', help='World to start (default: mod_files.default_world)')
    test_p.add_argument('-m', '--merge', default=MergeOptions.NONE.value,
                        choices=[option.value for option in MergeOptions],
                        help='Asset folders to merge before starting')
    test_p.add_argument('--windowed', action='store_true')
    test_p.add_argument('--time', help='In-game time, e.g. 12:00')
    test_p.add_argument('--devmode', action='store_true')
    test_p.add_argument('--noaudio', action='store_true')
    test_p.add_argument('--nomenu', action='store_true')
    test_p.add_argument('--no-update-subtitles', action='store_true')
    test_p.set_defaults(func=cmd_test)

    # scripts
    scripts_p = subparsers.add_parser('scripts', help='Resolve an include file')
    scripts_p.add_argument('src', help='.src include file')
    scripts_p.set_defaults(func=cmd_scripts)

    # worlds
    worlds_p = subparsers.add_parser('worlds', help='List loadable worlds')
    worlds_p.set_defaults(func=cmd_worlds)

    # restore
    restore_p = subparsers.add_parser('restore', help='Re-enable disabled archives')
    restore_p.set_defaults(func=cmd_restore)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S',
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = GmbtConfig(args.config)
        return args.func(args, config)
    except GmbtError as e:
        logger.critical(e.message)
        return 1
    except OSError as e:
        logger.critical(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

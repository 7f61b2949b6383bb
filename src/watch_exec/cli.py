"""CLI entry point for watch-exec."""

import argparse
import logging
import sys
from pathlib import Path

from watchexec_core.config import UsageError, WatchExecConfig, load_config
from watchexec_core.log import setup_logging
from watchexec_core.patterns import PatternCompileError, PatternMode, PatternSpec
from watchexec_core.terminal import TerminalError

from watch_exec import __version__
from watch_exec.controller import WatchExecController
from watch_exec.keyboard_handler import KeyboardHandler

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "SUCC", "WARNING", "ERROR")

DESCRIPTION = """\
Execute commands whenever specific files are changed.

Usage variants:
  1. %(prog)s <dir> <cmd>
  2. %(prog)s <dir> <glob> <cmd> [<cmd>]*
  3. %(prog)s [<flag>]+

Variant 3 accepts several directories, patterns and commands. Each flag may be
given several times, as <flag>=<value> or <flag> <value> [<value>]*. Commands
run in the order they are given whenever a matching file changes.
"""

EPILOG_TEMPLATE = """\
Supported regular expression syntax:
  .  ^  $  *  +  ?  [abc]  [^abc]  [a-zA-Z]  \\s \\S  \\w \\W  \\d \\D

Supported glob syntax:
  *  ?  [abc]  [^abc]  [a-zA-Z]

While the program is running:
{keys}
"""


class WatchExecArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with status 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(
            1,
            f"{self.prog}: error: {message}\nSee detailed usage info by running `{self.prog} --help`\n",
        )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command-line parser.

    Returns:
        Configured parser
    """
    parser = WatchExecArgumentParser(
        prog="watch-exec",
        description=DESCRIPTION,
        epilog=EPILOG_TEMPLATE.format(keys=KeyboardHandler(None).get_binding_help()),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "args",
        nargs="*",
        metavar="ARG",
        help="<dir> <cmd> or <dir> <glob> <cmd> [<cmd>]* (cannot be combined with -d/-g/-r/-c)",
    )
    parser.add_argument(
        "-d", "--dir", dest="dirs", nargs="+", action="extend", default=[], help="Directory to watch"
    )
    parser.add_argument(
        "-g", "--glob", dest="globs", nargs="+", action="extend", default=[], help="Glob pattern to match paths against"
    )
    parser.add_argument(
        "-r",
        "--regex",
        dest="regexes",
        nargs="+",
        action="extend",
        default=[],
        help="Regular expression to match paths against",
    )
    parser.add_argument(
        "-c", "--cmd", dest="commands", nargs="+", action="extend", default=[], help="Command to run on a match"
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"Watch-Exec (%(prog)s): v{__version__}",
    )
    parser.add_argument("--config", help="TOML file with dirs/globs/regexes/commands (CLI values come after)")
    parser.add_argument(
        "--restart",
        action="store_true",
        help="Cancel the running commands when a new change arrives instead of queueing a run",
    )
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="Logging level (default: INFO)")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def build_config(args: argparse.Namespace) -> WatchExecConfig:
    """
    Turn parsed arguments (plus the optional config file) into a configuration.

    Raises:
        UsageError: On an invalid combination of arguments
        FileNotFoundError: If --config names a missing file
    """
    flags_used = bool(args.dirs or args.globs or args.regexes or args.commands)
    if args.args and flags_used:
        raise UsageError("Positional arguments cannot be combined with -d/-g/-r/-c")

    if args.args:
        if len(args.args) < 2:
            raise UsageError("Too few arguments")
        dirs = args.args[:1]
        if len(args.args) == 2:
            patterns = []
            commands = args.args[1:]
        else:
            patterns = [PatternSpec(args.args[1], PatternMode.GLOB)]
            commands = args.args[2:]
    else:
        dirs = args.dirs
        patterns = [PatternSpec(g, PatternMode.GLOB) for g in args.globs]
        patterns += [PatternSpec(r, PatternMode.REGEX) for r in args.regexes]
        commands = args.commands

    config = WatchExecConfig(
        dirs=[Path(d) for d in dirs],
        patterns=patterns,
        commands=list(commands),
        policy="restart" if args.restart else "queue",
        log_level=args.log_level,
    )
    if args.config:
        config = load_config(args.config).merge(config)

    config.validate()
    return config


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the watch-exec CLI.

    Handles:
    - Argument parsing and configuration (exit 1 on usage errors)
    - Pattern compilation (exit 1 on the first invalid pattern)
    - The watch loop, until 'q' (exit 0) or Ctrl+C (exit 130)
    """
    args = parse_args(argv)
    setup_logging(args.log_level or logging.INFO)

    try:
        config = build_config(args)
        if config.log_level:
            setup_logging(config.log_level)
    except (UsageError, FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid Usage: {e}")
        logger.info("See detailed usage info by running `watch-exec --help`")
        return 1

    try:
        controller = WatchExecController(config)
    except PatternCompileError as e:
        for line in e.report_lines():
            logger.error(line)
        return 1

    setup_logging(config.log_level or logging.INFO, terminal=controller.terminal)

    try:
        return controller.run()
    except KeyboardInterrupt:
        # Terminal already restored by run()
        return 130
    except UsageError as e:
        logger.error(f"Invalid Usage: {e}")
        return 1
    except TerminalError as e:
        logger.error(f"Terminal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

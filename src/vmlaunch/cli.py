"""
Command-line entry point for vmlaunch.
"""

import argparse
import logging
import os
import sys

import questionary

from . import __version__
from .capability import check_virtualization_support, report_virtualization_support
from .config import load_config, log_config_sources, validate_config
from .core_utils import print_warning
from .errors import ErrorSeverity, LauncherError, ValidationError, get_error_handler
from .launcher import run_action
from .models import Action

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
LOG_FILE_NAME = 'vmlaunch.log'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser that reports bad input as a ValidationError."""

    def error(self, message):
        raise ValidationError(
            message,
            code="VML-E801",
            suggestions=[f"Run '{self.prog} --help' for usage"],
        )


def _action_type(value):
    try:
        return Action.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser():
    parser = ArgumentParser(
        prog="vmlaunch",
        description="Create or start a single QEMU virtual machine.",
    )
    parser.add_argument(
        "-a", "--action",
        type=_action_type,
        metavar="{Create,Start}",
        help="Create: allocate a new disk and boot the installer. "
             "Start: boot the existing disk.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="JSON configuration file (default: $VMLAUNCH_CONFIG or ./vmlaunch.json)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="print the commands that would run without running them",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="let Create overwrite an existing disk image",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="write debug output to the log file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def prompt_for_action():
    """Ask which action to run; only used when stdin is a terminal."""
    choice = questionary.select(
        "What would you like to do?",
        choices=[
            questionary.Choice("Create a new VM and boot the installer", value=Action.CREATE),
            questionary.Choice("Start the existing VM", value=Action.START),
        ],
    ).ask()
    if choice is None:
        raise LauncherError(
            "Operation cancelled by user",
            code="VML-E701",
            severity=ErrorSeverity.WARNING,
        )
    return choice


def resolve_action(args):
    if args.action is not None:
        return args.action
    if sys.stdin.isatty():
        return prompt_for_action()
    raise ValidationError(
        "No action given",
        code="VML-E802",
        suggestions=["Pass --action Create or --action Start"],
    )


def setup_logging(log_dir, level_name, verbose=False):
    """Attach a file handler to the package logger, once."""
    package_logger = logging.getLogger('vmlaunch')
    level = logging.DEBUG if verbose else logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    package_logger.setLevel(level)

    if any(isinstance(h, logging.FileHandler) for h in package_logger.handlers):
        return package_logger

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME), encoding='utf-8')
    except OSError as e:
        print_warning(f"Could not open log file in {log_dir}: {e}. Continuing without a log file.")
        return package_logger

    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(file_handler)
    return package_logger


def main(argv=None):
    """Run the launcher. Returns the process exit code."""
    handler = get_error_handler()
    try:
        args = build_parser().parse_args(argv)
        action = resolve_action(args)
        config = load_config(args.config)
        setup_logging(config.log_dir, config.log_level, verbose=args.verbose)
        logger.info("vmlaunch %s starting: action=%s dry_run=%s", __version__, action.value, args.dry_run)
        log_config_sources(config)
        validate_config(config, action)

        report_virtualization_support(check_virtualization_support())

        run_action(action, config, dry_run=args.dry_run, force=args.force)
    except (Exception, KeyboardInterrupt) as e:
        handler.handle_error(e)
        return EXIT_FAILURE
    return EXIT_SUCCESS


def run():
    """Console script entry point."""
    sys.exit(main())

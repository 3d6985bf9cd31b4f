"""
Core utility functions for vmlaunch.

This module provides the console helpers used for all user-facing output
and the single place where external commands are executed.
"""
import logging
import os
import shlex
import subprocess

from rich.console import Console
from rich.panel import Panel

from .models import CommandOutcome, CommandResult

console = Console()
logger = logging.getLogger(__name__)

# Lines of tool output kept for the error report when a command fails
OUTPUT_TAIL_LINES = 20

# --- Text and Styling ---

def print_header(text):
    """Prints a styled header to the console."""
    console.print(Panel(f"[bold cyan]{text}[/]", expand=False, border_style="blue"))

def print_info(text):
    """Prints an informational message to the console."""
    console.print(f"[cyan]ℹ️  {text}[/]")

def print_success(text):
    """Prints a success message to the console."""
    console.print(f"[green]✅ {text}[/]")

def print_warning(text):
    """Prints a warning message to the console."""
    console.print(f"[yellow]⚠️  {text}[/]")


def format_command(cmd_list):
    """Returns a copy-pasteable shell rendering of an argument list."""
    return ' '.join(shlex.quote(str(s)) for s in cmd_list)


# --- Command Execution ---

def run_command(cmd_list, quiet=False, dry_run=False):
    """
    Runs a command, echoing its output live, and blocks until it exits.

    stderr is merged into stdout so both reach the user in order.
    Returns a CommandResult; this function never raises for a missing or
    unstartable tool, or for a non-zero exit status.
    """
    # Copy so callers can keep reusing their list
    cmd_list = [str(s) for s in cmd_list]
    cmd_str = format_command(cmd_list)

    if dry_run:
        console.print(f"[blue]▶️  Would execute: {cmd_str}[/]", highlight=False)
        logger.info("Dry run, not executing: %s", cmd_str)
        return CommandResult(cmd_list, CommandOutcome.SUCCEEDED, returncode=0, dry_run=True)

    if not quiet:
        console.print(f"\n[blue]▶️  Executing: {cmd_str}[/]", highlight=False)
    logger.debug("Executing: %s", cmd_str)

    try:
        process = subprocess.Popen(
            cmd_list,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            encoding='utf-8',
            errors='ignore'
        )
    except FileNotFoundError:
        logger.error("Command not found: %s", cmd_list[0])
        return CommandResult(cmd_list, CommandOutcome.TOOL_NOT_FOUND)
    except OSError as e:
        logger.error("Could not start %s: %s", cmd_list[0], e)
        return CommandResult(cmd_list, CommandOutcome.LAUNCH_FAILED, output=str(e))

    output_lines = []
    # Iterate line by line until the process closes its output
    for line in iter(process.stdout.readline, ''):
        if not quiet:
            console.print(f"  {line.rstrip()}", highlight=False, markup=False)
        output_lines.append(line)

    return_code = process.wait()
    output = "".join(output_lines)

    if return_code != 0:
        logger.error("Command exited with code %s: %s", return_code, cmd_str)
        return CommandResult(cmd_list, CommandOutcome.NON_ZERO_EXIT,
                             returncode=return_code, output=output)

    logger.info("Command succeeded: %s", cmd_list[0])
    return CommandResult(cmd_list, CommandOutcome.SUCCEEDED, returncode=0, output=output)


def output_tail(output, lines=OUTPUT_TAIL_LINES):
    """Last few non-empty lines of a tool's output, for error reports."""
    kept = [line for line in output.splitlines() if line.strip()]
    return "\n".join(kept[-lines:])


def can_create_file_in(path):
    """True if `path` could be created: its nearest existing ancestor is writable."""
    directory = os.path.dirname(os.path.abspath(path))
    while not os.path.exists(directory):
        parent = os.path.dirname(directory)
        if parent == directory:
            return False
        directory = parent
    return os.path.isdir(directory) and os.access(directory, os.W_OK)

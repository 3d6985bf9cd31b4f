"""
Create / Start dispatch.

Each step runs only if the one before it succeeded: a failed disk image
creation stops the run before the emulator is launched.
"""

import logging
import os

from .core_utils import print_header, print_info, print_success, output_tail
from .errors import DependencyError, ProcessError, StorageError
from .models import Action, BootMode, CommandOutcome
from .qemu_builder import create_disk_image, launch_vm

logger = logging.getLogger(__name__)


def raise_for_result(result, step):
    """Turn a failed CommandResult into the matching LauncherError."""
    if result.outcome == CommandOutcome.SUCCEEDED:
        return
    if result.outcome == CommandOutcome.TOOL_NOT_FOUND:
        raise DependencyError(
            f"{step} failed: '{result.tool}' was not found",
            code="VML-E901",
            suggestions=[
                "Install QEMU and make sure it is on your PATH",
                "Or point QEMU_BINARY / QEMU_IMG_BINARY at the executables",
            ],
            context={'command': result.command},
        )
    if result.outcome == CommandOutcome.LAUNCH_FAILED:
        raise DependencyError(
            f"{step} failed: '{result.tool}' could not be started",
            code="VML-E902",
            details=result.output or None,
            suggestions=[
                "Check that QEMU_BINARY / QEMU_IMG_BINARY name executable files",
            ],
            context={'command': result.command},
        )
    raise ProcessError(
        f"{step} failed: '{result.tool}' exited with code {result.returncode}",
        code="VML-E702",
        details=output_tail(result.output) or None,
        context={'command': result.command, 'returncode': result.returncode},
    )


def create_vm(config, dry_run=False, force=False):
    """Allocate a fresh disk image, then boot from the installation media."""
    print_header("Create VM")

    if os.path.exists(config.disk_path) and not force:
        raise StorageError(
            f"Disk image already exists: {config.disk_path}",
            code="VML-E602",
            suggestions=[
                "Use the Start action to boot the existing VM",
                "Pass --force to overwrite the disk image",
            ],
        )

    if not dry_run:
        os.makedirs(os.path.dirname(config.disk_path), exist_ok=True)

    result = create_disk_image(config, dry_run=dry_run)
    raise_for_result(result, "Disk image creation")
    if not dry_run:
        print_success(f"Created {config.disk_size_gb} GB disk image at {config.disk_path}")

    print_info(f"Booting from installation media: {config.iso_path}")
    result = launch_vm(config, BootMode.FIRST_BOOT, dry_run=dry_run)
    raise_for_result(result, "VM launch")
    return result


def start_vm(config, dry_run=False):
    """Boot the existing disk image."""
    print_header("Start VM")
    result = launch_vm(config, BootMode.DISK_ONLY, dry_run=dry_run)
    raise_for_result(result, "VM launch")
    return result


def run_action(action, config, dry_run=False, force=False):
    logger.info("Running action %s", action.value)
    if action == Action.CREATE:
        result = create_vm(config, dry_run=dry_run, force=force)
    else:
        result = start_vm(config, dry_run=dry_run)
    if not dry_run:
        print_success("VM exited cleanly.")
    return result

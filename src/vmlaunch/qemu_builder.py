"""
QEMU Command Builder Module

Builds the qemu-img and qemu-system command lines and runs them.
"""

import logging

from .core_utils import run_command
from .models import BootMode

logger = logging.getLogger(__name__)

DISK_FORMAT = "qcow2"


def build_disk_image_command(qemu_img_binary, path, size_gb):
    """Argument list for allocating a new copy-on-write disk image."""
    return [qemu_img_binary, "create", "-f", DISK_FORMAT, path, f"{size_gb}G"]


def build_launch_command(config, mode):
    """
    Builds the emulator command for a boot mode.

    Pure function of its arguments: the same config and mode always give
    the same list.
    """
    qemu_cmd = [
        config.qemu_binary,
        "-accel", config.accelerator,
        "-drive", f"file={config.disk_path},format={DISK_FORMAT}",
        "-m", str(config.memory_mb),
        "-smp", str(config.cpu_cores),
        "-net", f"nic,model={config.nic_model}",
        "-net", "user",
    ]

    if mode == BootMode.FIRST_BOOT:
        qemu_cmd.extend(["-cdrom", config.iso_path])

    qemu_cmd.extend(["-display", config.display])

    # c = hard disk, d = CD-ROM; strict=on stops QEMU falling back to other devices
    boot_order = "dc" if mode == BootMode.FIRST_BOOT else "c"
    qemu_cmd.extend(["-boot", f"order={boot_order},strict=on"])

    return qemu_cmd


def create_disk_image(config, path=None, size_gb=None, dry_run=False):
    """Allocate the VM disk image. Returns the CommandResult of qemu-img."""
    path = path or config.disk_path
    size_gb = config.disk_size_gb if size_gb is None else size_gb
    logger.info("Creating %s GB %s disk image at %s", size_gb, DISK_FORMAT, path)
    return run_command(build_disk_image_command(config.qemu_img_binary, path, size_gb),
                       dry_run=dry_run)


def launch_vm(config, mode, dry_run=False):
    """Start the emulator and block until it exits."""
    logger.info("Launching VM (%s) from %s", mode.value, config.disk_path)
    return run_command(build_launch_command(config, mode), dry_run=dry_run)

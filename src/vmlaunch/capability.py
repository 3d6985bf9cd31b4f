"""
Host hardware virtualization detection.

The result is advisory: the launcher warns when acceleration looks
unavailable but always goes on to run the requested action.
"""

import logging
import os
import platform
import subprocess

from .core_utils import print_success, print_warning
from .models import VirtualizationSupport

logger = logging.getLogger(__name__)

KVM_DEVICE = "/dev/kvm"
QUERY_TIMEOUT_S = 30

WINDOWS_FEATURE_QUERY = [
    "powershell.exe", "-NoProfile", "-NonInteractive", "-Command",
    "(Get-WindowsOptionalFeature -Online -FeatureName HypervisorPlatform).State",
]
MACOS_HV_QUERY = ["sysctl", "-n", "kern.hv_support"]


def _run_query(cmd):
    """Returns the stripped stdout of a host query command, or None if it failed."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=QUERY_TIMEOUT_S,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Virtualization query %s failed: %s", cmd[0], e)
        return None
    return result.stdout.strip()


def _check_linux():
    if not os.path.exists(KVM_DEVICE):
        logger.info("%s not present", KVM_DEVICE)
        return VirtualizationSupport.DISABLED
    if not os.access(KVM_DEVICE, os.R_OK | os.W_OK):
        logger.info("%s present but not accessible to this user", KVM_DEVICE)
        return VirtualizationSupport.DISABLED
    return VirtualizationSupport.ENABLED


def _check_windows():
    state = _run_query(WINDOWS_FEATURE_QUERY)
    if not state:
        return VirtualizationSupport.UNKNOWN
    if state.lower() == "enabled":
        return VirtualizationSupport.ENABLED
    logger.info("HypervisorPlatform feature state: %s", state)
    return VirtualizationSupport.DISABLED


def _check_macos():
    value = _run_query(MACOS_HV_QUERY)
    if value == "1":
        return VirtualizationSupport.ENABLED
    if value == "0":
        return VirtualizationSupport.DISABLED
    return VirtualizationSupport.UNKNOWN


_CHECKS = {
    'Linux': _check_linux,
    'Windows': _check_windows,
    'Darwin': _check_macos,
}


def check_virtualization_support():
    """Query the host for hardware virtualization; never raises."""
    system = platform.system()
    check = _CHECKS.get(system)
    if check is None:
        logger.warning("No virtualization check for platform %r", system)
        return VirtualizationSupport.UNKNOWN
    support = check()
    logger.info("Hardware virtualization on %s: %s", system, support.value)
    return support


def report_virtualization_support(support):
    """Tell the user what the check found. Only ever warns."""
    if support == VirtualizationSupport.ENABLED:
        print_success("Hardware virtualization is available.")
    elif support == VirtualizationSupport.DISABLED:
        print_warning("Hardware virtualization is not enabled on this host. "
                      "The VM may fail to start or run very slowly.")
    else:
        print_warning("Could not determine whether hardware virtualization is enabled. "
                      "Continuing anyway.")

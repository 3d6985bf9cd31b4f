# conftest.py
import io
import logging
import os
import pathlib
import sys
import types

import pytest

# ----------------------
# Path setup: make the src/ layout importable without an install
# ----------------------
_SRC_DIR = pathlib.Path(__file__).resolve().parent.parent / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vmlaunch import config as config_mod  # noqa: E402
from vmlaunch import core_utils  # noqa: E402
from vmlaunch.config import LaunchConfig, ENV_PREFIX  # noqa: E402


# ----------------------
# Isolation
# ----------------------
@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run every test in an empty cwd, without VMLAUNCH_* variables."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def fake_host(monkeypatch):
    """A host with 16 GB of RAM and 8 threads."""
    monkeypatch.setattr(config_mod, "host_memory_mb", lambda: 16384)
    monkeypatch.setattr(config_mod, "host_cpu_count", lambda: 8)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger("vmlaunch")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(logging.NOTSET)


# ----------------------
# Test Utilities / Fakes
# ----------------------
@pytest.fixture
def iso_file(tmp_path):
    iso = tmp_path / "install.iso"
    iso.write_bytes(b"")
    return iso


@pytest.fixture
def launch_config(tmp_path, iso_file):
    return LaunchConfig(
        memory_mb=2048,
        cpu_cores=2,
        disk_path=str(tmp_path / "vm" / "disk.qcow2"),
        disk_size_gb=30,
        iso_path=str(iso_file),
        qemu_img_binary="qemu-img",
        qemu_binary="qemu-system-x86_64",
        accelerator="kvm",
        display="gtk",
        nic_model="virtio",
        log_dir=str(tmp_path / "logs"),
        log_level="INFO",
    )


@pytest.fixture
def fake_popen(monkeypatch):
    """
    Replace subprocess.Popen as seen by core_utils.

    Configure per-tool behaviour through the returned namespace:
    `returncodes[tool] = n`, `outputs[tool] = "text"`, `missing.add(tool)`,
    `start_errors[tool] = OSError(...)` for a tool that exists but cannot run.
    Every started command is appended to `calls`.
    """
    state = types.SimpleNamespace(calls=[], kwargs=[], returncodes={}, outputs={}, missing=set(),
                                  start_errors={})

    class FakePopen:
        def __init__(self, args, **kwargs):
            if args[0] in state.missing:
                raise FileNotFoundError(2, "No such file or directory", args[0])
            if args[0] in state.start_errors:
                raise state.start_errors[args[0]]
            state.calls.append(list(args))
            state.kwargs.append(kwargs)
            self.args = args
            self.kwargs = kwargs
            self.stdout = io.StringIO(state.outputs.get(args[0], ""))
            self._rc = state.returncodes.get(args[0], 0)

        def wait(self):
            return self._rc

    monkeypatch.setattr(core_utils.subprocess, "Popen", FakePopen)
    return state

import subprocess
import types

import pytest

import vmlaunch.capability as capability
from vmlaunch.models import VirtualizationSupport


def _on(monkeypatch, system):
    monkeypatch.setattr(capability.platform, "system", lambda: system)


def _query_returns(monkeypatch, stdout):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return types.SimpleNamespace(stdout=stdout, returncode=0)

    monkeypatch.setattr(capability.subprocess, "run", fake_run)
    return calls


def _query_raises(monkeypatch, exc):
    def fake_run(cmd, **kwargs):
        raise exc

    monkeypatch.setattr(capability.subprocess, "run", fake_run)


def test_linux_kvm_accessible(monkeypatch):
    _on(monkeypatch, "Linux")
    monkeypatch.setattr(capability.os.path, "exists", lambda p: p == "/dev/kvm")
    monkeypatch.setattr(capability.os, "access", lambda p, mode: True)

    assert capability.check_virtualization_support() == VirtualizationSupport.ENABLED


def test_linux_kvm_missing(monkeypatch):
    _on(monkeypatch, "Linux")
    monkeypatch.setattr(capability.os.path, "exists", lambda p: False)

    assert capability.check_virtualization_support() == VirtualizationSupport.DISABLED


def test_linux_kvm_not_accessible(monkeypatch):
    _on(monkeypatch, "Linux")
    monkeypatch.setattr(capability.os.path, "exists", lambda p: True)
    monkeypatch.setattr(capability.os, "access", lambda p, mode: False)

    assert capability.check_virtualization_support() == VirtualizationSupport.DISABLED


@pytest.mark.parametrize(
    "state, expected",
    [
        ("Enabled\r\n", VirtualizationSupport.ENABLED),
        ("Disabled", VirtualizationSupport.DISABLED),
        ("DisablePending", VirtualizationSupport.DISABLED),
        ("", VirtualizationSupport.UNKNOWN),
    ],
)
def test_windows_hypervisor_platform_state(monkeypatch, state, expected):
    _on(monkeypatch, "Windows")
    calls = _query_returns(monkeypatch, state)

    assert capability.check_virtualization_support() == expected
    assert calls[0][0] == "powershell.exe"
    assert "HypervisorPlatform" in calls[0][-1]


@pytest.mark.parametrize(
    "exc",
    [
        FileNotFoundError(2, "No such file or directory", "powershell.exe"),
        subprocess.CalledProcessError(1, ["powershell.exe"]),
        subprocess.TimeoutExpired(["powershell.exe"], 30),
    ],
)
def test_windows_query_failure_is_unknown(monkeypatch, exc):
    _on(monkeypatch, "Windows")
    _query_raises(monkeypatch, exc)

    assert capability.check_virtualization_support() == VirtualizationSupport.UNKNOWN


@pytest.mark.parametrize(
    "stdout, expected",
    [
        ("1\n", VirtualizationSupport.ENABLED),
        ("0\n", VirtualizationSupport.DISABLED),
        ("sysctl: unknown oid", VirtualizationSupport.UNKNOWN),
    ],
)
def test_macos_hv_support(monkeypatch, stdout, expected):
    _on(monkeypatch, "Darwin")
    calls = _query_returns(monkeypatch, stdout)

    assert capability.check_virtualization_support() == expected
    assert calls == [["sysctl", "-n", "kern.hv_support"]]


def test_unsupported_platform_is_unknown(monkeypatch):
    _on(monkeypatch, "SunOS")

    assert capability.check_virtualization_support() == VirtualizationSupport.UNKNOWN


def test_report_disabled_warns(capsys):
    capability.report_virtualization_support(VirtualizationSupport.DISABLED)

    assert "not enabled" in capsys.readouterr().out


def test_report_unknown_is_distinct_from_disabled(capsys):
    capability.report_virtualization_support(VirtualizationSupport.UNKNOWN)

    out = capsys.readouterr().out
    assert "Could not determine" in out
    assert "not enabled" not in out


def test_report_enabled(capsys):
    capability.report_virtualization_support(VirtualizationSupport.ENABLED)

    assert "available" in capsys.readouterr().out

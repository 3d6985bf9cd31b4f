"""
Configuration module for vmlaunch

Values come from the CONFIG defaults below, then a JSON file, then
VMLAUNCH_* environment variables. The result is validated once at startup
and never changes for the rest of the run.
"""

import os
import json
import logging
import platform
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

import psutil

from .core_utils import print_warning, can_create_file_in
from .errors import ConfigurationError
from .models import Action

logger = logging.getLogger(__name__)

ENV_PREFIX = 'VMLAUNCH_'
CONFIG_FILE_NAME = 'vmlaunch.json'
MIN_DISK_SIZE_GB = 1

# Hardware accelerator QEMU should use on each host OS
ACCELERATORS = {
    'Linux': 'kvm',
    'Windows': 'whpx',
    'Darwin': 'hvf',
}


def _default_accelerator() -> str:
    return ACCELERATORS.get(platform.system(), 'tcg')


# Default configuration
CONFIG = {
    'MEMORY_MB': 4096,
    'CPU_CORES': 2,
    'DISK_PATH': os.path.join('vm', 'disk.qcow2'),
    'DISK_SIZE_GB': 30,
    'ISO_PATH': 'install.iso',
    'QEMU_IMG_BINARY': 'qemu-img',
    'QEMU_BINARY': 'qemu-system-x86_64',
    'ACCELERATOR': _default_accelerator(),
    'DISPLAY': 'gtk',
    'NIC_MODEL': 'virtio',
    'LOG_DIR': 'logs',
    'LOG_LEVEL': 'INFO',
}

INT_KEYS = ('MEMORY_MB', 'CPU_CORES', 'DISK_SIZE_GB')
PATH_KEYS = ('DISK_PATH', 'ISO_PATH', 'LOG_DIR')


@dataclass(frozen=True)
class LaunchConfig:
    """Validated, immutable settings for one launcher run"""
    memory_mb: int
    cpu_cores: int
    disk_path: str
    disk_size_gb: int
    iso_path: str
    qemu_img_binary: str
    qemu_binary: str
    accelerator: str
    display: str
    nic_model: str
    log_dir: str
    log_level: str
    source: Optional[str] = None
    ignored_keys: Tuple[str, ...] = ()
    env_overrides: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, values: Dict[str, Any], source: Optional[str] = None,
                  ignored_keys: Tuple[str, ...] = (),
                  env_overrides: Tuple[str, ...] = ()) -> "LaunchConfig":
        return cls(
            memory_mb=values['MEMORY_MB'],
            cpu_cores=values['CPU_CORES'],
            disk_path=values['DISK_PATH'],
            disk_size_gb=values['DISK_SIZE_GB'],
            iso_path=values['ISO_PATH'],
            qemu_img_binary=values['QEMU_IMG_BINARY'],
            qemu_binary=values['QEMU_BINARY'],
            accelerator=values['ACCELERATOR'],
            display=values['DISPLAY'],
            nic_model=values['NIC_MODEL'],
            log_dir=values['LOG_DIR'],
            log_level=values['LOG_LEVEL'],
            source=source,
            ignored_keys=ignored_keys,
            env_overrides=env_overrides,
        )


def find_config_file(explicit_path: Optional[str] = None,
                     environ: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Pick the JSON file to read, if any.

    An explicit path (from --config or VMLAUNCH_CONFIG) must exist; the
    implicit ./vmlaunch.json is only used when present.
    """
    environ = os.environ if environ is None else environ
    path = explicit_path or environ.get(f'{ENV_PREFIX}CONFIG')
    if path:
        if not os.path.isfile(path):
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                code="VML-E201",
                suggestions=["Check the path passed to --config or VMLAUNCH_CONFIG"],
            )
        return path
    if os.path.isfile(CONFIG_FILE_NAME):
        return CONFIG_FILE_NAME
    return None


def _read_config_file(path: str) -> Tuple[Dict[str, Any], Tuple[str, ...]]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            user_config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Could not read configuration file {path}",
            code="VML-E201",
            details=str(e),
            original_exception=e,
        ) from e

    if not isinstance(user_config, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a JSON object",
            code="VML-E201",
        )

    known = {}
    ignored = []
    for key, value in user_config.items():
        normalized = key.upper()
        if normalized in CONFIG:
            known[normalized] = value
        else:
            ignored.append(key)
            print_warning(f"Ignoring unknown configuration key '{key}' in {path}")
    return known, tuple(ignored)


def _read_environment(environ: Dict[str, str]) -> Dict[str, Any]:
    overrides = {}
    for key in CONFIG:
        value = environ.get(f'{ENV_PREFIX}{key}')
        if value is not None:
            overrides[key] = value
    return overrides


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    coerced = dict(values)
    for key in INT_KEYS:
        value = coerced[key]
        # bool is an int subclass but never a meaningful size
        if isinstance(value, bool):
            raise ConfigurationError(f"{key} must be an integer, got {value!r}", code="VML-E203")
        try:
            coerced[key] = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"{key} must be an integer, got {value!r}",
                code="VML-E203",
                original_exception=e,
            ) from e
    for key in CONFIG:
        if key not in INT_KEYS:
            coerced[key] = str(coerced[key]).strip()
    for key in PATH_KEYS:
        coerced[key] = os.path.abspath(os.path.expanduser(coerced[key]))
    coerced['LOG_LEVEL'] = coerced['LOG_LEVEL'].upper()
    return coerced


def load_config(config_file: Optional[str] = None,
                environ: Optional[Dict[str, str]] = None) -> LaunchConfig:
    """
    Build the launcher configuration

    Args:
        config_file: Explicit JSON file, as given by --config
        environ: Environment mapping, os.environ when omitted

    Returns:
        LaunchConfig: merged and type-coerced settings (not yet validated
        against the host, see validate_config)
    """
    environ = os.environ if environ is None else environ
    values = dict(CONFIG)

    ignored = ()
    path = find_config_file(config_file, environ)
    if path:
        file_values, ignored = _read_config_file(path)
        values.update(file_values)

    overrides = _read_environment(environ)
    values.update(overrides)
    return LaunchConfig.from_dict(_coerce(values), source=path,
                                  ignored_keys=ignored,
                                  env_overrides=tuple(sorted(overrides)))


def log_config_sources(config: LaunchConfig) -> None:
    """Record where the settings came from; called once file logging is set up."""
    if config.source:
        logger.info("Loaded configuration from %s", config.source)
    else:
        logger.info("No configuration file found, using defaults")
    for key in config.ignored_keys:
        logger.warning("Ignoring unknown configuration key %r in %s", key, config.source)
    if config.env_overrides:
        logger.info("Environment overrides: %s", ", ".join(config.env_overrides))


def host_memory_mb() -> int:
    return psutil.virtual_memory().total // (1024 * 1024)


def host_cpu_count() -> int:
    return psutil.cpu_count(logical=True) or 1


def validate_config(config: LaunchConfig, action: Action) -> None:
    """
    Check the configuration against the host before anything runs.

    The installation media and a writable disk location only matter when
    creating; starting needs neither.
    """
    problems = []

    if config.memory_mb <= 0:
        problems.append(f"MEMORY_MB must be positive, got {config.memory_mb}")
    else:
        available = host_memory_mb()
        if config.memory_mb > available:
            problems.append(f"MEMORY_MB={config.memory_mb} exceeds host memory ({available} MB)")

    if config.cpu_cores <= 0:
        problems.append(f"CPU_CORES must be positive, got {config.cpu_cores}")
    else:
        threads = host_cpu_count()
        if config.cpu_cores > threads:
            problems.append(f"CPU_CORES={config.cpu_cores} exceeds host CPU threads ({threads})")

    if config.disk_size_gb < MIN_DISK_SIZE_GB:
        problems.append(f"DISK_SIZE_GB must be at least {MIN_DISK_SIZE_GB}, got {config.disk_size_gb}")

    for key, value in (('QEMU_IMG_BINARY', config.qemu_img_binary),
                       ('QEMU_BINARY', config.qemu_binary),
                       ('ACCELERATOR', config.accelerator),
                       ('DISPLAY', config.display),
                       ('NIC_MODEL', config.nic_model)):
        if not value:
            problems.append(f"{key} must not be empty")

    if not isinstance(logging.getLevelName(config.log_level), int):
        problems.append(f"LOG_LEVEL {config.log_level!r} is not a logging level")

    if action == Action.CREATE:
        if not can_create_file_in(config.disk_path):
            problems.append(f"DISK_PATH {config.disk_path} is not in a writable location")
        if not os.path.isfile(config.iso_path):
            problems.append(f"ISO_PATH {config.iso_path} does not exist")

    if problems:
        raise ConfigurationError(
            "Invalid configuration",
            code="VML-E203",
            details="\n".join(problems),
            suggestions=[
                "Edit vmlaunch.json or set VMLAUNCH_<KEY> environment variables",
            ],
            context={'source': config.source},
        )
    logger.debug("Configuration valid for %s: %s", action.value, config)

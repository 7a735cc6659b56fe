# src/tfrget/config.py

import os
from typing import Any, Dict, Optional

import platformdirs
import yaml

from tfrget.constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_REQUEST_TIMEOUT,
    OPENTOFU_IMPL,
    TERRAFORM_IMPL,
)
from tfrget.exceptions import ConfigurationError, ConfigValidationError
from tfrget.log_utils import logger
from tfrget.registry.interfaces import RegistryOptions

SUPPORTED_IMPLEMENTATIONS = (TERRAFORM_IMPL, OPENTOFU_IMPL)


def get_config_file() -> str:
    """Return the platform-specific path of the tfrget configuration file."""
    return os.path.join(platformdirs.user_config_dir(CONFIG_DIR_NAME), CONFIG_FILE_NAME)


def load_config(config_path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Load the tfrget configuration YAML.

    Parameters:
        config_path (str | None): Explicit file to load; defaults to the platformdirs-managed location.

    Returns:
        dict | None: The parsed configuration mapping, or None if the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML, or is not a mapping.
    """
    path = config_path or get_config_file()
    if not os.path.exists(path):
        logger.debug(f"No configuration file at {path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load configuration {path}", str(e)) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Failed to load configuration {path}", "expected a mapping at top level"
        )

    logger.debug(f"Loaded configuration from {path}")
    return config


def options_from_config(config: Optional[Dict[str, Any]]) -> RegistryOptions:
    """
    Build RegistryOptions from a configuration mapping.

    Recognised keys are TF_IMPLEMENTATION, REQUEST_TIMEOUT and CREDENTIALS_FILE;
    missing keys keep their defaults.

    Raises:
        ConfigValidationError: If a recognised key holds an unacceptable value.
    """
    config = config or {}

    implementation = str(config.get("TF_IMPLEMENTATION", TERRAFORM_IMPL)).lower()
    if implementation not in SUPPORTED_IMPLEMENTATIONS:
        raise ConfigValidationError(
            f"Unsupported TF_IMPLEMENTATION: {implementation}",
            details=f"expected one of {', '.join(SUPPORTED_IMPLEMENTATIONS)}",
        )

    timeout = config.get("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigValidationError(
            f"Invalid REQUEST_TIMEOUT: {timeout!r}",
            details="expected a positive number of seconds",
        )

    credentials_file = config.get("CREDENTIALS_FILE")
    if credentials_file is not None:
        credentials_file = os.path.expanduser(str(credentials_file))

    return RegistryOptions(
        terraform_implementation=implementation,
        request_timeout=timeout,
        credentials_file=credentials_file,
    )

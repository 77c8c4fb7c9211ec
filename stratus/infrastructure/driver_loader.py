"""
Driver Loader

Architectural Intent:
- Instantiates the provisioning driver named in the cloud configuration
- Accepts "package.module:ClassName" or "package.module.ClassName"
"""

import importlib
import logging

from stratus.domain.errors import ConfigurationError
from stratus.domain.ports.provisioning_driver_port import ProvisioningDriverPort

logger = logging.getLogger(__name__)


def _split(dotted_path: str) -> tuple[str, str]:
    if ":" in dotted_path:
        module_name, _, class_name = dotted_path.partition(":")
    else:
        module_name, _, class_name = dotted_path.rpartition(".")
    if not module_name or not class_name:
        raise ConfigurationError(f"Invalid driver class path: {dotted_path!r}")
    return module_name, class_name


def load_driver_class(dotted_path: str) -> type:
    module_name, class_name = _split(dotted_path)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Failed to load provisioning class. Module not found: {module_name}"
        ) from e
    try:
        driver_cls = getattr(module, class_name)
    except AttributeError as e:
        raise ConfigurationError(
            f"Failed to load provisioning class. Class not found: {dotted_path}"
        ) from e
    if not (isinstance(driver_cls, type) and issubclass(driver_cls, ProvisioningDriverPort)):
        raise ConfigurationError(
            f"{dotted_path} is not a ProvisioningDriverPort implementation"
        )
    return driver_cls


def create_driver(dotted_path: str) -> ProvisioningDriverPort:
    driver_cls = load_driver_class(dotted_path)
    try:
        driver = driver_cls()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to instantiate provisioning class {dotted_path}: {e}"
        ) from e
    logger.debug("Loaded provisioning driver %s", dotted_path)
    return driver

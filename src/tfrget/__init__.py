"""
tfrget - fetch modules from Terraform and OpenTofu module registries.
"""

from tfrget.exceptions import TfrGetError
from tfrget.registry import (
    DefaultFetchEngine,
    FetchEngine,
    GetterClient,
    RegistryGetter,
    RegistryOptions,
)

__all__ = [
    "DefaultFetchEngine",
    "FetchEngine",
    "GetterClient",
    "RegistryGetter",
    "RegistryOptions",
    "TfrGetError",
]

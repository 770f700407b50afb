"""Basic CLI - manage Basic projects and keep their schemas in sync."""

from .api import BasicClient
from .auth import TokenStore
from .exceptions import (
    BasicAPIError,
    BasicAuthenticationError,
    BasicCliError,
    BasicConfigError,
    BasicInvalidResponseError,
    BasicNetworkError,
    BasicNotFoundError,
    BasicPermissionError,
    BasicSchemaError,
)
from .local_schema import read_schema_from_config, save_schema_to_config
from .models import Schema
from .utils import get_version

__version__ = get_version()

__all__ = [
    "BasicClient",
    "TokenStore",
    "Schema",
    "BasicCliError",
    "BasicAPIError",
    "BasicAuthenticationError",
    "BasicConfigError",
    "BasicInvalidResponseError",
    "BasicNetworkError",
    "BasicNotFoundError",
    "BasicPermissionError",
    "BasicSchemaError",
    "read_schema_from_config",
    "save_schema_to_config",
    "__version__",
]

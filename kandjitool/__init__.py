"""
kandjitool - Kandji custom app uploader

A Python client, CLI and release-automation hooks for publishing build
artifacts to Kandji custom apps.

kandjitool provides:
  - Signed-URL uploads streamed directly to Kandji's object storage
  - Attaching the upload to a custom app, waiting while Kandji processes it
  - Post-install script updates
  - Release hooks with version-templated asset resolution and
    release/pre-release gating

Quick Start
-----------
List custom apps:

    $ kandji-cli list-apps -c kandji.json

Upload a new build to a custom app:

    $ kandji-cli update-app -c kandji.json -i <library-item-id> -f dist/MyApp.pkg

For full CLI documentation:

    $ kandji-cli --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
client : module
    KandjiClient, the programmatic entry point.
api : package
    HTTP transport and wire records.
io : package
    Upload workflow (signed upload, storage push, attach loop).
config : package
    Connection settings from config files or the environment.
release : module
    verify_conditions / prepare / publish hooks.

Public API
----------
    from kandjitool.client import KandjiClient
    from kandjitool.config import load_config, config_from_env
    from kandjitool.io import upload_custom_app

Project Information
-------------------
Author: Roger Cibrian
License: Apache-2.0
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Kandji custom app uploader and release hooks"

# Re-export commonly used names for convenience
from kandjitool.client import KandjiClient
from kandjitool.config import KandjiConfig, config_from_env, load_config
from kandjitool.exceptions import (
    ApiError,
    AssetResolutionError,
    ConfigError,
    ConvergenceTimeoutError,
    KandjiError,
    StorageUploadError,
)
from kandjitool.io import upload_custom_app
from kandjitool.results import PublishResult, UploadResult

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "KandjiClient",
    "KandjiConfig",
    "config_from_env",
    "load_config",
    "upload_custom_app",
    "UploadResult",
    "PublishResult",
    "KandjiError",
    "ConfigError",
    "AssetResolutionError",
    "ApiError",
    "StorageUploadError",
    "ConvergenceTimeoutError",
]

# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration loading for kandjitool.

The base API URL and bearer token are gathered into a single
``KandjiConfig`` value, either from a JSON/YAML file (CLI) or from the
KANDJI_BASE_URL / KANDJI_API_TOKEN environment variables (release hooks).
Library code never reads the environment itself; it receives a config.

Public API:

- KandjiConfig: Connection settings (base URL + token)
- load_config: Load connection settings from a config file
- config_from_env: Build connection settings from the environment
- load_plugin_config: Load the release plugin configuration mapping

Example:
    Basic usage:

        from pathlib import Path
        from kandjitool.config import load_config

        config = load_config(Path("kandji.json"))
        print(config.base_url)

"""

from .loader import (
    ENV_API_TOKEN,
    ENV_BASE_URL,
    KandjiConfig,
    config_from_env,
    load_config,
    load_plugin_config,
)

__all__ = [
    "ENV_API_TOKEN",
    "ENV_BASE_URL",
    "KandjiConfig",
    "config_from_env",
    "load_config",
    "load_plugin_config",
]

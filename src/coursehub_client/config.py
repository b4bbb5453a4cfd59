"""
Settings shim.

The canonical config lives in the root `config/` package:
  - `config/public_config.py` (non-sensitive defaults)
  - `config/secret_config.py` (credentials loaded from env / `.env.secrets`)
  - `config/settings.py` merges both (`get_settings()`)

Library code imports from here (`from coursehub_client.config import get_settings`).
"""

from __future__ import annotations

from config.settings import ConfigError as ConfigError
from config.settings import Settings as Settings
from config.settings import get_safe_config_report as get_safe_config_report
from config.settings import get_settings as get_settings

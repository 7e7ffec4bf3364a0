"""
Initializes the Dynaconf settings object for the evergreen installer.
This module is the single source of truth for all configuration.

The bundled settings ship inside the package; operators add credentials in
`config/.secrets.toml` (relative to the working directory) and override any
value through `EVERGREEN_` environment variables.
"""

from pathlib import Path
from dynaconf import Dynaconf

PACKAGE_DIR = Path(__file__).parent
BUNDLED_SETTINGS = PACKAGE_DIR / "config" / "settings.toml"

settings = Dynaconf(
    settings_files=[str(BUNDLED_SETTINGS)],
    secrets=["config/.secrets.toml"],
    envvar_prefix="EVERGREEN",
    merge_enabled=True,
)

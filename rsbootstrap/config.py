# rsbootstrap/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants for the Runestone container bootstrap.

Mutable runtime configuration (database credentials, host names, paths,
feature flags) is handled by 'rsbootstrap/config_models.py' and
'rsbootstrap/config_loader.py'.
"""

from pathlib import Path

SCRIPT_VERSION: str = "1.0"

DEFAULT_CONFIG_FILE: str = "/etc/runestone/bootstrap.yaml"
CONFIG_FILE_ENV_VAR: str = "RS_BOOTSTRAP_CONFIG"

# Kept at the path of the marker the shell entrypoint used to touch.
STATE_FILE_PATH: Path = Path("/var/lib/postgresql/11/main/initialized.stamp")

SYMBOLS: dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}

AUTH_KEY_PREFIX: str = "sha512:"

INSTITUTION_OVERRIDE_TEMPLATE: str = """\
settings.docker_institution_mode = True
settings.jobe_key = '{jobe_key}'
settings.jobe_server = '{jobe_server}'
"""

DISABLE_SIGNUP_LINE: str = "auth.settings.actions_disabled.append('register')"

# Column positions (0-based) of the username and course in instructors.csv.
INSTRUCTOR_USERNAME_FIELD: int = 0
INSTRUCTOR_COURSE_FIELD: int = 5

NOBUILD_MARKER: str = "NOBUILD"
BOOK_REQUIREMENTS_FILE: str = "requirements.txt"
COMPONENTS_README: str = "README.rst"

# photo_modules/config.py
"""
Runtime settings, read once from the environment.
"""

import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in ("0", "false", "no", "off", "")


API_TITLE = os.getenv("PHOTO_MODULES_API_TITLE", "Photo Modules API")

# Log every sanitizer drop to the console
LOG_SANITIZER_DROPS = _env_flag("PHOTO_MODULES_LOG_DROPS", "1")

# Upper bound for expected_length on the standalone mask decode endpoint
MAX_MASK_LENGTH = int(os.getenv("PHOTO_MODULES_MAX_MASK_LENGTH", str(1024 * 1024)))

"""Environment settings."""

import os
from typing import Dict, Optional, Tuple


class Settings:
    """Application settings from environment variables."""

    # Environment variable -> (config section, field)
    ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
        "DATA_SOURCE_NAME": ("pgbouncer", "connection_string"),
        "LOG_LEVEL": ("logging", "level"),
    }

    @staticmethod
    def get(key: str) -> Optional[str]:
        """Return the value of an environment variable, or None if it is unset or empty."""
        return os.getenv(key) or None

    @classmethod
    def overrides(cls) -> Dict[str, Dict[str, str]]:
        """
        Collect configuration overrides from the environment.

        Returns:
            Dict: Nested {section: {field: value}} for every variable that is set
        """
        result: Dict[str, Dict[str, str]] = {}
        for key, (section, field) in cls.ENV_OVERRIDES.items():
            value = cls.get(key)
            if value:
                result.setdefault(section, {})[field] = value
        return result

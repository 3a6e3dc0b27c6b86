from typing import Any

from .settings import Settings, get_settings


def env(key: str, default: Any = None) -> Any:
    """Read a setting by name, falling back to raw environment values.

    Declared fields go through pydantic validation; anything else is picked up
    through ``extra="allow"`` on Settings.

    Args:
        key: Setting name (case insensitive)
        default: Value returned when the key is unknown

    Returns
    -------
        The configured value or default
    """
    settings = get_settings()

    value = getattr(settings, key.upper(), None)
    if value is not None:
        return value

    extras = settings.model_extra or {}
    return extras.get(key.lower(), extras.get(key.upper(), default))


__all__ = ["Settings", "env", "get_settings"]

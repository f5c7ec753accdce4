import logging
import os
from typing import Union

ENV_VAR = "LOOTSEED_LOG_LEVEL"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def resolve_level(default_level: Union[int, str] = logging.INFO) -> int:
    """Level from LOOTSEED_LOG_LEVEL when it names a real level, else ``default_level``."""
    if isinstance(default_level, str):
        default_level = logging.getLevelName(default_level.upper())
        if not isinstance(default_level, int):
            default_level = logging.INFO
    name = os.getenv(ENV_VAR)
    if not name:
        return default_level
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        logging.getLogger(__name__).warning("Ignoring unknown %s=%r", ENV_VAR, name)
        return default_level
    return level


def configure_logging(default_level: Union[int, str] = logging.INFO) -> int:
    """Install the console format and set the ``lootseed`` logger level.

    The level goes on the package logger rather than the root, so embedding
    applications keep their own root configuration. Returns the level applied.
    """
    level = resolve_level(default_level)
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("lootseed").setLevel(level)
    return level

# quire/utils/utils.py
"""
quire.utils.utils
=================

Configuration and theme helpers for the quire editing core.

Key functionalities include:
- Robust Configuration Loading: a hardcoded, built-in default configuration is
  recursively merged with user settings from `~/.config/quire/config.toml`.
  A missing or corrupted user file never prevents startup.
- Theme Supply: hex colors from the ``[theme]`` section are converted to
  xterm-256 indices and packed into the `Palette` and the 3-color bracket
  cycle the tokenizer consumes.
- Helper Utilities: deep-merging dictionaries and color conversion.
"""

import copy
import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

import toml

if TYPE_CHECKING:
    from quire.core.Tokenizer import Palette


logger = logging.getLogger("quire")

# --- Constants ---
WHITE_FG_IDX = 255
USER_CONFIG_PATH = Path.home() / ".config" / "quire" / "config.toml"

PALETTE_ROLES = (
    "default", "keyword", "string", "number", "comment", "heading", "tag", "attribute",
)
BRACKET_ROLES = ("bracket_1", "bracket_2", "bracket_3")

# Ultimate fallback: the application can always start with these values.
DEFAULT_CONFIG: Dict[str, Any] = {
    "editor": {
        "recovery_enabled": True,
        "recovery_dir": "~/.cache/quire/recovery",
        "check_disk_on_focus": True,
    },
    "theme": {
        "default": "#d0d0d0", "keyword": "#5fafff", "string": "#87d787",
        "number": "#d7af5f", "comment": "#808080", "heading": "#ffaf00",
        "tag": "#ff5f87", "attribute": "#d7afff",
        "bracket_1": "#ffd700", "bracket_2": "#d75fd7", "bracket_3": "#00afff",
    },
    "logging": {
        "file_level": "DEBUG", "console_level": "WARNING",
        "log_to_console": False, "separate_error_log": False,
        "log_file": "editor.log",
    },
}


# --- Helper Functions ---

def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Loads the embedded defaults and merges the user's TOML file over them.
    """
    final_config = copy.deepcopy(DEFAULT_CONFIG)
    logger.debug("Loaded embedded default configuration.")

    user_config_path = Path(config_path) if config_path else USER_CONFIG_PATH
    if user_config_path.is_file():
        try:
            user_config = toml.load(user_config_path)
            final_config = deep_merge(final_config, user_config)
            logger.info(f"Successfully loaded and merged user config from {user_config_path}")
        except (toml.TomlDecodeError, OSError) as e:
            logger.error(f"Could not parse user config '{user_config_path}': {e}. Using defaults.")

    return final_config


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def hex_to_xterm(hex_color: str) -> int:
    """
    Converts a hexadecimal color string to the nearest xterm-256 color index.
    """
    hex_color = hex_color.lstrip("#")
    if len(hex_color) != 6:
        return WHITE_FG_IDX
    try:
        r, g, b = (int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return WHITE_FG_IDX

    if r == g == b:
        if r < 8:
            return 16
        if r > 248:
            return 231
        return round(((r - 8) / 247) * 24) + 232

    return int(
        16
        + (36 * round(r / 255 * 5))
        + (6 * round(g / 255 * 5))
        + round(b / 255 * 5)
    )


def theme_from_config(config: Dict[str, Any]) -> tuple["Palette", tuple[int, int, int]]:
    """
    Builds the tokenizer palette and bracket color cycle from ``config["theme"]``.

    Roles missing from the user's theme fall back to the built-in defaults.
    """
    from quire.core.Tokenizer import Palette

    theme = deep_merge(DEFAULT_CONFIG["theme"], config.get("theme", {}))
    palette = Palette(**{role: hex_to_xterm(str(theme[role])) for role in PALETTE_ROLES})
    b1, b2, b3 = (hex_to_xterm(str(theme[role])) for role in BRACKET_ROLES)
    return palette, (b1, b2, b3)


@functools.lru_cache(maxsize=1)
def default_theme() -> tuple["Palette", tuple[int, int, int]]:
    """
    Theme built from the embedded defaults, for sessions opened without a config.
    """
    return theme_from_config(DEFAULT_CONFIG)

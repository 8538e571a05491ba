# src/structure_shell/core/handlers/config_handler.py
import json
import logging
from typing import List

from structure_shell.core.managers.config_manager import config_manager
from structure_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

USAGE = """
Usage:
  config list                Show the current configuration as JSON.
  config get <key>           Show a single value (e.g., fetcher.time_out).
  config set <key> <value>   Save a config value to the user settings (e.g., analysis.landmarks false).
  config reset               Remove the user settings and go back to the shipped defaults.
"""


def handle_config(args: List[str]) -> int:
    """Handles the 'config' command for viewing and modifying the configuration."""
    if not args:
        print(USAGE)
        return 1

    command = args[0]

    if command == "list":
        print(json.dumps(config_manager.get_all(), indent=2))
        return 0

    if command == "get":
        if len(args) != 2:
            print("Usage: config get <key>")
            return 1
        value = config_manager.get_nested(args[1])
        if value is None:
            print(f"❌ Unknown config key '{args[1]}'.")
            return 1
        print(json.dumps(value, indent=2) if isinstance(value, dict) else value)
        return 0

    if command == "set":
        if len(args) < 3:
            print("Usage: config set <key> <value>")
            return 1
        key_path = args[1]
        value = " ".join(args[2:])

        if value.startswith('"') and value.endswith('"'):
            value = value[1:-1]

        if config_manager.set_nested(key_path, value) and config_manager.save_nested(key_path):
            new_value = config_manager.get_nested(key_path)
            print(f"✅ Config updated: {key_path} = {new_value} (type: {type(new_value).__name__})")
            print(f"   Saved to {PathUtils.get_user_settings_file()}")
            return 0
        print(f"❌ Error: Failed to set config value for key '{key_path}'.")
        return 1

    if command == "reset":
        config_manager.clear_saved()
        print("✅ Configuration has been reset to the values from settings.json.")
        return 0

    print(f"Unknown command: 'config {command}'.")
    return 1

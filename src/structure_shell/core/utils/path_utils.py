# src/structure_shell/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package paths.
    """

    @staticmethod
    def get_shell_package_root() -> Path:
        """Returns the directory of the installed structure_shell package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_shell_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's config directory.
        (e.g., ~/.structure_auditor/)
        """
        return Path.home() / ".structure_auditor"

    @staticmethod
    def get_user_settings_file() -> Path:
        """Settings saved with 'config set'; they override the shipped settings.json."""
        return PathUtils.get_user_config_dir() / "settings.json"

    # --- Helper methods ---

    @staticmethod
    def resolve_markup_file(path: str) -> Path:
        """Expands user and relative paths of a local markup file."""
        return Path(path).expanduser().resolve()

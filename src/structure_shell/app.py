import logging
import sys
from typing import Callable, Dict, List, Optional

from structure_shell.core.handlers.config_handler import handle_config
from structure_shell.core.handlers.structure_handler import handle_analyze, handle_file
from structure_shell.core.managers.config_manager import config_manager
from structure_shell.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)

CommandRegistry: Dict[str, Callable[[List[str]], int]] = {
    "analyze": handle_analyze,
    "file": handle_file,
    "config": handle_config,
}

USAGE = """
Usage: structure-audit <command> [options]

Commands:
  analyze <url> [<url> ...]   Analyze heading and landmark structure of documents.
  file <path>                 Analyze a local HTML file.
  config list|get|set|reset   View or modify the configuration.
"""


def _setup_logging() -> None:
    configure_logger(
        config_manager.get_nested("debug.level", "WARNING"),
        config_manager.get_nested("logging.module_levels"),
        config_manager.get_nested("logging.silenced"),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for the structure-audit command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    _setup_logging()

    if not args or args[0] in ("-h", "--help", "help"):
        print(USAGE)
        return 0 if args else 1

    handler = CommandRegistry.get(args[0])
    if handler is None:
        print(f"Unknown command: '{args[0]}'.")
        print(USAGE)
        return 1

    logger.debug("Dispatching '%s' with %s", args[0], args[1:])
    return handler(args[1:])


if __name__ == "__main__":
    sys.exit(main())

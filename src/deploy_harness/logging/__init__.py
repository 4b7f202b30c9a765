from .config import get_logger, setup_logging
from .correlation import bind_app, bind_scenario, clear_context, get_scenario

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_scenario",
    "bind_app",
    "get_scenario",
    "clear_context",
]

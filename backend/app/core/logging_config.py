# backend/app/core/logging_config.py
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """
    Attach a single stream handler to the root logger.
    Safe to call more than once (uvicorn reloads, tests).
    """
    root = logging.getLogger()

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root.setLevel(level)

    if not any(getattr(h, "_threat_graph", False) for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._threat_graph = True  # type: ignore[attr-defined]
        root.addHandler(console_handler)

    return root

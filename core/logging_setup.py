from __future__ import annotations
import logging


def setup_console_logging(level: int | str = logging.DEBUG) -> None:
    """
    Call once at app start. Prints detailed logs to console.
    Accepts a level number or a level name such as "INFO".
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        # already configured (avoid duplicates)
        root.setLevel(level)
        return

    root.setLevel(level)
    h = logging.StreamHandler()
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
    # uvicorn access lines are noisy at DEBUG
    logging.getLogger("uvicorn.access").setLevel(max(level, logging.INFO))

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once, at application startup.

    Taskflow loggers follow ``level``; third-party libraries are kept at
    WARNING so request logs stay readable.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    for noisy in ("sqlalchemy.engine", "multipart", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

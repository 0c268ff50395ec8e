import logging
import sys


def setup_logging(level: str = "WARNING") -> None:
    numeric = getattr(logging, (level or "WARNING").upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'.")
    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    datefmt = "%H:%M:%S"

    # stderr keeps stdout clean for JSON output and the stdio MCP transport.
    logging.basicConfig(
        level=numeric, format=fmt, datefmt=datefmt, handlers=[logging.StreamHandler(sys.stderr)]
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

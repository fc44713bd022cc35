# hrms_notify/core/logging.py
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(getattr(h, "_hrms_notify", False) for h in root.handlers):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._hrms_notify = True
    root.addHandler(handler)
    root.setLevel(level.upper())

    # the Azure SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)

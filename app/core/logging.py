import logging
import sys

from pythonjsonlogger import jsonlogger

from app.core.config import Settings
from app.core.middleware import current_request_id


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id.get() or "-"
        return True


def configure_logging(settings: Settings) -> None:
    """
    One JSON line per record on stdout:
    {"ts", "level", "logger", "request_id", "message", ...extra}
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
            rename_fields={"asctime": "ts", "levelname": "level", "name": "logger"},
        )
    )

    root = logging.getLogger()
    root.setLevel(level)
    # create_app may run more than once (tests); keep a single handler
    root.handlers = [handler]

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # bridge/IPFS clients are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)

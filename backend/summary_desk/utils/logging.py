# summary_desk/utils/logging.py
import logging
import os
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger
from summary_desk.config import settings

SERVICE_NAME = os.getenv("SERVICE_NAME", "summary-desk")  # override in docker env if desired
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"

# Set per request by the HTTP middleware; asyncio tasks inherit it
request_id_var: ContextVar = ContextVar("request_id", default=None)

class ContextFilter(logging.Filter):
    def filter(self, record):
        # Routes and services pass these through `extra`; default to None if absent
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        if not hasattr(record, "user_id"):
            record.user_id = None
        if not hasattr(record, "document"):
            record.document = None
        record.service = SERVICE_NAME
        return True

base_format = (
    "%(asctime)s %(levelname)s %(service)s %(name)s %(message)s "
    "%(exception)s %(request_id)s %(user_id)s %(document)s"
)

json_formatter = jsonlogger.JsonFormatter(
    base_format,
    rename_fields={"exception": "exception"}
)

logger = logging.getLogger()
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
logger.addFilter(ContextFilter())

# Console / stdout handler (always on for containers)
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(json_formatter)
logger.addHandler(stream_handler)

# Optional file handler
if LOG_TO_FILE:
    file_handler = RotatingFileHandler(
        settings.log_dir / "app.log",
        maxBytes=10_000_000,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setFormatter(json_formatter)
    logger.addHandler(file_handler)

# boto3 logs every request at INFO/DEBUG
logging.getLogger("uvicorn.access").setLevel(logging.INFO)
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

import json
import logging
from datetime import datetime, timezone

LEVEL_TAGS = {"WARNING": "WARN", "CRITICAL": "ERROR"}


class ConsoleFormatter(logging.Formatter):
    """`[INFO] message` style lines."""

    def format(self, record):
        tag = LEVEL_TAGS.get(record.levelname, record.levelname)
        message = f"[{tag}] {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            message += "\n" + self.formatException(record.exc_info)
        return message


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_data"):
            log_entry.update(record.extra_data)
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(verbose: bool = False, json_output: bool = False):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())

    root_logger = logging.getLogger("smartspend")
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.propagate = False

    # Quiet noisy loggers
    logging.getLogger("PIL").setLevel(logging.WARNING)

    return root_logger

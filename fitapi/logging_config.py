import json
import logging
import logging.config
import sys

# LogRecord 기본 속성 - extra 로 넘긴 필드만 골라내기 위해 사용
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; fields passed via ``extra=`` are kept."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(log_level: str = "INFO", json_format: bool = False, sql_echo: bool = False):
    """Configure the ``fitapi`` loggers.

    Application logs go to stdout; WARNING and above from ``fitapi`` are also
    written to stderr so failed wallet operations stand out in Lambda/CloudWatch.
    """
    level = log_level.upper()
    text_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {"format": text_format},
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "json" if json_format else "text",
                },
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stderr,
                    "formatter": "json" if json_format else "text",
                    "level": "WARNING",
                },
            },
            "root": {"handlers": ["stdout"], "level": level},
            "loggers": {
                "fitapi": {
                    "handlers": ["stdout", "stderr"],
                    "level": level,
                    "propagate": False,
                },
                # 요청 로그는 LoggingMiddleware 가 남김
                "uvicorn.access": {"level": "WARNING"},
                "sqlalchemy.engine": {"level": "INFO" if sql_echo else "WARNING"},
            },
        }
    )

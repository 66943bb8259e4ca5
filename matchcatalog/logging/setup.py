import re
import sys
import logging
from typing import Any

from loguru import logger

from matchcatalog.config.settings import settings

MASK = "********"
SENSITIVE_KEYS = ["token", "bogus", "secret", "cookie", "password"]

# Signed query parameters that show up in logged request URLs
SENSITIVE_QUERY_PATTERN = re.compile(r"((?:msToken|a_bogus|verifyFp|fp)=)[^&\s]+")


def mask_text(text: str) -> str:
    """Masks configured secrets and signed query parameters in a string."""
    text = SENSITIVE_QUERY_PATTERN.sub(rf"\1{MASK}", text)
    for secret in (settings.douyin_ms_token, settings.douyin_a_bogus):
        if secret and secret in text:
            text = text.replace(secret, MASK)
    return text


def sensitive_data_filter(record: dict[str, Any]) -> bool:
    """Filter function to mask sensitive data in log records."""

    def mask_value(key: str, value: Any) -> Any:
        if isinstance(value, str):
            if any(sk in key.lower() for sk in SENSITIVE_KEYS):
                return value[:4] + "****" + value[-4:] if len(value) > 8 else MASK
            return mask_text(value)
        if isinstance(value, dict):
            return {k: mask_value(str(k), v) for k, v in value.items()}
        if isinstance(value, list):
            return [mask_value(key, item) for item in value]
        return value

    if "extra" in record and isinstance(record["extra"], dict):
        for extra_key, extra_value in list(record["extra"].items()):
            record["extra"][extra_key] = mask_value(extra_key, extra_value)

    record["message"] = mask_text(record["message"])
    return True  # Keep the record after filtering/masking


class InterceptHandler(logging.Handler):
    """Routes standard logging records (httpx, httpcore) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging() -> None:
    """Configures Loguru logger based on application settings."""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=True,
        filter=sensitive_data_filter,
    )

    logger.info(f"Logging initialized with level: {settings.log_level}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # httpx logs every request at INFO; keep that noise at WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Standard logging intercepted.")

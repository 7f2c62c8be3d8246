import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_PACKAGE_LOGGER = "curriculum_planner"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level.upper())

    # 리로드 시 핸들러 중복 등록 방지
    if not any(getattr(handler, "_curriculum_planner", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._curriculum_planner = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.propagate = False
    return logger

import logging
import os

import colorlog


def configure_logger(name: str = "yolo_postkit") -> logging.Logger:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    formatter = colorlog.ColoredFormatter(
        "[{asctime}]{log_color}[{levelname:^8s}] ({name}:{lineno}): {message}",
        style="{",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        },
    )

    console_handler.setFormatter(formatter)
    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger

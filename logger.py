# logger.py
import os
import logging
from logging.handlers import RotatingFileHandler

from config import DEFAULT_CONFIG, merge_config

LOGGER_NAME = "POS_Billing"

FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(config=None, debug=False):
    """
    Configure the application logger from the `logging` config section.
    Child loggers (POS_Billing.API, POS_Billing.Print, ...) inherit it.

    Called without a config, only the console handler is attached; main()
    does that before the config file is read and calls again afterwards.
    """
    log_config = merge_config(DEFAULT_CONFIG["logging"], (config or {}).get("logging", {}))

    logger = logging.getLogger(LOGGER_NAME)

    # Reconfiguring replaces the old handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(str(log_config["level"]).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(logging.DEBUG if debug else level)

    formatter = logging.Formatter(FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config is not None and log_config.get("file"):
        try:
            # Ensure log directory exists
            log_dir = os.path.dirname(log_config["file"])
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_config["file"],
                maxBytes=log_config["max_size"],
                backupCount=log_config["backup_count"],
                encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Failed to set up file logging: {str(e)}")

    if debug:
        logger.debug("Debug mode enabled")
    return logger

import logging
import sys


def setup_logging(log_level_str="INFO", name="services"):
    # Convert string to logging level (default to INFO if invalid)
    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)

    # Module loggers under services.* inherit this configuration
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Disable propagation to the root logger
    logger.propagate = False

    # Avoid adding duplicate handlers
    if not logger.handlers:
        # stdout carries the MCP stdio protocol, so logs go to stderr
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

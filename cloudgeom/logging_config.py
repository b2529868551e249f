"""Logging setup for cloudgeom.

Library modules only call logging.getLogger(__name__); handlers are attached
here, once, by whoever drives the processing (CloudPipeline.run or a script).
"""
import logging
from typing import Optional

from tqdm import tqdm

PACKAGE_LOGGER = "cloudgeom"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(logging.Handler):
    """Console handler that prints through tqdm.write.

    Keeps log lines from tearing the progress bar drawn by
    CloudPipeline.process_many.
    """

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
        except Exception:
            self.handleError(record)


def setup_logging(level: int = logging.INFO,
                  log_file: Optional[str] = None) -> logging.Logger:
    """Attach console (and optionally file) handlers to the cloudgeom logger.

    Calling it again replaces the handlers, so a pipeline can be re-run with
    a different configuration.

    Args:
        level: Threshold for the package logger and its handlers.
        log_file: Optional path; the file is overwritten.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    handlers = [TqdmLoggingHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger

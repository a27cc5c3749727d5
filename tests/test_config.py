import logging

from cardflow.config import LOG_FORMAT, configure_logging


def test_configure_logging_installs_single_stdout_handler():
    logger = logging.getLogger("cardflow")
    saved = (logger.handlers[:], logger.level)
    try:
        configure_logging("debug")
        configure_logging("warning")

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT
        assert logging.getLogger("cardflow.store").getEffectiveLevel() == logging.WARNING
    finally:
        logger.handlers = saved[0]
        logger.setLevel(saved[1])

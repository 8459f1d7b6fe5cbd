import logging

import pytest

from voice_relay.config.constants import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset root and relay logging before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)

    relay_logger = logging.getLogger(LOGGER_NAME)
    propagate, level = relay_logger.propagate, relay_logger.level
    yield
    relay_logger.propagate = propagate
    relay_logger.setLevel(level)

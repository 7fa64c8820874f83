import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler

from vconlens.logging_utils import setup_logging


def test_setup_logging_adds_handlers_once():
    with tempfile.TemporaryDirectory() as tmp:
        logger, path = setup_logging(log_dir=tmp)
        try:
            setup_logging(log_dir=tmp, level=logging.DEBUG, console=True)
            setup_logging(log_dir=tmp, console=True)
            kinds = [type(h) for h in logger.handlers]

            assert path == os.path.join(tmp, "vconlens.log")
            assert kinds.count(RotatingFileHandler) == 1
            assert kinds.count(logging.StreamHandler) == 1
            assert logger.level == logging.INFO

            logger.info("store ready")
            for handler in logger.handlers:
                handler.flush()
            with open(path, "r", encoding="utf-8") as handle:
                assert "INFO vconlens store ready" in handle.read()
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

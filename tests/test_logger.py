import logging
import pytest

from anisync.utils.logger import resolve_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_writes_to_storage_log(tmp_path, restore_root_logger):
    log_file = tmp_path / "storage" / "anisync.log"

    setup_logging("debug", log_file=log_file)
    logging.getLogger("anisync.test").debug("polling player")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 2
    assert "polling player" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_console_only(restore_root_logger):
    setup_logging(logging.WARNING)
    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 1


def test_resolve_level():
    assert resolve_level("info") == logging.INFO
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("chatty") == logging.INFO

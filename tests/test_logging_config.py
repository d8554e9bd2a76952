"""Tests for CLI logging setup."""

import logging

from s3_httpcache.logging_config import LOGGER_NAME, _rotate_log_if_needed, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_stream_handler_level_follows_verbose(self):
        quiet = setup_logging(verbose=False)
        assert [h.level for h in quiet.handlers] == [logging.WARNING]

        loud = setup_logging(verbose=True)
        assert [h.level for h in loud.handlers] == [logging.DEBUG]

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert logger.name == LOGGER_NAME

    def test_log_file_receives_debug_records(self, tmp_path):
        log_file = tmp_path / "logs" / "s3cache.log"
        logger = setup_logging(log_file=log_file)

        logging.getLogger(f"{LOGGER_NAME}.cache").debug("cache miss for key")
        for handler in logger.handlers:
            handler.flush()

        assert "cache miss for key" in log_file.read_text()
        setup_logging()


class TestRotateLog:
    """Tests for startup log rotation."""

    def test_small_file_not_rotated(self, tmp_path):
        log_file = tmp_path / "s3cache.log"
        log_file.write_text("short")

        _rotate_log_if_needed(log_file, max_bytes=100)

        assert log_file.read_text() == "short"

    def test_large_file_rotated(self, tmp_path):
        log_file = tmp_path / "s3cache.log"
        log_file.write_text("x" * 200)
        (tmp_path / "s3cache.log.1").write_text("older")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=3)

        assert not log_file.exists()
        assert (tmp_path / "s3cache.log.1").read_text() == "x" * 200
        assert (tmp_path / "s3cache.log.2").read_text() == "older"

    def test_oldest_backup_dropped(self, tmp_path):
        log_file = tmp_path / "s3cache.log"
        log_file.write_text("x" * 200)
        (tmp_path / "s3cache.log.1").write_text("one")
        (tmp_path / "s3cache.log.2").write_text("two")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=2)

        assert (tmp_path / "s3cache.log.1").read_text() == "x" * 200
        assert (tmp_path / "s3cache.log.2").read_text() == "one"
        assert not (tmp_path / "s3cache.log.3").exists()

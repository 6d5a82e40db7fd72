"""
Unit tests for StructuredLogger.
"""

import json
import pytest
from pathlib import Path
import sys

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from tablediff.utils.logger import StructuredLogger, configure_logging, get_logger


class TestStructuredLogger:
    """Test cases for StructuredLogger."""

    def test_console_respects_level(self, capsys):
        logger = StructuredLogger(level="WARN")

        logger.info("diff_engine.compare.start", old_records=3)
        logger.warning("diff_engine.index.duplicate_keys", duplicates=1)

        err = capsys.readouterr().err
        assert "diff_engine.compare.start" not in err
        assert "WARN  | diff_engine.index.duplicate_keys" in err
        assert "  duplicates=1" in err

    def test_file_receives_every_entry(self, tmp_path, capsys):
        log_file = tmp_path / "diff.log"
        logger = StructuredLogger(log_file=log_file, level="ERROR")

        logger.debug("worker.submit", executor="thread")
        logger.error("worker.failed", error="boom")

        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [e["message"] for e in entries] == ["worker.submit", "worker.failed"]
        assert entries[0]["level"] == "DEBUG"
        assert entries[1]["context"] == {"error": "boom"}
        assert entries[1]["logger"] == "table-diff"

    def test_warning_alias_and_unknown_level(self):
        logger = StructuredLogger(level="warning")

        assert logger.level == 30
        with pytest.raises(ValueError):
            logger.set_level("LOUD")

    def test_configure_logging_updates_shared_instance(self, tmp_path):
        shared = get_logger()
        original_level, original_file = shared.level, shared.log_file
        try:
            configured = configure_logging("DEBUG", tmp_path / "x.log")

            assert configured is shared
            assert shared.level == 10
            assert shared.log_file == tmp_path / "x.log"
        finally:
            shared.level, shared.log_file = original_level, original_file

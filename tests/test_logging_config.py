import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from loguru import logger

from chatgpt_desk.logging_config import LOG_FILE_NAME, default_log_consumers, setup_logging


PROJECT_ROOT = Path(__file__).resolve().parents[1]


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"logging-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        logger.remove()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_default_file_lives_in_the_data_directory(self) -> None:
        descriptions = setup_logging("DEBUG", None, log_dir=self._tmp_dir)
        logger.info("store opened")
        logger.remove()

        log_file = self._tmp_dir / LOG_FILE_NAME
        self.assertEqual(["console (stderr, WARNING)", f"file ({log_file}, DEBUG)"], descriptions)
        self.assertIn("store opened", log_file.read_text(encoding="utf-8"))

    def test_relative_paths_resolve_under_the_data_directory(self) -> None:
        consumers = [{"type": "file", "path": "logs/debug.log", "level": "WARNING"}]

        setup_logging("INFO", consumers, log_dir=self._tmp_dir)
        logger.info("below threshold")
        logger.warning("kept")
        logger.remove()

        text = (self._tmp_dir / "logs" / "debug.log").read_text(encoding="utf-8")
        self.assertIn("kept", text)
        self.assertNotIn("below threshold", text)
        self.assertFalse((Path.cwd() / "logs" / "debug.log").exists())

    def test_absolute_paths_are_kept(self) -> None:
        target = self._tmp_dir / "elsewhere" / "app.log"

        descriptions = setup_logging("INFO", [{"type": "file", "path": str(target)}], log_dir=self._tmp_dir / "data")

        self.assertEqual([f"file ({target}, INFO)"], descriptions)

    def test_unknown_consumer_types_are_skipped(self) -> None:
        descriptions = setup_logging("INFO", [{"type": "syslog"}, {"type": "console"}], log_dir=self._tmp_dir)

        self.assertEqual(["console (stderr, INFO)"], descriptions)

    def test_default_consumers_follow_the_configured_level(self) -> None:
        self.assertEqual(
            [
                {"type": "console", "level": "WARNING"},
                {"type": "file", "path": LOG_FILE_NAME, "level": "DEBUG"},
            ],
            default_log_consumers("DEBUG"),
        )


if __name__ == "__main__":
    unittest.main()

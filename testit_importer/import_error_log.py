"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Dedicated log of test cases that failed to import.

Each failure gets its own file under ``<result_path>/import_error_logs`` with
the full traceback and the test case data, so a failed test case can be
fixed in the export and imported again.
"""

import logging
import traceback
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger("testit_importer.import_error_log")

ERROR_LOG_DIRECTORY = "import_error_logs"
SEPARATOR = "-" * 25


class TestCaseErrorLog:
    """Writes per-test-case failures into timestamped files."""

    __test__ = False

    def __init__(self, result_path: str | Path):
        self.directory = Path(result_path) / ERROR_LOG_DIRECTORY
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                f"Failed to create directory for test case error logs at {self.directory}: {e}"
            )

    def log_error(
        self, error: BaseException, context: str, test_case: BaseModel | None = None
    ) -> Path | None:
        """
        Write one failure to its own file; problems writing it are only logged.

        Args:
            error: The exception that stopped the test case
            context: What was being done
            test_case: The test case being imported

        Returns:
            Path of the written file, or None when writing failed
        """
        now = datetime.now()
        path = self.directory / f"testcase_processing_error_{now:%Y%m%d_%H%M%S_%f}.log"

        lines = [
            f"Timestamp: {now:%Y-%m-%d %H:%M:%S.%f}",
            f"Context: {context}",
            "--- Exception Details ---",
            "".join(traceback.format_exception(error)).rstrip(),
            SEPARATOR,
        ]
        if test_case is not None:
            lines += [
                "Problematic Test Case (Full Data):",
                test_case.model_dump_json(by_alias=True, indent=2),
                SEPARATOR,
            ]

        try:
            with open(path, "a", encoding="utf-8") as log_file:
                log_file.write("\n".join(lines) + "\n")
        except OSError as e:
            logger.error(f"Failed to write to the test case error log file: {e}")
            logger.error(f"Original Error Context: {context}. Original Exception: {error!r}")
            return None

        logger.info(f"Test case processing error logged to: {path}")
        return path

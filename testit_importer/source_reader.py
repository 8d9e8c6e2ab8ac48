"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Reader for the export directory.

The export is laid out as::

    <result_path>/Main.json
    <result_path>/<id>/sharedStep.json
    <result_path>/<id>/testCase.json
    <result_path>/<id>/<attachment file>
"""

import asyncio
import json
import logging
import zipfile
from pathlib import Path
from typing import TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from testit_importer.exceptions import SourceReadError
from testit_importer.models import ExportManifest, SharedStep, TestCase

logger = logging.getLogger("testit_importer.source_reader")

MAIN_JSON = "Main.json"
SHARED_STEP_JSON = "sharedStep.json"
TEST_CASE_JSON = "testCase.json"
MAX_ATTACHMENT_SIZE = 1024 * 1024 * 1024

ModelT = TypeVar("ModelT", bound=BaseModel)


class ExportReader:
    """Reads the manifest, work items and attachment files of one export."""

    def __init__(self, result_path: str | Path):
        self.result_path = Path(result_path)

    def _load(self, path: Path, model: type[ModelT], what: str) -> ModelT:
        if not path.is_file():
            logger.error(f"{what} file not found: {path}")
            raise SourceReadError(f"{what} file not found", path)

        text = path.read_text(encoding="utf-8-sig")
        if not text.strip():
            logger.error(f"{what} file is empty: {path}")
            raise SourceReadError(f"{what} file is empty", path)

        try:
            return model.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"{what} file could not be parsed: {path}: {e}")
            raise SourceReadError(f"{what} file could not be parsed: {e}", path) from e

    async def read_manifest(self) -> ExportManifest:
        path = self.result_path / MAIN_JSON
        return await asyncio.to_thread(self._load, path, ExportManifest, "Main json")

    async def read_shared_step(self, shared_step_id: UUID) -> SharedStep:
        path = self.result_path / str(shared_step_id) / SHARED_STEP_JSON
        return await asyncio.to_thread(self._load, path, SharedStep, "Shared step")

    async def read_test_case(self, test_case_id: UUID) -> TestCase:
        path = self.result_path / str(test_case_id) / TEST_CASE_JSON
        return await asyncio.to_thread(self._load, path, TestCase, "Test case")

    async def get_attachment(self, item_id: UUID, file_name: str) -> Path:
        """
        Locate an attachment of a work item.

        Files larger than 1 GiB are packed into ``<stem>.zip`` next to the
        original, replacing an earlier archive, and the archive is returned.

        Args:
            item_id: Id of the shared step or test case owning the file
            file_name: Name of the file inside the item's directory

        Returns:
            Path of the file to upload

        Raises:
            SourceReadError: If the file does not exist
        """
        return await asyncio.to_thread(self._locate_attachment, item_id, file_name)

    def _locate_attachment(self, item_id: UUID, file_name: str) -> Path:
        path = self.result_path / str(item_id) / file_name
        if not path.is_file():
            logger.error(f"Attachment file not found: {path}")
            raise SourceReadError("Attachment file not found", path)

        size = path.stat().st_size
        if size <= MAX_ATTACHMENT_SIZE:
            return path

        logger.info(f"The file {path} is large: {size}. Compressing")
        zip_path = path.with_name(f"{path.stem}.zip")
        zip_path.unlink(missing_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.write(path, arcname=path.name)
        return zip_path

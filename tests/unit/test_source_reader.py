"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

import uuid
import zipfile
from unittest.mock import patch

import pytest

from testit_importer.exceptions import SourceReadError
from testit_importer.models import AttributeType, LinkType, StateType
from testit_importer.source_reader import ExportReader
from tests.fixtures.export import (
    LOGIN_SECTION_ID,
    PROJECT_NAME,
    SHARED_STEP_ID,
    TEST_CASE_ID,
)


@pytest.mark.unit
class TestExportReader:
    @pytest.mark.asyncio
    async def test_read_manifest(self, export_dir):
        manifest = await ExportReader(export_dir).read_manifest()

        assert manifest.project_name == PROJECT_NAME
        assert [a.type for a in manifest.attributes] == [AttributeType.OPTIONS, AttributeType.STRING]
        assert manifest.sections[0].sections[0].id == uuid.UUID(LOGIN_SECTION_ID)
        assert manifest.shared_steps == [uuid.UUID(SHARED_STEP_ID)]
        assert manifest.test_cases == [uuid.UUID(TEST_CASE_ID)]

    @pytest.mark.asyncio
    async def test_read_work_items(self, export_dir):
        reader = ExportReader(export_dir)

        shared_step = await reader.read_shared_step(uuid.UUID(SHARED_STEP_ID))
        test_case = await reader.read_test_case(uuid.UUID(TEST_CASE_ID))

        assert shared_step.steps[0].action_attachments == ["login.png"]
        assert test_case.state == StateType.NEEDS_WORK
        assert test_case.links[0].type == LinkType.DEFECT
        assert test_case.iterations[1].parameters[0].value == ""
        assert test_case.steps[0].shared_step_id == uuid.UUID(SHARED_STEP_ID)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(SourceReadError) as excinfo:
            await ExportReader(tmp_path).read_manifest()

        assert isinstance(excinfo.value, FileNotFoundError)
        assert excinfo.value.path == tmp_path / "Main.json"

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path):
        (tmp_path / "Main.json").write_text("  \n")

        with pytest.raises(SourceReadError, match="empty"):
            await ExportReader(tmp_path).read_manifest()

    @pytest.mark.asyncio
    async def test_invalid_file(self, tmp_path):
        item_id = uuid.uuid4()
        (tmp_path / str(item_id)).mkdir()
        (tmp_path / str(item_id) / "testCase.json").write_text('{"name": "no id"}')

        with pytest.raises(SourceReadError, match="parsed"):
            await ExportReader(tmp_path).read_test_case(item_id)

    @pytest.mark.asyncio
    async def test_get_attachment(self, export_dir):
        path = await ExportReader(export_dir).get_attachment(uuid.UUID(TEST_CASE_ID), "server.log")

        assert path == export_dir / TEST_CASE_ID / "server.log"

    @pytest.mark.asyncio
    async def test_missing_attachment(self, export_dir):
        with pytest.raises(SourceReadError):
            await ExportReader(export_dir).get_attachment(uuid.UUID(TEST_CASE_ID), "gone.png")

    @pytest.mark.asyncio
    async def test_large_attachment_is_zipped(self, export_dir):
        item_dir = export_dir / TEST_CASE_ID
        (item_dir / "server.zip").write_bytes(b"stale archive")

        with patch("testit_importer.source_reader.MAX_ATTACHMENT_SIZE", 5):
            path = await ExportReader(export_dir).get_attachment(
                uuid.UUID(TEST_CASE_ID), "server.log"
            )

        assert path == item_dir / "server.zip"
        with zipfile.ZipFile(path) as archive:
            assert archive.namelist() == ["server.log"]
            assert archive.read("server.log") == b"ERROR invalid password"

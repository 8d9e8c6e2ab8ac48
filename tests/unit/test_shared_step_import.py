"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from testit_importer.exceptions import TmsApiError
from testit_importer.models import CaseAttribute, PriorityType, SharedStep, StateType, Step
from testit_importer.shared_step_import import SharedStepImporter
from testit_importer.tms_models import TmsAttribute


def make_shared_step(section_id, **overrides) -> SharedStep:
    values = {
        "id": uuid.uuid4(),
        "name": "Open login page",
        "state": StateType.READY,
        "priority": PriorityType.MEDIUM,
        "section_id": section_id,
    }
    values.update(overrides)
    return SharedStep(**values)


@pytest.mark.unit
class TestSharedStepImporter:
    @pytest.fixture
    def section_id(self):
        return uuid.uuid4()

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.import_shared_step = AsyncMock(side_effect=lambda *args: uuid.uuid4())
        return client

    @pytest.fixture
    def linker(self):
        linker = MagicMock()
        linker.upload_attachments = AsyncMock(return_value={})
        return linker

    @pytest.mark.asyncio
    async def test_maps_source_ids_to_created_ids(self, client, linker, section_id):
        steps = [make_shared_step(section_id), make_shared_step(section_id, name="Log out")]
        reader = MagicMock()
        reader.read_shared_step = AsyncMock(side_effect=steps)
        new_section = uuid.uuid4()

        shared_step_map = await SharedStepImporter(client, reader, linker).import_shared_steps(
            uuid.uuid4(), [s.id for s in steps], {section_id: new_section}, {}
        )

        assert list(shared_step_map) == [s.id for s in steps]
        assert len(set(shared_step_map.values())) == 2
        assert all(call.args[1] == new_section for call in client.import_shared_step.await_args_list)

    @pytest.mark.asyncio
    async def test_converts_attributes_and_attachments(self, client, linker, section_id):
        source_attribute_id = uuid.uuid4()
        tms_attribute = TmsAttribute(id=uuid.uuid4(), name="Component", type="string")
        attachment_id = uuid.uuid4()
        linker.upload_attachments.return_value = {"a.png": attachment_id}
        step = make_shared_step(
            section_id,
            attributes=[CaseAttribute(id=source_attribute_id, value="auth")],
            attachments=["a.png"],
            steps=[Step(action="<p>x<<<a.png>>></p>", action_attachments=["a.png"])],
        )
        reader = MagicMock()
        reader.read_shared_step = AsyncMock(return_value=step)

        await SharedStepImporter(client, reader, linker).import_shared_steps(
            uuid.uuid4(), [step.id], {section_id: uuid.uuid4()}, {source_attribute_id: tms_attribute}
        )

        submitted = client.import_shared_step.await_args.args[2]
        assert submitted.attributes == [CaseAttribute(id=tms_attribute.id, value="auth")]
        assert submitted.attachments == [str(attachment_id)]
        assert submitted.steps[0].action == (
            f'<p>x</p><p> <img src="/api/Attachments/{attachment_id}"> </p>'
        )

    @pytest.mark.asyncio
    async def test_failure_aborts(self, client, linker, section_id):
        steps = [make_shared_step(section_id), make_shared_step(section_id)]
        reader = MagicMock()
        reader.read_shared_step = AsyncMock(side_effect=steps)
        client.import_shared_step.side_effect = TmsApiError("Bad Request", status_code=400)

        with pytest.raises(TmsApiError):
            await SharedStepImporter(client, reader, linker).import_shared_steps(
                uuid.uuid4(), [s.id for s in steps], {section_id: uuid.uuid4()}, {}
            )

        assert client.import_shared_step.await_count == 1

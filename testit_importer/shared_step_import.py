"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Import of shared steps.
"""

import logging
from uuid import UUID

from testit_importer.attachment_linker import AttachmentLinker, add_attachments_to_steps
from testit_importer.models import SharedStep
from testit_importer.source_reader import ExportReader
from testit_importer.tms_client import TmsClient
from testit_importer.tms_models import TmsAttribute
from testit_importer.work_item import convert_attributes

logger = logging.getLogger("testit_importer.shared_step_import")


class SharedStepImporter:
    """Imports shared steps; any failure stops the import."""

    def __init__(self, client: TmsClient, reader: ExportReader, linker: AttachmentLinker):
        self.client = client
        self.reader = reader
        self.linker = linker

    async def import_shared_steps(
        self,
        project_id: UUID,
        shared_step_ids: list[UUID],
        section_map: dict[UUID, UUID],
        attribute_map: dict[UUID, TmsAttribute],
    ) -> dict[UUID, UUID]:
        """
        Import the shared steps listed in the manifest.

        Returns:
            Mapping of exported shared step id to created work item id
        """
        logger.info("Importing shared steps")

        shared_step_map: dict[UUID, UUID] = {}
        for shared_step_id in shared_step_ids:
            shared_step = await self.reader.read_shared_step(shared_step_id)
            shared_step_map[shared_step.id] = await self._import_shared_step(
                project_id, shared_step, section_map, attribute_map
            )

        logger.info(f"Imported {len(shared_step_map)} shared steps")
        return shared_step_map

    async def _import_shared_step(
        self,
        project_id: UUID,
        shared_step: SharedStep,
        section_map: dict[UUID, UUID],
        attribute_map: dict[UUID, TmsAttribute],
    ) -> UUID:
        attributes = await convert_attributes(self.client, shared_step.attributes, attribute_map)
        attachments = await self.linker.upload_attachments(shared_step.id, shared_step.attachments)
        section_id = section_map[shared_step.section_id]

        converted = shared_step.model_copy(
            update={
                "attributes": attributes,
                "attachments": [str(attachment_id) for attachment_id in attachments.values()],
                "steps": add_attachments_to_steps(shared_step.steps, attachments),
            }
        )

        logger.debug(f"Importing shared step {shared_step.name} to section {section_id}")
        step_id = await self.client.import_shared_step(project_id, section_id, converted)
        logger.debug(
            f"Imported shared step {shared_step.name} with id {step_id} to section {section_id}"
        )
        return step_id

"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Replication of the section tree.
"""

import logging
from uuid import UUID

from testit_importer.models import Section
from testit_importer.tms_client import TmsClient

logger = logging.getLogger("testit_importer.section_import")


class SectionReplicator:
    """Recreates the exported section tree under the project's root section."""

    def __init__(self, client: TmsClient):
        self.client = client

    async def import_sections(self, project_id: UUID, sections: list[Section]) -> dict[UUID, UUID]:
        """
        Create every section, parents before children, siblings in order.

        Args:
            project_id: Id of the target project
            sections: Top-level exported sections

        Returns:
            Mapping of exported section id to created section id
        """
        logger.info("Importing sections")

        root_id = await self.client.get_root_section_id(project_id)
        section_map: dict[UUID, UUID] = {}
        for section in sections:
            await self._import_section(project_id, root_id, section, section_map)

        logger.info(f"Imported {len(section_map)} sections")
        return section_map

    async def _import_section(
        self,
        project_id: UUID,
        parent_id: UUID,
        section: Section,
        section_map: dict[UUID, UUID],
    ) -> None:
        logger.debug(f"Importing section {section.name} to parent section {parent_id}")

        section_id = await self.client.create_section(project_id, parent_id, section)
        section_map[section.id] = section_id

        for child in section.sections:
            await self._import_section(project_id, section_id, child, section_map)

        logger.debug(f"Imported section {section.name} to parent section {parent_id}")

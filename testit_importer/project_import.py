"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Resolution of the target project.
"""

import logging
from uuid import UUID

from testit_importer.exceptions import ProjectCollisionError
from testit_importer.tms_client import TmsClient

logger = logging.getLogger("testit_importer.project_import")


class ProjectResolver:
    """
    Finds or creates the Test IT project an export is imported into.

    Args:
        client: Test IT API client
        project_name: Name overriding the exported project name, if not empty
        import_to_existing_project: Whether an existing project may be reused
    """

    def __init__(
        self,
        client: TmsClient,
        project_name: str = "",
        import_to_existing_project: bool = False,
    ):
        self.client = client
        self.project_name = project_name
        self.import_to_existing_project = import_to_existing_project

    async def resolve(self, exported_name: str) -> UUID:
        """
        Return the id of the project to import into.

        Raises:
            ProjectCollisionError: If the project exists and reuse is disabled
        """
        name = self.project_name or exported_name
        logger.info(f"Importing project {name}")

        # The remote search matches substrings
        candidates = await self.client.search_projects(name)
        existing = next((project for project in candidates if project.name == name), None)

        if existing is not None:
            if not self.import_to_existing_project:
                logger.error(f"Project with the same name already exists: {name}")
                raise ProjectCollisionError(name)
            logger.info(f"Reusing existing project {name} ({existing.id})")
            return existing.id

        project_id = await self.client.create_project(name)
        logger.info(f"Created project {name} ({project_id})")
        return project_id

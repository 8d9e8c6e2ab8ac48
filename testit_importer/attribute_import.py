"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Attribute Reconciliation.

This module binds every exported custom attribute to a global Test IT
attribute of the same type. Attributes are matched by name; a name taken by
an attribute of another type is renamed to ``"<name> (n)"``. Options of
matched option attributes are merged, missing attributes are created, and
project-required attributes that end up unused are made optional so that
imported work items can be saved.
"""

import logging
from uuid import UUID

from testit_importer.models import Attribute, AttributeType
from testit_importer.tms_client import TmsClient
from testit_importer.tms_models import TmsAttribute, TmsAttributeOption

logger = logging.getLogger("testit_importer.attribute_import")

# Option attributes cannot be created without at least one option
PLACEHOLDER_OPTION = "null"
OPTION_TYPES = (AttributeType.OPTIONS, AttributeType.MULTIPLE_OPTIONS)


class AttributeReconciler:
    """Matches, creates and updates Test IT attributes for an export."""

    def __init__(self, client: TmsClient):
        self.client = client
        self.known: list[TmsAttribute] = []
        self.claimed_names: set[str] = set()

    async def import_attributes(
        self, project_id: UUID, attributes: list[Attribute]
    ) -> dict[UUID, TmsAttribute]:
        """
        Reconcile the exported attributes with the Test IT instance.

        Args:
            project_id: Id of the target project
            attributes: Attributes defined by the export

        Returns:
            Mapping of exported attribute id to the bound Test IT attribute
        """
        logger.info("Importing attributes")

        self.known = await self.client.search_attributes()
        self.claimed_names = set()
        required = await self.client.get_required_project_attributes(project_id)

        attribute_map: dict[UUID, TmsAttribute] = {}
        for attribute in attributes:
            attribute_map[attribute.id] = await self._bind(attribute)

        bound_ids = {bound.id for bound in attribute_map.values()}
        for required_attribute in required:
            if required_attribute.id in bound_ids:
                continue
            logger.info(
                f"Required project attribute {required_attribute.name} is not used when "
                f"importing test cases. Set as optional"
            )
            await self.client.update_project_attribute(
                project_id, required_attribute.model_copy(update={"is_required": False})
            )

        logger.info("Importing attributes finished")
        names = {str(source_id): bound.name for source_id, bound in attribute_map.items()}
        logger.debug(f"Attributes map: {names}")

        if attribute_map:
            attribute_ids = list(dict.fromkeys(bound.id for bound in attribute_map.values()))
            await self.client.add_attributes_to_project(project_id, attribute_ids)

        return attribute_map

    def _find(self, name: str) -> TmsAttribute | None:
        return next((known for known in self.known if known.name == name), None)

    def _replace_known(self, attribute: TmsAttribute) -> None:
        self.known = [attribute if known.id == attribute.id else known for known in self.known]

    async def _bind(self, attribute: Attribute) -> TmsAttribute:
        name = attribute.name
        while True:
            existing = self._find(name)

            if existing is None:
                return await self._create(attribute, name)

            if existing.same_type(attribute.type):
                logger.info(f"Attribute {name} already exists with id {existing.id}")
                if existing.has_options:
                    return await self._merge_options(existing, attribute.options)
                return existing

            name = self._rename(attribute)
            logger.info(
                f"Attribute {attribute.name} exists with type {existing.type}, "
                f"importing as {name}"
            )

    def _rename(self, attribute: Attribute) -> str:
        """Smallest ``"<name> (n)"`` not taken by another type or an earlier rename."""

        def collides(candidate: str) -> bool:
            if candidate in self.claimed_names:
                return True
            return any(
                known.name == candidate and not known.same_type(attribute.type)
                for known in self.known
            )

        n = 1
        candidate = f"{attribute.name} ({n})"
        while collides(candidate):
            n += 1
            candidate = f"{attribute.name} ({n})"

        self.claimed_names.add(candidate)
        return candidate

    async def _create(self, attribute: Attribute, name: str) -> TmsAttribute:
        logger.info(f"Creating attribute {name}")

        options = attribute.options
        if attribute.type in OPTION_TYPES and not options:
            options = [PLACEHOLDER_OPTION]

        created = await self.client.create_attribute(
            attribute.model_copy(update={"name": name, "options": options})
        )
        created = await self.client.get_attribute(created.id)
        self.known.append(created)
        return created

    async def _merge_options(self, existing: TmsAttribute, options: list[str]) -> TmsAttribute:
        values = existing.option_values()
        new_options = [
            TmsAttributeOption(value=option)
            for option in dict.fromkeys(options)
            if option and option not in values
        ]
        if not new_options:
            return existing

        logger.debug(f"Adding {len(new_options)} options to attribute {existing.name}")
        await self.client.update_attribute(
            existing.model_copy(update={"options": existing.options + new_options})
        )
        refreshed = await self.client.get_attribute(existing.id)
        self._replace_known(refreshed)
        return refreshed

"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Import orchestration.

This module runs the import phases in their fixed order and passes the id
maps each phase produces on to the phases that need them:

    project -> sections -> attributes -> shared steps -> test cases

Every phase except the import of single test cases is fatal on failure.

The maps are not changed after the phase that builds them, with one
exception: the attribute map. Shared step and test case import replace a bound
attribute with its refreshed record when a multiple-options value adds options.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from testit_importer.attachment_linker import AttachmentLinker
from testit_importer.attribute_import import AttributeReconciler
from testit_importer.core.logging import log_operation
from testit_importer.import_error_log import TestCaseErrorLog
from testit_importer.parameter_import import ParameterDeduplicator
from testit_importer.project_import import ProjectResolver
from testit_importer.section_import import SectionReplicator
from testit_importer.shared_step_import import SharedStepImporter
from testit_importer.source_reader import ExportReader
from testit_importer.test_case_import import TestCaseImporter
from testit_importer.tms_client import TmsClient
from testit_importer.tms_models import TmsAttribute

logger = logging.getLogger("testit_importer.orchestrator")


class ImportPhase(str, Enum):
    """Phases of an import, in execution order."""

    PROJECT = "project"
    SECTIONS = "sections"
    ATTRIBUTES = "attributes"
    SHARED_STEPS = "shared_steps"
    TEST_CASES = "test_cases"


@dataclass
class ImportResult:
    """Outcome of one import run."""

    project_id: UUID
    section_map: dict[UUID, UUID] = field(default_factory=dict)
    attribute_map: dict[UUID, TmsAttribute] = field(default_factory=dict)
    shared_step_map: dict[UUID, UUID] = field(default_factory=dict)
    not_imported_test_cases: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.not_imported_test_cases


class ImportOrchestrator:
    """
    Imports one export into Test IT.

    Args:
        client: Test IT API client
        reader: Reader of the export directory
        project_name: Name overriding the exported project name, if not empty
        import_to_existing_project: Whether an existing project may be reused
        error_log: Log for failed test cases, by default inside the export
    """

    def __init__(
        self,
        client: TmsClient,
        reader: ExportReader,
        project_name: str = "",
        import_to_existing_project: bool = False,
        error_log: TestCaseErrorLog | None = None,
    ):
        self.client = client
        self.reader = reader
        linker = AttachmentLinker(client, reader)

        self.projects = ProjectResolver(client, project_name, import_to_existing_project)
        self.sections = SectionReplicator(client)
        self.attributes = AttributeReconciler(client)
        self.shared_steps = SharedStepImporter(client, reader, linker)
        self.test_cases = TestCaseImporter(
            client,
            reader,
            linker,
            ParameterDeduplicator(client),
            error_log or TestCaseErrorLog(reader.result_path),
        )

    async def import_project(self) -> ImportResult:
        """
        Run all import phases.

        Returns:
            The id maps of the run and the names of skipped test cases
        """
        with log_operation(logger, "import", context={"result_path": str(self.reader.result_path)}):
            manifest = await self.reader.read_manifest()

            with log_operation(logger, ImportPhase.PROJECT.value):
                project_id = await self.projects.resolve(manifest.project_name)
            result = ImportResult(project_id=project_id)

            with log_operation(logger, ImportPhase.SECTIONS.value):
                result.section_map = await self.sections.import_sections(
                    project_id, manifest.sections
                )

            with log_operation(logger, ImportPhase.ATTRIBUTES.value):
                result.attribute_map = await self.attributes.import_attributes(
                    project_id, manifest.attributes
                )

            with log_operation(logger, ImportPhase.SHARED_STEPS.value):
                result.shared_step_map = await self.shared_steps.import_shared_steps(
                    project_id, manifest.shared_steps, result.section_map, result.attribute_map
                )

            with log_operation(logger, ImportPhase.TEST_CASES.value):
                result.not_imported_test_cases = await self.test_cases.import_test_cases(
                    project_id,
                    manifest.test_cases,
                    result.section_map,
                    result.attribute_map,
                    result.shared_step_map,
                )

        if result.not_imported_test_cases:
            logger.error("Not imported test cases:")
            for name in result.not_imported_test_cases:
                logger.error(f"\t{name}")
        logger.info("Project imported")
        return result

"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Models of the export being imported.

The exporter writes camelCase JSON; every model accepts those keys through
aliases and the snake_case field names alike.
"""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ExportModel(BaseModel):
    """Base class for export models."""

    model_config = ConfigDict(populate_by_name=True)


class AttributeType(str, Enum):
    """Types of custom attributes supported by Test IT."""

    STRING = "string"
    DATETIME = "datetime"
    OPTIONS = "options"
    USER = "user"
    MULTIPLE_OPTIONS = "multipleOptions"
    CHECKBOX = "checkbox"


class StateType(str, Enum):
    """Work item states."""

    NOT_READY = "NotReady"
    READY = "Ready"
    NEEDS_WORK = "NeedsWork"


class PriorityType(str, Enum):
    """Work item priorities."""

    LOWEST = "Lowest"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    HIGHEST = "Highest"


class LinkType(str, Enum):
    """Types of links attached to a work item."""

    RELATED = "Related"
    BLOCKED_BY = "BlockedBy"
    DEFECT = "Defect"
    ISSUE = "Issue"
    REQUIREMENT = "Requirement"
    REPOSITORY = "Repository"


class Step(ExportModel):
    """
    A single step of a shared step, test case or section.

    Text fields may embed ``<<<filename>>>`` placeholders; the parallel
    ``*_attachments`` lists name the files belonging to each field.
    """

    shared_step_id: UUID | None = Field(None, alias="sharedStepId")
    action: str = ""
    expected: str = ""
    test_data: str = Field("", alias="testData")
    action_attachments: list[str] = Field(default_factory=list, alias="actionAttachments")
    expected_attachments: list[str] = Field(default_factory=list, alias="expectedAttachments")
    test_data_attachments: list[str] = Field(default_factory=list, alias="testDataAttachments")


class Section(ExportModel):
    """A folder of the test-case repository; owns its child sections."""

    id: UUID
    name: str
    precondition_steps: list[Step] = Field(default_factory=list, alias="preconditionSteps")
    postcondition_steps: list[Step] = Field(default_factory=list, alias="postconditionSteps")
    sections: list["Section"] = Field(default_factory=list)


class Attribute(ExportModel):
    """A custom attribute defined by the exported project."""

    id: UUID
    name: str
    type: AttributeType
    is_required: bool = Field(False, alias="isRequired")
    is_active: bool = Field(True, alias="isActive")
    options: list[str] = Field(default_factory=list)


class CaseAttribute(ExportModel):
    """An attribute value assigned to a work item."""

    id: UUID
    value: Any = None


class Parameter(ExportModel):
    name: str
    value: str | None = ""


class Iteration(ExportModel):
    parameters: list[Parameter] = Field(default_factory=list)


class Link(ExportModel):
    url: str
    title: str = ""
    description: str = ""
    type: LinkType = LinkType.RELATED


class SharedStep(ExportModel):
    """A reusable step sequence referenced by test cases."""

    id: UUID
    name: str
    description: str = ""
    state: StateType
    priority: PriorityType
    steps: list[Step] = Field(default_factory=list)
    attributes: list[CaseAttribute] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    section_id: UUID = Field(..., alias="sectionId")
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)


class TestCase(SharedStep):
    """An exported test case."""

    __test__ = False

    precondition_steps: list[Step] = Field(default_factory=list, alias="preconditionSteps")
    postcondition_steps: list[Step] = Field(default_factory=list, alias="postconditionSteps")
    duration: int = 0
    iterations: list[Iteration] = Field(default_factory=list)


class ExportManifest(ExportModel):
    """The export's main file: project name, tree and the work items to read."""

    project_name: str = Field(..., alias="projectName")
    attributes: list[Attribute] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    shared_steps: list[UUID] = Field(default_factory=list, alias="sharedSteps")
    test_cases: list[UUID] = Field(default_factory=list, alias="testCases")

"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Test IT Models module.

This module provides Pydantic models for the Test IT entities the importer
reads back from the API: custom attributes with their options, parameters,
and the converted test case ready for submission.
"""

from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from testit_importer.models import AttributeType, TestCase


class TmsModel(BaseModel):
    """Base class for Test IT models; ignores response fields it does not model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TmsProject(TmsModel):
    id: UUID
    name: str


class TmsAttributeOption(TmsModel):
    """
    An option of an options/multipleOptions attribute.

    New options carry no id until the server assigns one.
    """

    id: UUID | None = None
    value: str = ""
    is_default: bool = Field(False, alias="isDefault")


class TmsAttribute(TmsModel):
    """Represents a custom attribute in Test IT."""

    id: UUID
    name: str
    type: str
    is_enabled: bool = Field(True, alias="isEnabled")
    is_required: bool = Field(False, alias="isRequired")
    is_global: bool = Field(True, alias="isGlobal")
    options: list[TmsAttributeOption] = Field(default_factory=list)

    OPTION_TYPES: ClassVar[frozenset[str]] = frozenset(
        {AttributeType.OPTIONS.value.lower(), AttributeType.MULTIPLE_OPTIONS.value.lower()}
    )

    @property
    def attribute_type(self) -> AttributeType | None:
        """The attribute type as an enum member, matched case-insensitively."""
        for member in AttributeType:
            if member.value.lower() == self.type.lower():
                return member
        return None

    @property
    def has_options(self) -> bool:
        return self.type.lower() in self.OPTION_TYPES

    def same_type(self, attribute_type: AttributeType) -> bool:
        return self.type.lower() == attribute_type.value.lower()

    def option_values(self) -> list[str]:
        return [option.value for option in self.options]

    def find_option(self, value: str) -> TmsAttributeOption | None:
        return next((option for option in self.options if option.value == value), None)


class TmsParameter(TmsModel):
    """Represents a parameter value in Test IT."""

    id: UUID
    name: str
    value: str | None = ""
    parameter_key_id: UUID = Field(..., alias="parameterKeyId")


class TmsIteration(TmsModel):
    """One iteration of a test case: the remote ids of its parameters."""

    parameters: list[UUID] = Field(default_factory=list)


class TmsTestCase(TestCase):
    """
    A test case converted for submission.

    Attachments hold remote attachment ids instead of file names and
    ``tms_iterations`` replaces the exported parameter values.
    """

    __test__ = False

    tms_iterations: list[TmsIteration] = Field(default_factory=list)

    @classmethod
    def convert(cls, test_case: TestCase) -> "TmsTestCase":
        return cls(**test_case.model_dump(by_alias=False))

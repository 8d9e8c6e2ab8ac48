"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Work item attribute conversion.

Exported attribute values are raw JSON. Test IT expects option ids for
option attributes, booleans for checkboxes and tagged UUIDs for text values
that look like ids. Each attribute type has one converter; the registry is
checked against ``AttributeType`` when this module is imported.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from testit_importer.models import AttributeType, CaseAttribute
from testit_importer.tms_client import TmsClient
from testit_importer.tms_models import TmsAttribute, TmsAttributeOption

logger = logging.getLogger("testit_importer.work_item")

ValueConverter = Callable[
    [TmsClient, TmsAttribute, Any], Awaitable[tuple[Any, TmsAttribute]]
]


async def _convert_option(
    client: TmsClient, attribute: TmsAttribute, value: Any
) -> tuple[Any, TmsAttribute]:
    if value is None:
        return None, attribute
    option = attribute.find_option(str(value))
    return (str(option.id) if option and option.id else None), attribute


async def _convert_multiple_options(
    client: TmsClient, attribute: TmsAttribute, value: Any
) -> tuple[Any, TmsAttribute]:
    if value is None:
        return [], attribute
    values = json.loads(value) if isinstance(value, str) else value

    ids: list[str] = []
    for item in values:
        option = attribute.find_option(item)
        if option is not None and option.id is not None:
            ids.append(str(option.id))
        elif item != "":
            logger.warning(
                f"Option {item} not found in {attribute.id} {attribute.name} - add it dynamically"
            )
            await client.update_attribute(
                attribute.model_copy(
                    update={"options": attribute.options + [TmsAttributeOption(value=item)]}
                )
            )
            attribute = await client.get_attribute(attribute.id)
            ids.append(item)

    return ids, attribute


async def _convert_checkbox(
    client: TmsClient, attribute: TmsAttribute, value: Any
) -> tuple[Any, TmsAttribute]:
    if value is None or isinstance(value, bool):
        return value, attribute
    text = str(value).strip().lower()
    if text not in ("true", "false"):
        raise ValueError(f"Value '{value}' of attribute {attribute.name} is not a boolean")
    return text == "true", attribute


async def _convert_text(
    client: TmsClient, attribute: TmsAttribute, value: Any
) -> tuple[Any, TmsAttribute]:
    if value is None:
        return None, attribute
    text = str(value)
    try:
        UUID(text)
    except ValueError:
        return text, attribute
    return f"uuid {text}", attribute


VALUE_CONVERTERS: dict[AttributeType, ValueConverter] = {
    AttributeType.OPTIONS: _convert_option,
    AttributeType.MULTIPLE_OPTIONS: _convert_multiple_options,
    AttributeType.CHECKBOX: _convert_checkbox,
    AttributeType.STRING: _convert_text,
    AttributeType.USER: _convert_text,
    AttributeType.DATETIME: _convert_text,
}

_unhandled = set(AttributeType) - set(VALUE_CONVERTERS)
if _unhandled:
    raise RuntimeError(f"No value converter for attribute types: {sorted(_unhandled)}")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def collapse_attributes(attributes: list[CaseAttribute]) -> list[CaseAttribute]:
    """Drop empty values and keep the first non-empty value per attribute id."""
    collapsed: dict[UUID, CaseAttribute] = {}
    for attribute in attributes:
        if _is_empty(attribute.value) or attribute.id in collapsed:
            continue
        collapsed[attribute.id] = attribute
    return list(collapsed.values())


async def convert_attributes(
    client: TmsClient,
    attributes: list[CaseAttribute],
    attribute_map: dict[UUID, TmsAttribute],
) -> list[CaseAttribute]:
    """
    Convert exported attribute values for submission.

    Bound records in ``attribute_map`` are replaced by their refreshed copy
    when a multiple-options value adds new options.

    Args:
        client: Test IT API client
        attributes: Exported attribute values of one work item
        attribute_map: Exported attribute id to bound Test IT attribute

    Returns:
        Values keyed by Test IT attribute id, without empty values
    """
    converted = []
    for attribute in attributes:
        if _is_empty(attribute.value):
            continue
        tms_attribute = attribute_map[attribute.id]
        attribute_type = tms_attribute.attribute_type or AttributeType.STRING
        value, tms_attribute = await VALUE_CONVERTERS[attribute_type](
            client, tms_attribute, attribute.value
        )
        attribute_map[attribute.id] = tms_attribute
        converted.append(CaseAttribute(id=tms_attribute.id, value=value))

    return collapse_attributes(converted)

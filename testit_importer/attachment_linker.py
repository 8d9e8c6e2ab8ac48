"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Attachment upload and linking.

Step texts reference their files with ``<<<filename>>>`` placeholders. Once
the files are uploaded, each placeholder becomes a reference to the uploaded
attachment: an inline image for pictures, a short note for other files.
Markup elements cannot hold a block-level reference, so a placeholder inside
an element is moved behind that element's closing tag.
"""

import logging
import re
from pathlib import PurePath
from typing import NamedTuple
from uuid import UUID

from testit_importer.models import Step
from testit_importer.source_reader import ExportReader
from testit_importer.tms_client import TmsClient

logger = logging.getLogger("testit_importer.attachment_linker")

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

# Elements that never have content or a closing tag
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# <<<file>>> placeholders are not tags
TAG_PATTERN = re.compile(r"(?<!<)<(?!<)(/?)([A-Za-z][\w:-]*)\b[^<>]*?(/?)>")

# (text field, attachment list field) pairs of a step
STEP_FIELDS = (
    ("action", "action_attachments"),
    ("expected", "expected_attachments"),
    ("test_data", "test_data_attachments"),
)


class EnclosingElement(NamedTuple):
    """An element around a position: its tag name and the span of the whole element."""

    tag: str
    start: int
    end: int


def placeholder(file_name: str) -> str:
    return f"<<<{file_name}>>>"


def is_image(file_name: str) -> bool:
    return PurePath(file_name).suffix.lower() in IMAGE_EXTENSIONS


def attachment_reference(file_name: str, attachment_id: UUID) -> str:
    """Markup pointing at an uploaded attachment."""
    if is_image(file_name):
        return f'<p> <img src="/api/Attachments/{attachment_id}"> </p>'
    return f"<p> File attached to test case: {file_name} </p>"


def find_enclosing_element(source: str, start: int, end: int) -> EnclosingElement | None:
    """
    Find the innermost element containing ``source[start:end]``.

    Tags before ``start`` are replayed on a stack to find the last opening
    tag still open at ``start``; its matching closing tag is then searched
    after ``end``. Void and self-closing tags are ignored.

    Returns:
        The enclosing element, or None when the span is not inside one
    """
    stack: list[tuple[str, int]] = []
    for match in TAG_PATTERN.finditer(source, 0, start):
        closing, name, self_closing = match.group(1), match.group(2).lower(), match.group(3)
        if closing:
            for index in range(len(stack) - 1, -1, -1):
                if stack[index][0] == name:
                    del stack[index:]
                    break
        elif not self_closing and name not in VOID_ELEMENTS:
            stack.append((name, match.start()))

    if not stack:
        return None

    tag, open_start = stack[-1]
    depth = 0
    for match in TAG_PATTERN.finditer(source, end):
        closing, name, self_closing = match.group(1), match.group(2).lower(), match.group(3)
        if name != tag or self_closing:
            continue
        if not closing:
            depth += 1
        elif depth:
            depth -= 1
        else:
            return EnclosingElement(tag, open_start, match.end())

    return None


def handle_step_image_link(source: str, file_name: str, attachments: dict[str, UUID]) -> str:
    """
    Replace the placeholders of one file in a step text.

    Args:
        source: Step text
        file_name: Attachment file listed for the text
        attachments: Uploaded files by name

    Returns:
        The rewritten text
    """
    source = source or ""
    marker = placeholder(file_name)

    attachment_id = attachments.get(file_name)
    if attachment_id is None:
        # Broken link
        return source.replace(marker, "")

    reference = attachment_reference(file_name, attachment_id)
    if marker not in source:
        return f"{source} {reference}"

    while (start := source.find(marker)) != -1:
        end = start + len(marker)
        element = find_enclosing_element(source, start, end)
        if element is None:
            source = source[:start] + reference + source[end:]
            continue
        source = (
            source[:start]
            + source[end : element.end]
            + reference
            + source[element.end :]
        )

    return source


def add_attachments_to_steps(steps: list[Step], attachments: dict[str, UUID]) -> list[Step]:
    """Rewrite the attachment placeholders of every step field."""
    linked = []
    for step in steps:
        updates = {}
        for text_field, attachments_field in STEP_FIELDS:
            text = getattr(step, text_field)
            for file_name in getattr(step, attachments_field):
                text = handle_step_image_link(text, file_name, attachments)
            updates[text_field] = text
        linked.append(step.model_copy(update=updates))
    return linked


class AttachmentLinker:
    """Uploads the files of a work item from the export."""

    def __init__(self, client: TmsClient, reader: ExportReader):
        self.client = client
        self.reader = reader

    async def upload_attachments(self, item_id: UUID, file_names: list[str]) -> dict[str, UUID]:
        """
        Upload attachments; a file that fails is logged and left out.

        Returns:
            Uploaded attachment ids by file name
        """
        logger.info(f"Importing attachments for work item {item_id}")

        uploaded: dict[str, UUID] = {}
        for file_name in file_names:
            try:
                path = await self.reader.get_attachment(item_id, file_name)
                with open(path, "rb") as stream:
                    uploaded[file_name] = await self.client.upload_attachment(path.name, stream)
            except Exception as e:
                logger.warning(f"Failed to upload attachment, skip: {file_name}: {e}")

        logger.info(f"Uploaded {len(uploaded)} attachments for work item {item_id}")
        return uploaded

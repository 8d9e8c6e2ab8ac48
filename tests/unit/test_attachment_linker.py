"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

import uuid
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from testit_importer.attachment_linker import (
    AttachmentLinker,
    add_attachments_to_steps,
    attachment_reference,
    find_enclosing_element,
    handle_step_image_link,
    is_image,
)
from testit_importer.exceptions import SourceReadError
from testit_importer.models import Step

IMAGE_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
FILE_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
IMAGE = f'<p> <img src="/api/Attachments/{IMAGE_ID}"> </p>'
NOTE = "<p> File attached to test case: notes.txt </p>"


@pytest.mark.unit
class TestFindEnclosingElement:
    def test_innermost_element(self):
        source = "<div><p>see <<<a.png>>> here</p></div>"
        start = source.index("<<<")
        element = find_enclosing_element(source, start, start + len("<<<a.png>>>"))

        assert element.tag == "p"
        assert source[element.start : element.end] == "<p>see <<<a.png>>> here</p>"

    def test_void_and_self_closing_tags_never_enclose(self):
        source = "<p>one<br>two<img src='x'/><<<a.png>>></p>"
        start = source.index("<<<")
        element = find_enclosing_element(source, start, start + 11)

        assert element.tag == "p"

    def test_closed_elements_before_are_skipped(self):
        source = "<b>bold</b> <<<a.png>>> <i>x</i>"
        start = source.index("<<<")
        assert find_enclosing_element(source, start, start + 11) is None

    def test_nested_same_tag(self):
        source = "<div>a <<<a.png>>> <div>inner</div> b</div>tail"
        start = source.index("<<<")
        element = find_enclosing_element(source, start, start + 11)

        assert source[element.end :] == "tail"

    def test_unclosed_element(self):
        source = "<p>never closed <<<a.png>>>"
        start = source.index("<<<")
        assert find_enclosing_element(source, start, start + 11) is None

    def test_placeholder_before_span_is_not_a_tag(self):
        source = "<p><<<a.png>>> and <<<b.png>>></p>"
        start = source.index("<<<b.png")
        element = find_enclosing_element(source, start, start + len("<<<b.png>>>"))

        assert element == ("p", 0, len(source))

    def test_plain_text(self):
        assert find_enclosing_element("<<<a.png>>>", 0, 11) is None


@pytest.mark.unit
class TestHandleStepImageLink:
    def test_image_placeholder_moves_after_enclosing_element(self):
        result = handle_step_image_link(
            "<p>before<<<a.png>>>after</p>", "a.png", {"a.png": IMAGE_ID}
        )
        assert result == f"<p>beforeafter</p>{IMAGE}"

    def test_every_occurrence_is_replaced(self):
        result = handle_step_image_link(
            "<p><<<a.png>>></p><p><<<a.png>>></p>", "a.png", {"a.png": IMAGE_ID}
        )
        assert result == f"<p></p>{IMAGE}<p></p>{IMAGE}"

    def test_other_placeholders_are_not_read_as_tags(self):
        attachments = {"a.png": IMAGE_ID, "b.png": FILE_ID}
        image_b = f'<p> <img src="/api/Attachments/{FILE_ID}"> </p>'

        result = handle_step_image_link("<p><<<a.png>>> and <<<b.png>>></p>", "b.png", attachments)
        assert result == f"<p><<<a.png>>> and </p>{image_b}"

        result = handle_step_image_link(result, "a.png", attachments)
        assert result == f"<p> and </p>{IMAGE}{image_b}"

    def test_placeholder_without_element_is_replaced_in_place(self):
        result = handle_step_image_link("look <<<a.PNG>>> now", "a.PNG", {"a.PNG": IMAGE_ID})
        assert result == f"look {IMAGE} now"

    def test_listed_file_without_placeholder_is_appended(self):
        result = handle_step_image_link("<p>Check logs</p>", "notes.txt", {"notes.txt": FILE_ID})
        assert result == f"<p>Check logs</p> {NOTE}"

    def test_non_image_placeholder_gets_text_note(self):
        result = handle_step_image_link(
            "<p>see <<<notes.txt>>></p>", "notes.txt", {"notes.txt": FILE_ID}
        )
        assert result == f"<p>see </p>{NOTE}"

    def test_missing_upload_removes_placeholder(self):
        result = handle_step_image_link("<p>see <<<gone.png>>></p>", "gone.png", {})
        assert result == "<p>see </p>"

    def test_missing_upload_without_placeholder_is_unchanged(self):
        assert handle_step_image_link("text", "gone.png", {}) == "text"

    def test_image_extensions(self):
        assert is_image("a.jpg") and is_image("a.JPEG") and is_image("a.Png")
        assert not is_image("a.gif")
        assert attachment_reference("a.gif", FILE_ID) == (
            "<p> File attached to test case: a.gif </p>"
        )


@pytest.mark.unit
class TestAddAttachmentsToSteps:
    def test_rewrites_each_field(self):
        step = Step(
            action="<p><<<a.png>>></p>",
            expected="done",
            test_data="data",
            action_attachments=["a.png"],
            expected_attachments=["notes.txt"],
            test_data_attachments=["gone.png"],
        )

        [linked] = add_attachments_to_steps([step], {"a.png": IMAGE_ID, "notes.txt": FILE_ID})

        assert linked.action == f"<p></p>{IMAGE}"
        assert linked.expected == f"done {NOTE}"
        assert linked.test_data == "data"
        # The source step is left untouched
        assert step.action == "<p><<<a.png>>></p>"


@pytest.mark.unit
class TestAttachmentLinker:
    @pytest.mark.asyncio
    async def test_failed_upload_is_skipped(self, tmp_path: Path):
        (tmp_path / "a.png").write_bytes(b"png")
        (tmp_path / "b.png").write_bytes(b"png")

        reader = MagicMock()
        reader.get_attachment = AsyncMock(
            side_effect=[
                tmp_path / "a.png",
                SourceReadError("Attachment file not found"),
                tmp_path / "b.png",
            ]
        )
        client = MagicMock()
        client.upload_attachment = AsyncMock(side_effect=[IMAGE_ID, RuntimeError("upload failed")])

        uploaded = await AttachmentLinker(client, reader).upload_attachments(
            uuid.uuid4(), ["a.png", "missing.png", "b.png"]
        )

        assert uploaded == {"a.png": IMAGE_ID}
        assert client.upload_attachment.await_count == 2

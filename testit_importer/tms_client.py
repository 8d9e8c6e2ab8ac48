"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Test IT API Client.

This module provides an asynchronous client for the parts of the Test IT v2
API the importer needs. Request and response shapes live here; callers only
see the models from ``testit_importer.models`` and ``testit_importer.tms_models``.
Every request goes through the retry layer.
"""

import json
import logging
import time
from collections.abc import Callable
from typing import IO, Any
from uuid import UUID

import httpx

from testit_importer.core.config import TmsConfig
from testit_importer.exceptions import ErrorKind, TmsApiError
from testit_importer.models import Attribute, AttributeType, Parameter, Section, SharedStep, Step
from testit_importer.retry import RetryPolicy, call_with_retry
from testit_importer.tms_models import (
    TmsAttribute,
    TmsAttributeOption,
    TmsParameter,
    TmsProject,
    TmsTestCase,
)

logger = logging.getLogger("testit_importer.tms_client")

API_PREFIX = "/api/v2"
TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}
# Attribute types that can be made mandatory at project level
REQUIRED_ATTRIBUTE_TYPES = [
    AttributeType.STRING,
    AttributeType.OPTIONS,
    AttributeType.MULTIPLE_OPTIONS,
    AttributeType.USER,
    AttributeType.DATETIME,
]
SHARED_STEPS_ENTITY = "SharedSteps"
TEST_CASES_ENTITY = "TestCases"


def _options_payload(options: list[TmsAttributeOption]) -> list[dict[str, Any]]:
    payload = []
    for option in options:
        item: dict[str, Any] = {"value": option.value, "isDefault": option.is_default}
        if option.id is not None:
            item["id"] = str(option.id)
        payload.append(item)
    return payload


def _step_payload(step: Step, with_test_data: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {"action": step.action, "expected": step.expected}
    if with_test_data:
        payload["testData"] = step.test_data
        payload["workItemId"] = str(step.shared_step_id) if step.shared_step_id else None
    return payload


def _work_item_payload(
    entity_type: str, project_id: UUID, section_id: UUID, item: SharedStep
) -> dict[str, Any]:
    return {
        "entityTypeName": entity_type,
        "projectId": str(project_id),
        "sectionId": str(section_id),
        "name": item.name,
        "description": item.description,
        "state": item.state.value,
        "priority": item.priority.value,
        "attributes": {str(attribute.id): attribute.value for attribute in item.attributes},
        "tags": [{"name": tag} for tag in item.tags],
        "links": [
            {
                "url": link.url,
                "title": link.title,
                "description": link.description,
                "type": link.type.value,
            }
            for link in item.links
        ],
        "attachments": [{"id": attachment} for attachment in item.attachments],
    }


class TmsClient:
    """Client for interacting with the Test IT API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy | None = None,
    ):
        """Initialize the client around an open ``httpx.AsyncClient``.

        Args:
            http_client: Client with base URL, auth header and timeout set
            retry_policy: Optional policy for retrying transient failures
        """
        self.http = http_client
        self.retry_policy = retry_policy

        # Request metrics for logging
        self.request_count = 0
        self.error_count = 0

    @classmethod
    def from_config(cls, config: TmsConfig, retry_policy: RetryPolicy | None = None) -> "TmsClient":
        """Create a client with its own HTTP connection pool."""
        http_client = httpx.AsyncClient(
            base_url=config.url,
            headers={
                "Authorization": f"PrivateToken {config.private_token}",
                "Accept": "application/json",
            },
            verify=config.cert_validation,
            timeout=httpx.Timeout(config.timeout),
        )
        logger.info(f"TmsClient initialized: url={config.url}, timeout={config.timeout}s")
        return cls(http_client, retry_policy)

    async def __aenter__(self) -> "TmsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Any = None,
        files: Callable[[], dict[str, Any]] | None = None,
    ) -> Any:
        """Make a request to the Test IT API, retrying transient failures.

        Args:
            method: HTTP method
            endpoint: Path below ``/api/v2``
            json_data: JSON request body
            files: Factory building the multipart files for each attempt

        Returns:
            Parsed JSON response, or None for an empty response
        """
        path = f"{API_PREFIX}{endpoint}"

        async def send() -> Any:
            self.request_count += 1
            request_number = self.request_count
            logger.debug(f"API Request #{request_number}: {method} {path}")
            if json_data is not None and logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"Request Body: {json.dumps(json_data, default=str)}")

            start_time = time.time()
            try:
                response = await self.http.request(
                    method,
                    path,
                    json=json_data,
                    files=files() if files else None,
                )
            except httpx.TransportError as e:
                self.error_count += 1
                logger.error(
                    f"Connection Error #{request_number}: {type(e).__name__}: {e} - "
                    f"{method} {path} - Duration: {time.time() - start_time:.2f}s"
                )
                raise

            logger.debug(
                f"Response #{request_number} received in {time.time() - start_time:.2f}s - "
                f"Status: {response.status_code} - {method} {path}"
            )

            if response.is_error:
                self.error_count += 1
                kind = (
                    ErrorKind.TRANSIENT_SERVER
                    if response.status_code in TRANSIENT_STATUS_CODES
                    else ErrorKind.FATAL
                )
                body = response.text
                logger.error(f"HTTP Error #{request_number}: {method} {path}: {body[:1000]}")
                raise TmsApiError(
                    f"{method} {path} failed: {response.reason_phrase}: {body[:500]}",
                    status_code=response.status_code,
                    kind=kind,
                    body=body,
                )

            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        return await call_with_retry(send, self.retry_policy, f"{method} {path}")

    # Projects

    async def search_projects(self, name: str) -> list[TmsProject]:
        response = await self._request("POST", "/projects/search", {"name": name})
        return [TmsProject.model_validate(project) for project in response or []]

    async def create_project(self, name: str) -> UUID:
        logger.info(f"Creating project {name}")
        response = await self._request("POST", "/projects", {"name": name})
        return UUID(str(response["id"]))

    # Sections

    async def get_root_section_id(self, project_id: UUID) -> UUID:
        sections = await self._request("GET", f"/projects/{project_id}/sections")
        if not sections:
            raise TmsApiError(f"Project {project_id} has no root section")
        logger.debug(f"Got root section {sections[0]}")
        return UUID(str(sections[0]["id"]))

    async def create_section(self, project_id: UUID, parent_id: UUID, section: Section) -> UUID:
        payload = {
            "name": section.name,
            "parentId": str(parent_id),
            "projectId": str(project_id),
            "attachments": [],
            "preconditionSteps": [_step_payload(step) for step in section.precondition_steps],
            "postconditionSteps": [_step_payload(step) for step in section.postcondition_steps],
        }
        response = await self._request("POST", "/sections", payload)
        return UUID(str(response["id"]))

    # Attributes

    async def create_attribute(self, attribute: Attribute) -> TmsAttribute:
        payload = {
            "name": attribute.name,
            "type": attribute.type.value,
            "isRequired": attribute.is_required,
            "isEnabled": attribute.is_active,
            "options": [{"value": option, "isDefault": False} for option in attribute.options],
        }
        response = await self._request("POST", "/customAttributes/global", payload)
        return TmsAttribute.model_validate(response)

    async def get_attribute(self, attribute_id: UUID) -> TmsAttribute:
        response = await self._request("GET", f"/customAttributes/{attribute_id}")
        return TmsAttribute.model_validate(response)

    async def update_attribute(self, attribute: TmsAttribute) -> TmsAttribute:
        """Push name, flags and options of a global attribute."""
        payload = {
            "name": attribute.name,
            "isEnabled": attribute.is_enabled,
            "isRequired": attribute.is_required,
            "options": _options_payload(attribute.options),
        }
        response = await self._request("PUT", f"/customAttributes/global/{attribute.id}", payload)
        if response and "options" in response:
            return attribute.model_copy(
                update={
                    "options": [TmsAttributeOption.model_validate(o) for o in response["options"]]
                }
            )
        return attribute

    async def search_attributes(self) -> list[TmsAttribute]:
        """All global attributes that are not deleted."""
        response = await self._request(
            "POST", "/customAttributes/search", {"isGlobal": True, "isDeleted": False}
        )
        return [TmsAttribute.model_validate(attribute) for attribute in response or []]

    async def get_required_project_attributes(self, project_id: UUID) -> list[TmsAttribute]:
        payload = {
            "name": "",
            "isRequired": True,
            "types": [attribute_type.value for attribute_type in REQUIRED_ATTRIBUTE_TYPES],
        }
        response = await self._request("POST", f"/projects/{project_id}/attributes/search", payload)
        attributes = [TmsAttribute.model_validate(attribute) for attribute in response or []]
        return [attribute for attribute in attributes if attribute.is_required]

    async def add_attributes_to_project(self, project_id: UUID, attribute_ids: list[UUID]) -> None:
        await self._request(
            "POST",
            f"/projects/{project_id}/globalAttributes",
            [str(attribute_id) for attribute_id in attribute_ids],
        )

    async def update_project_attribute(self, project_id: UUID, attribute: TmsAttribute) -> None:
        payload = {
            "id": str(attribute.id),
            "name": attribute.name,
            "isEnabled": attribute.is_enabled,
            "isRequired": attribute.is_required,
            "isGlobal": attribute.is_global,
            "options": _options_payload(attribute.options),
        }
        await self._request("PUT", f"/projects/{project_id}/attributes", payload)

    # Work items

    async def import_shared_step(
        self, project_id: UUID, section_id: UUID, shared_step: SharedStep
    ) -> UUID:
        payload = _work_item_payload(SHARED_STEPS_ENTITY, project_id, section_id, shared_step)
        payload.update(
            {
                "steps": [_step_payload(step) for step in shared_step.steps],
                "preconditionSteps": [],
                "postconditionSteps": [],
            }
        )
        response = await self._request("POST", "/workItems", payload)
        logger.info(f"Imported shared step {shared_step.name} with id {response['id']}")
        return UUID(str(response["id"]))

    async def import_test_case(
        self, project_id: UUID, section_id: UUID, test_case: TmsTestCase
    ) -> UUID:
        payload = _work_item_payload(TEST_CASES_ENTITY, project_id, section_id, test_case)
        payload.update(
            {
                "steps": [_step_payload(step, with_test_data=True) for step in test_case.steps],
                "preconditionSteps": [
                    _step_payload(step) for step in test_case.precondition_steps
                ],
                "postconditionSteps": [
                    _step_payload(step) for step in test_case.postcondition_steps
                ],
                "duration": test_case.duration,
                "iterations": [
                    {"parameters": [{"id": str(p)} for p in iteration.parameters]}
                    for iteration in test_case.tms_iterations
                ],
            }
        )
        response = await self._request("POST", "/workItems", payload)
        logger.info(f"Imported test case {test_case.name} with id {response['id']}")
        return UUID(str(response["id"]))

    # Attachments

    async def upload_attachment(self, file_name: str, content: IO[bytes]) -> UUID:
        """Upload a file; the stream is rewound before each attempt."""
        if not file_name:
            raise ValueError("file_name must not be empty")

        def files() -> dict[str, Any]:
            content.seek(0)
            return {"file": (file_name, content, "application/octet-stream")}

        logger.debug(f"Uploading attachment {file_name}")
        response = await self._request("POST", "/attachments", files=files)
        return UUID(str(response["id"]))

    # Parameters

    async def create_parameter(self, parameter: Parameter) -> TmsParameter:
        response = await self._request(
            "POST", "/parameters", {"name": parameter.name, "value": parameter.value}
        )
        return TmsParameter.model_validate(response)

    async def search_parameters(self, name: str) -> list[TmsParameter]:
        response = await self._request(
            "POST", "/parameters/search", {"name": name, "isDeleted": False}
        )
        return [TmsParameter.model_validate(parameter) for parameter in response or []]

"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Find-or-create of Test IT parameters.
"""

import logging

from testit_importer.models import Parameter
from testit_importer.tms_client import TmsClient
from testit_importer.tms_models import TmsParameter

logger = logging.getLogger("testit_importer.parameter_import")

EMPTY_PARAMETER_VALUE = "N/A"


def normalize_value(value: str | None) -> str:
    """Test IT rejects blank parameter values; they are stored as ``N/A``."""
    if value is None or not value.strip():
        return EMPTY_PARAMETER_VALUE
    return value


class ParameterDeduplicator:
    """Reuses Test IT parameters with the same name and value."""

    def __init__(self, client: TmsClient):
        self.client = client

    async def create_parameters(self, parameters: list[Parameter]) -> list[TmsParameter]:
        """
        Resolve each parameter to a Test IT parameter, in order.

        A parameter that can be neither found nor created falls back to an
        existing ``N/A`` or empty value of the same name, and is left out of
        the result when there is none.
        """
        logger.info("Creating parameters")

        resolved: list[TmsParameter] = []
        for parameter in parameters:
            parameter = parameter.model_copy(update={"value": normalize_value(parameter.value)})
            existing = [
                found
                for found in await self.client.search_parameters(parameter.name)
                if found.name == parameter.name
            ]

            match = next((p for p in existing if p.value == parameter.value), None)
            if match is not None:
                logger.debug(f"Parameter {parameter.name} already exists")
                resolved.append(match)
                continue

            try:
                resolved.append(await self.client.create_parameter(parameter))
            except Exception as e:
                logger.error(f"Failed to create parameter {parameter.name}: {e}")
                fallback = self._fallback(existing)
                if fallback is None:
                    logger.warning(f"Parameter {parameter.name} is skipped")
                    continue
                logger.debug(
                    f"Parameter {parameter.name} already exists with value '{fallback.value}'"
                )
                resolved.append(fallback)

        return resolved

    @staticmethod
    def _fallback(existing: list[TmsParameter]) -> TmsParameter | None:
        for value in (EMPTY_PARAMETER_VALUE, ""):
            match = next((p for p in existing if (p.value or "") == value), None)
            if match is not None:
                return match
        return None

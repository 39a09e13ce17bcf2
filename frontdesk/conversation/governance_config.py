"""Tenant governance configuration source and loader."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from frontdesk.conversation.models import GovernanceConfig
from frontdesk.errors import ConfigurationError
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


class GovernanceConfigSource(ABC):
    """Where raw per-tenant governance payloads come from."""

    @abstractmethod
    async def get_config(self, tenant_id: str) -> dict[str, Any] | None:
        """Return the tenant's raw payload, or None if it has none."""
        pass


class InMemoryGovernanceConfigSource(GovernanceConfigSource):
    """In-memory governance payloads for testing and development."""

    def __init__(self, configs: dict[str, dict[str, Any]] | None = None) -> None:
        self._configs: dict[str, dict[str, Any]] = dict(configs or {})

    def set_config(self, tenant_id: str, payload: dict[str, Any]) -> None:
        self._configs[tenant_id] = payload

    async def get_config(self, tenant_id: str) -> dict[str, Any] | None:
        return self._configs.get(tenant_id)


def parse_governance_config(payload: dict[str, Any]) -> GovernanceConfig:
    """Validate a raw tenant payload into a GovernanceConfig.

    Missing sections and fields take their defaults. A payload without
    ``version`` or with unknown keys is rejected.

    Raises:
        ConfigurationError: If the payload is structurally invalid
    """
    if not isinstance(payload, dict):
        raise ConfigurationError("Governance config payload must be a mapping")
    if not payload.get("version"):
        raise ConfigurationError("Governance config payload is missing 'version'")
    try:
        return GovernanceConfig.model_validate(payload)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid governance config: {e}", cause=e) from e


class GovernanceConfigLoader:
    """Loads the governance config for a tenant at call start."""

    def __init__(self, source: GovernanceConfigSource) -> None:
        self._source = source

    async def load(self, tenant_id: str) -> GovernanceConfig:
        """Load and validate a tenant's governance config.

        Tenants with no payload get the defaults.

        Raises:
            ConfigurationError: If the payload is invalid or the source fails
        """
        try:
            payload = await self._source.get_config(tenant_id)
        except Exception as e:
            logger.error(
                "governance_config_unavailable",
                tenant_id=tenant_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ConfigurationError(
                f"Governance config unavailable for tenant {tenant_id}", cause=e
            ) from e

        if payload is None:
            logger.debug("governance_config_defaulted", tenant_id=tenant_id)
            return GovernanceConfig()

        try:
            config = parse_governance_config(payload)
        except ConfigurationError as e:
            logger.error("governance_config_invalid", tenant_id=tenant_id, error=str(e))
            raise

        logger.info(
            "governance_config_loaded",
            tenant_id=tenant_id,
            version=config.version,
            enabled=config.enabled,
            required_fields=config.capture_goals.required.fields,
            desired_fields=config.capture_goals.desired.fields,
        )
        return config

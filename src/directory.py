"""
Service lookup by name against the Rancher services collection.
"""

import logging

from errors import NotFoundError, TransportError
from models import ServiceDescriptor

logger = logging.getLogger(__name__)


class ServiceDirectory:
    """Resolves service names to fresh ServiceDescriptor snapshots."""

    def __init__(self, client):
        self.client = client

    def lookup(self, name: str) -> ServiceDescriptor:
        """
        Fetch the current descriptor of a service.

        Issues exactly one ``GET services?name=<name>``. When several
        services share the name the first one returned is used.

        Args:
            name: Service name

        Returns:
            ServiceDescriptor snapshot

        Raises:
            NotFoundError: If no service matches
            TransportError: If the API call fails or returns a malformed body
        """
        result = self.client.get("services", {"name": name})
        if result is None:
            result = {}
        if not isinstance(result, dict):
            raise TransportError(
                f"services lookup returned {type(result).__name__}, expected an object"
            )

        matches = result.get("data") or []
        if not isinstance(matches, list):
            raise TransportError(
                f"services lookup returned data of type {type(matches).__name__}"
            )
        if not matches:
            raise NotFoundError(f"Rancher service not found: {name}")
        if not isinstance(matches[0], dict):
            raise TransportError(
                f"services lookup returned a {type(matches[0]).__name__} entry"
            )

        if len(matches) > 1:
            logger.debug(f"{len(matches)} services named '{name}'; using the first")

        return ServiceDescriptor.from_api(matches[0])

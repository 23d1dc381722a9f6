"""
Token metadata lookup for ticket URIs (ipfs:// or https://).
"""

import logging
from typing import Dict, Optional

import jsonschema
import requests

from ..config import IPFS_GATEWAY
from ..models import TICKET_METADATA_SCHEMA

logger = logging.getLogger(__name__)

IPFS_PREFIX = "ipfs://"


def to_gateway_url(uri: str, gateway: str = IPFS_GATEWAY) -> str:
    """Rewrite ipfs://CID[/path] to an HTTPS gateway URL; other URIs pass through"""
    if uri.startswith(IPFS_PREFIX):
        return f"{gateway.rstrip('/')}/{uri[len(IPFS_PREFIX):]}"
    return uri


class MetadataService:
    """Fetches and validates ERC-721 metadata JSON"""

    def __init__(self, gateway: str = IPFS_GATEWAY, timeout: float = 10.0, session: requests.Session = None):
        self.gateway = gateway
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, uri: Optional[str]) -> Optional[Dict]:
        """Return the metadata dict, or None if it cannot be fetched or fails validation"""
        if not uri:
            logger.warning("Missing token URI")
            return None

        url = to_gateway_url(uri, self.gateway)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            metadata = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch or parse metadata from {url}: {e}")
            return None

        try:
            jsonschema.validate(instance=metadata, schema=TICKET_METADATA_SCHEMA)
        except jsonschema.ValidationError as e:
            logger.error(f"Metadata from {url} failed schema validation: {e.message}")
            return None

        if metadata.get("image"):
            metadata["image"] = to_gateway_url(metadata["image"], self.gateway)
        return metadata

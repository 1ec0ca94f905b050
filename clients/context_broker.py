"""Minimal NGSI-LD context broker client."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from models.errors import (
    EncodeError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    TransportError,
)

ENTITIES_PATH = "/ngsi-ld/v1/entities"


class ContextBrokerClient:
    """Entity upsert primitives against an NGSI-LD broker."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def merge_entity(
        self,
        entity_id: str,
        fragment: Dict[str, Any],
        headers: Mapping[str, str],
    ) -> None:
        """Merge ``fragment`` into an existing entity.

        Raises :class:`EntityNotFoundError` when the broker does not know the
        entity, so callers can fall back to creating it.
        """
        path = f"{ENTITIES_PATH}/{quote(entity_id, safe=':')}"
        response = self._send("PATCH", path, fragment, headers)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise EntityNotFoundError(
                f"Entity {entity_id} not found.", status_code=response.status_code
            )
        if response.status_code not in (httpx.codes.OK, httpx.codes.NO_CONTENT):
            raise TransportError(
                f"Merge of entity {entity_id} failed with status code {response.status_code}.",
                status_code=response.status_code,
            )

    def create_entity(self, entity: Dict[str, Any], headers: Mapping[str, str]) -> None:
        entity_id = entity.get("id")
        response = self._send("POST", ENTITIES_PATH, entity, headers)
        if response.status_code == httpx.codes.CONFLICT:
            raise EntityAlreadyExistsError(
                f"Entity {entity_id} already exists.", status_code=response.status_code
            )
        if response.status_code != httpx.codes.CREATED:
            raise TransportError(
                f"Create of entity {entity_id} failed with status code {response.status_code}.",
                status_code=response.status_code,
            )

    def _send(
        self,
        method: str,
        path: str,
        body: Dict[str, Any],
        headers: Mapping[str, str],
    ) -> httpx.Response:
        try:
            content = json.dumps(body, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Could not encode body for {method} {path}: {exc}") from exc
        request_headers = {"Content-Type": "application/json", **headers}
        try:
            return self._client.request(method, path, content=content, headers=request_headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

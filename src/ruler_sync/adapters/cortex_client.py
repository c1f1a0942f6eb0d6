"""HTTP rule store backed by a Cortex-compatible ruler API.

Endpoints (relative to ``api_prefix``, default ``/api/prom/rules``):

    GET    {prefix}                      list all groups   -> {namespace: [group, ...]}
    GET    {prefix}/{namespace}/{group}  fetch one group   -> group
    POST   {prefix}/{namespace}          create or replace -> 202
    DELETE {prefix}/{namespace}/{group}  delete one group  -> 202

Payloads are YAML. The tenant is sent as ``X-Scope-OrgID``; when an API key is
configured it is sent with the tenant id as HTTP basic auth.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import yaml

from ruler_sync.adapters.rule_store import (
    AbstractRuleStore,
    FetchOutcome,
    GroupFetchFailed,
    GroupFound,
    GroupNotFound,
)
from ruler_sync.domain.errors import RuleGroupNotFoundError, RuleStoreTransportError
from ruler_sync.domain.model import RuleGroup
from ruler_sync.rule_files import load_yaml, rule_group_from_dict, rule_group_to_yaml


if TYPE_CHECKING:
    from ruler_sync.config import Settings


logger = logging.getLogger(__name__)

DEFAULT_API_PREFIX = "/api/prom/rules"
YAML_CONTENT_TYPE = "application/yaml"
MAX_ERROR_BODY = 500


class CortexRuleStore(AbstractRuleStore):
    """Rule store talking to a Cortex ruler over HTTP."""

    def __init__(
        self,
        address: str,
        tenant_id: str,
        api_key: str | None = None,
        *,
        api_prefix: str = DEFAULT_API_PREFIX,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            address: Base URL of the Cortex cluster
            tenant_id: Tenant id sent as X-Scope-OrgID
            api_key: Optional API key, sent as basic auth password
            api_prefix: Path prefix of the ruler API
            timeout: Per-request timeout in seconds
            max_retries: Connection retries performed by the transport
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        if not address:
            raise ValueError("ruler address must not be empty")
        if not tenant_id:
            raise ValueError("tenant id must not be empty")

        self.address = address.rstrip("/")
        self.tenant_id = tenant_id
        self.api_prefix = "/" + api_prefix.strip("/")
        self.client = httpx.Client(
            base_url=self.address,
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"X-Scope-OrgID": tenant_id, "User-Agent": "ruler-sync"},
            auth=httpx.BasicAuth(tenant_id, api_key) if api_key else None,
        )

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> CortexRuleStore:
        return cls(
            settings.cortex_address,
            settings.cortex_tenant_id,
            settings.cortex_api_key or None,
            api_prefix=settings.ruler_api_prefix,
            timeout=float(settings.http_timeout),
            max_retries=settings.max_retries,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _path(self, *segments: str) -> str:
        escaped = [quote(segment, safe="") for segment in segments]
        return "/".join([self.api_prefix, *escaped])

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise RuleStoreTransportError(f"unable to contact ruler at {self.address}: {exc}") from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        body = response.text[:MAX_ERROR_BODY].strip()
        raise RuleStoreTransportError(
            f"HTTP {response.status_code} for {response.request.method} {response.request.url}: {body}",
            status=response.status_code,
        )

    @staticmethod
    def _decode_yaml(response: httpx.Response) -> Any:
        try:
            return load_yaml(response.text)
        except yaml.YAMLError as exc:
            raise RuleStoreTransportError(
                f"invalid YAML in ruler response: {exc}", status=response.status_code
            ) from exc

    def _decode_group(self, payload: Any) -> RuleGroup:
        try:
            return rule_group_from_dict(payload, strict=False)
        except ValueError as exc:
            raise RuleStoreTransportError(f"invalid rule group in ruler response: {exc}") from exc

    def fetch_group(self, namespace: str, group_name: str) -> FetchOutcome:
        try:
            response = self._request("GET", self._path(namespace, group_name))
            if response.status_code == httpx.codes.NOT_FOUND:
                return GroupNotFound(namespace, group_name)
            self._raise_for_status(response)
            group = self._decode_group(self._decode_yaml(response))
        except RuleStoreTransportError as exc:
            return GroupFetchFailed(exc.with_target(namespace, group_name))
        return GroupFound(group)

    def create_or_replace_group(self, namespace: str, group: RuleGroup) -> None:
        try:
            response = self._request(
                "POST",
                self._path(namespace),
                content=rule_group_to_yaml(group).encode("utf-8"),
                headers={"Content-Type": YAML_CONTENT_TYPE},
            )
            self._raise_for_status(response)
        except RuleStoreTransportError as exc:
            raise exc.with_target(namespace, group.name) from exc

    def delete_group(self, namespace: str, group_name: str) -> None:
        try:
            response = self._request("DELETE", self._path(namespace, group_name))
            if response.status_code == httpx.codes.NOT_FOUND:
                raise RuleGroupNotFoundError(namespace, group_name)
            self._raise_for_status(response)
        except RuleStoreTransportError as exc:
            raise exc.with_target(namespace, group_name) from exc

    def list_groups(self) -> dict[str, list[RuleGroup]]:
        response = self._request("GET", self.api_prefix)
        if response.status_code == httpx.codes.NOT_FOUND:
            # The ruler answers 404 when the tenant has no rule groups at all.
            return {}
        self._raise_for_status(response)

        payload = self._decode_yaml(response) or {}
        if not isinstance(payload, dict):
            raise RuleStoreTransportError(f"unexpected ruler listing payload: {type(payload).__name__}")

        listing: dict[str, list[RuleGroup]] = {}
        for namespace, groups in payload.items():
            listing[str(namespace)] = [self._decode_group(group) for group in groups or []]
        return listing

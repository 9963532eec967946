"""HTTP adapters for storing files and authorization documents in pods."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Type
from urllib.parse import quote

import httpx

from ..errors import MetadataError, UploadError
from ..models import AuthzFlavor, PodIdentity, SessionCredential

logger = logging.getLogger(__name__)

RETRY_BACKOFF = 0.5
MAX_BACKOFF = 10.0

WAC_TEMPLATE = """@prefix acl: <http://www.w3.org/ns/auth/acl#>.

<#owner>
    a acl:Authorization;
    acl:agent <{web_id}>;
    acl:accessTo <{resource}>;
    acl:mode acl:Read, acl:Write, acl:Control.
"""

ACP_TEMPLATE = """@prefix acp: <http://www.w3.org/ns/solid/acp#>.
@prefix acl: <http://www.w3.org/ns/auth/acl#>.

<#root>
    a acp:AccessControlResource;
    acp:resource <{resource}>;
    acp:accessControl <#ownerAccess>.
<#ownerAccess>
    a acp:AccessControl;
    acp:apply <#ownerPolicy>.
<#ownerPolicy>
    a acp:Policy;
    acp:allow acl:Read, acl:Write, acl:Control;
    acp:anyOf <#ownerMatcher>.
<#ownerMatcher>
    a acp:Matcher;
    acp:agent <{web_id}>.
"""

TURTLE = "text/turtle"


def join_pod_path(pod_uri: str, path_in_pod: str) -> str:
    """Resource URL for a relative path, each segment percent-encoded."""
    segments = path_in_pod.lstrip("/").split("/")
    return pod_uri.rstrip("/") + "/" + "/".join(quote(segment, safe="") for segment in segments)


class PodHTTPClient:
    """
    Shared httpx client with retrying PUT.

    Transport errors and 5xx responses are retried with linear backoff up to
    ``retries`` extra attempts; 4xx responses fail immediately.
    """

    def __init__(self, timeout: float = 60, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def put(
        self,
        url: str,
        content: bytes,
        headers: Dict[str, str],
        retries: int,
        error_cls: Type[Exception],
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("PodHTTPClient not initialized. Use 'async with' context.")

        attempts = max(retries, 0) + 1
        last_error: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(attempts):
            try:
                response = await self._client.put(url, content=content, headers=headers)
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                last_status = None
            else:
                if response.status_code < 400:
                    return response
                last_status = response.status_code
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                if response.status_code < 500:
                    break

            if attempt < attempts - 1:
                logger.debug("PUT %s failed (%s), retry %d/%d", url, last_error, attempt + 1, retries)
                await asyncio.sleep(min(RETRY_BACKOFF * (attempt + 1), MAX_BACKOFF))

        raise error_cls(f"PUT {url} failed: {last_error}", retries=retries, status_code=last_status)


class PodContentUploader:
    """Stores file content with PUT. Implements IContentUploader protocol."""

    def __init__(self, http: PodHTTPClient):
        self._http = http

    async def upload(
        self,
        session: SessionCredential,
        identity: PodIdentity,
        content: bytes,
        path_in_pod: str,
        content_type: str,
        retries: int,
    ) -> None:
        url = join_pod_path(identity.pod_uri, path_in_pod)
        headers = {"Content-Type": content_type, **session.headers}
        await self._http.put(url, content, headers, retries, UploadError)
        logger.debug("Uploaded %s (%d bytes)", url, len(content))


class AuthzMetadataAttacher:
    """
    Writes an owner-only authorization document next to an uploaded file.

    Implements IMetadataAttacher protocol.
    """

    def __init__(self, http: PodHTTPClient):
        self._http = http

    @staticmethod
    def render(flavor: AuthzFlavor, web_id: str, resource: str) -> str:
        template = WAC_TEMPLATE if flavor is AuthzFlavor.WAC else ACP_TEMPLATE
        return template.format(web_id=web_id, resource=resource)

    async def attach(
        self,
        session: SessionCredential,
        identity: PodIdentity,
        dir_in_pod: str,
        file_name: str,
        flavor: AuthzFlavor,
        retries: int,
    ) -> None:
        resource = join_pod_path(identity.pod_uri, f"{dir_in_pod}{file_name}")
        url = f"{resource}{flavor.suffix}"
        body = self.render(flavor, identity.web_id, resource).encode("utf-8")
        headers = {"Content-Type": TURTLE, **session.headers}
        await self._http.put(url, body, headers, retries, MetadataError)
        logger.debug("Attached %s to %s", flavor.value, resource)

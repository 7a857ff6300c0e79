# app/services/supabase_admin.py
"""
Service-role access to the hosted backend's Storage and Auth admin APIs.

Storage reads here are lenient (a missing object is ``None``) because every
caller has a fallback; writes and auth admin calls raise ``UpstreamError``.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, unquote

import httpx

from app.core import config
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

_STORAGE_URL_RE = re.compile(r"/storage/v1/object/(?:public|sign)/([^/]+)/(.+)$")

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".svg", ".webp")


def mime_from_path(path: str) -> str:
    lower = (path or "").lower()
    if lower.endswith(".png"):
        return "image/png"
    if lower.endswith(".jpg") or lower.endswith(".jpeg"):
        return "image/jpeg"
    if lower.endswith(".svg"):
        return "image/svg+xml"
    if lower.endswith(".webp"):
        return "image/webp"
    return "image/png"


def parse_storage_url(url: str) -> Optional[tuple]:
    """Public or signed storage URL -> (bucket, path); anything else -> None."""
    clean = (url or "").split("?")[0]
    match = _STORAGE_URL_RE.search(clean)
    if not match:
        return None
    return match.group(1), unquote(match.group(2))


@dataclass
class StoredObject:
    content: bytes
    content_type: str
    bucket: Optional[str] = None
    path: Optional[str] = None


@dataclass
class InviteLink:
    user_id: str
    action_link: str


class SupabaseAdmin:
    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self._transport = transport

    @property
    def _headers(self) -> dict:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, headers=self._headers)

    # -----------------------
    # Storage
    # -----------------------
    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path.lstrip('/'))}"

    async def download(self, bucket: str, path: str) -> Optional[StoredObject]:
        clean_path = (path or "").lstrip("/")
        if not bucket or not clean_path:
            return None
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(clean_path)}"
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Storage download %s/%s failed: %s", bucket, clean_path, exc)
            return None
        if response.status_code != 200 or not response.content:
            return None
        content_type = response.headers.get("content-type") or mime_from_path(clean_path)
        return StoredObject(response.content, content_type, bucket, clean_path)

    async def list_names(self, bucket: str, prefix: str, limit: int = 100) -> List[str]:
        url = f"{self.base_url}/storage/v1/object/list/{bucket}"
        body = {"prefix": prefix, "limit": limit, "offset": 0, "sortBy": {"column": "name", "order": "asc"}}
        try:
            async with self._client() as client:
                response = await client.post(url, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Storage list %s/%s failed: %s", bucket, prefix, exc)
            return []
        if response.status_code != 200:
            return []
        return [str(entry.get("name") or "") for entry in response.json() or [] if isinstance(entry, dict)]

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(path.lstrip('/'))}"
        headers = {"Content-Type": content_type, "x-upsert": "true"}
        try:
            async with self._client() as client:
                response = await client.post(url, content=content, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError("storage", f"upload failed: {exc}")
        if response.status_code >= 400:
            raise UpstreamError("storage", response.text, response.status_code)
        return self.public_url(bucket, path)

    async def fetch_remote(self, url: str) -> Optional[StoredObject]:
        """Plain GET of an external (non-storage) image URL."""
        if not url:
            return None
        try:
            async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Remote logo fetch %s failed: %s", url, exc)
            return None
        if response.status_code != 200 or not response.content:
            return None
        return StoredObject(response.content, response.headers.get("content-type") or "image/png")

    # -----------------------
    # Auth admin
    # -----------------------
    async def generate_invite_link(self, email: str, data: dict, redirect_to: Optional[str] = None) -> InviteLink:
        """Create (or reuse) the invited auth user and return a sign-up link without sending mail."""
        body = {"type": "invite", "email": email, "data": data}
        if redirect_to:
            body["redirect_to"] = redirect_to
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/auth/v1/admin/generate_link", json=body)
        except httpx.HTTPError as exc:
            raise UpstreamError("auth", f"invite failed: {exc}")

        if response.status_code >= 400:
            try:
                message = response.json().get("msg") or response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise UpstreamError("auth", message, response.status_code)

        payload = response.json() or {}
        user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
        properties = payload.get("properties") if isinstance(payload.get("properties"), dict) else payload
        user_id = str(user.get("id") or "")
        action_link = str(properties.get("action_link") or "")
        if not user_id:
            raise UpstreamError("auth", "Invite succeeded but no user id returned.")
        return InviteLink(user_id=user_id, action_link=action_link)


def get_supabase_admin() -> Optional[SupabaseAdmin]:
    """FastAPI dependency; None when the service role is not configured."""
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        return None
    return SupabaseAdmin(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)

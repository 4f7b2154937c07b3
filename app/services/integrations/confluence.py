"""
Publish generated Markdown to Confluence Cloud (REST API v1, basic auth).
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import markdown

from app.config import Settings, settings
from app.errors import ConfigurationError, PublishError
from app.services.file_manager import INDEX_FILENAME

logger = logging.getLogger(__name__)

TARGET = "Confluence"

_HEADER_COMMENT_RE = re.compile(r"^<!--.*?-->\s*", re.DOTALL)
_TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def to_storage_format(markdown_text: str) -> str:
    """Convert Markdown to Confluence storage-format XHTML."""
    body = _HEADER_COMMENT_RE.sub("", markdown_text, count=1)
    return markdown.markdown(
        body, extensions=["tables", "fenced_code", "sane_lists"], output_format="xhtml"
    )


def extract_title(markdown_text: str, fallback: str) -> str:
    match = _TITLE_RE.search(markdown_text)
    return match.group(1).strip() if match else fallback


class ConfluencePublisher:
    """Create or update one Confluence page per generated document."""

    def __init__(
        self,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def missing_configuration(self) -> List[str]:
        c = self.config
        return [
            name
            for name, value in (
                ("CONFLUENCE_BASE_URL", c.CONFLUENCE_BASE_URL),
                ("CONFLUENCE_EMAIL", c.CONFLUENCE_EMAIL),
                ("CONFLUENCE_API_TOKEN", c.CONFLUENCE_API_TOKEN),
                ("CONFLUENCE_SPACE_KEY", c.CONFLUENCE_SPACE_KEY),
            )
            if not value
        ]

    def _client(self) -> httpx.AsyncClient:
        missing = self.missing_configuration()
        if missing:
            raise ConfigurationError("Confluence is not configured", missing)
        return httpx.AsyncClient(
            base_url=f"{self.config.CONFLUENCE_BASE_URL.rstrip('/')}/wiki/rest/api",
            auth=(self.config.CONFLUENCE_EMAIL, self.config.CONFLUENCE_API_TOKEN),
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(30.0, connect=10.0),
            transport=self._transport,
        )

    @staticmethod
    def _check(resp: httpx.Response, action: str) -> Dict[str, Any]:
        if not 200 <= resp.status_code < 300:
            raise PublishError(
                TARGET, f"{action} returned HTTP {resp.status_code}: {resp.text[:300]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise PublishError(
                TARGET, f"{action} returned a non-JSON body: {resp.text[:300]}",
                status_code=resp.status_code,
            ) from exc

    async def test_connection(self) -> Dict[str, Any]:
        """Fetch the configured space; raises on any failure."""
        async with self._client() as client:
            try:
                resp = await client.get(f"/space/{self.config.CONFLUENCE_SPACE_KEY}")
            except httpx.HTTPError as exc:
                raise PublishError(TARGET, f"connection error: {exc}") from exc
        space = self._check(resp, "space lookup")
        logger.info("✓ Confluence space %s reachable", space.get("key"))
        return space

    async def publish_file(self, path: Path, title: Optional[str] = None) -> Dict[str, Any]:
        """
        Publish one Markdown file as a page.

        If a page with the same title exists in the space it is updated with
        an incremented version instead.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        title = title or extract_title(text, path.stem.replace("-", " ").title())
        body = {"storage": {"value": to_storage_format(text), "representation": "storage"}}
        space_key = self.config.CONFLUENCE_SPACE_KEY

        async with self._client() as client:
            try:
                existing = await self._find_page(client, title)
                if existing is None:
                    payload: Dict[str, Any] = {
                        "type": "page",
                        "title": title,
                        "space": {"key": space_key},
                        "body": body,
                    }
                    if self.config.CONFLUENCE_PARENT_PAGE_ID:
                        payload["ancestors"] = [{"id": self.config.CONFLUENCE_PARENT_PAGE_ID}]
                    page = self._check(await client.post("/content", json=payload), "page create")
                    action = "created"
                else:
                    version = existing.get("version", {}).get("number", 1) + 1
                    payload = {
                        "id": existing["id"],
                        "type": "page",
                        "title": title,
                        "space": {"key": space_key},
                        "body": body,
                        "version": {"number": version},
                    }
                    page = self._check(
                        await client.put(f"/content/{existing['id']}", json=payload),
                        "page update",
                    )
                    action = "updated"
            except httpx.HTTPError as exc:
                raise PublishError(TARGET, f"connection error: {exc}") from exc

        logger.info("✓ Confluence page %s: %s", action, title)
        return {"id": page.get("id"), "title": title, "action": action}

    async def _find_page(self, client: httpx.AsyncClient, title: str) -> Optional[Dict[str, Any]]:
        resp = await client.get(
            "/content",
            params={
                "spaceKey": self.config.CONFLUENCE_SPACE_KEY,
                "title": title,
                "expand": "version",
            },
        )
        results = self._check(resp, "page lookup").get("results", [])
        return results[0] if results else None

    async def publish_directory(self, output_dir: Path) -> List[Dict[str, Any]]:
        """Publish every generated Markdown file under *output_dir*."""
        output_dir = Path(output_dir)
        files = [
            p for p in sorted(output_dir.rglob("*.md"))
            if p.name != INDEX_FILENAME and ".git" not in p.parts
        ]
        if not files:
            raise FileNotFoundError(f"No Markdown documents found in {output_dir}")
        return [await self.publish_file(p) for p in files]

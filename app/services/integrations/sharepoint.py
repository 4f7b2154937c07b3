"""
Upload generated documents to a SharePoint document library via Microsoft Graph.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.config import Settings, settings
from app.errors import ConfigurationError, PublishError

logger = logging.getLogger(__name__)

TARGET = "SharePoint"

CONTENT_TYPES = {
    ".md": "text/markdown",
    ".json": "application/json",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class SharePointPublisher:
    """Simple (single PUT) uploads into ``{SHAREPOINT_FOLDER}`` of one drive."""

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
                ("SHAREPOINT_DRIVE_ID", c.SHAREPOINT_DRIVE_ID),
                ("SHAREPOINT_ACCESS_TOKEN", c.SHAREPOINT_ACCESS_TOKEN),
            )
            if not value
        ]

    def _client(self) -> httpx.AsyncClient:
        missing = self.missing_configuration()
        if missing:
            raise ConfigurationError("SharePoint is not configured", missing)
        return httpx.AsyncClient(
            base_url=self.config.SHAREPOINT_GRAPH_URL.rstrip("/"),
            headers={"Authorization": f"Bearer {self.config.SHAREPOINT_ACCESS_TOKEN}"},
            timeout=httpx.Timeout(60.0, connect=10.0),
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
        async with self._client() as client:
            try:
                resp = await client.get(f"/drives/{self.config.SHAREPOINT_DRIVE_ID}")
            except httpx.HTTPError as exc:
                raise PublishError(TARGET, f"connection error: {exc}") from exc
        drive = self._check(resp, "drive lookup")
        logger.info("✓ SharePoint drive %s reachable", drive.get("name"))
        return drive

    async def publish_file(self, path: Path, base_dir: Optional[Path] = None) -> Dict[str, Any]:
        """Upload *path*, keeping its location relative to *base_dir*."""
        path = Path(path)
        rel = path.relative_to(base_dir).as_posix() if base_dir else path.name
        remote = "/".join(p for p in (self.config.SHAREPOINT_FOLDER.strip("/"), rel) if p)
        url = f"/drives/{self.config.SHAREPOINT_DRIVE_ID}/root:/{quote(remote)}:/content"

        async with self._client() as client:
            try:
                resp = await client.put(
                    url,
                    content=path.read_bytes(),
                    headers={
                        "Content-Type": CONTENT_TYPES.get(path.suffix, "application/octet-stream")
                    },
                )
            except httpx.HTTPError as exc:
                raise PublishError(TARGET, f"connection error: {exc}") from exc

        item = self._check(resp, "upload")
        logger.info("✓ SharePoint upload: %s", remote)
        return {"name": item.get("name", path.name), "path": remote, "web_url": item.get("webUrl")}

    async def publish_directory(self, output_dir: Path) -> List[Dict[str, Any]]:
        output_dir = Path(output_dir)
        files = [
            p for p in sorted(output_dir.rglob("*"))
            if p.is_file() and p.suffix in CONTENT_TYPES and ".git" not in p.parts
        ]
        if not files:
            raise FileNotFoundError(f"No documents found in {output_dir}")
        return [await self.publish_file(p, base_dir=output_dir) for p in files]

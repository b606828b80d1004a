"""
Figma REST client.

Contains the FigmaClient class, node tree simplification for get_figma_data,
and the image download flow (image fills plus PNG/SVG renders).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiofiles
import httpx
import structlog

from .config import FigmaSettings, figma_settings
from .http import HttpClientFactory, raise_for_api_error, transient_retry
from .utils import ConfigurationError, ToolError

logger = structlog.get_logger(__name__)

SERVICE = "Figma"

SVG_RENDER_OPTIONS = {
    "svg_outline_text": "true",
    "svg_include_id": "false",
    "svg_simplify_stroke": "true",
}


@dataclass
class ImageRequest:
    """One image to download: an image fill (image_ref) or a node render (node_id)."""

    file_name: str
    image_ref: str | None = None
    node_id: str | None = None

    @property
    def is_svg(self) -> bool:
        return self.file_name.lower().endswith(".svg")


# ============== Helpers ==============

def apply_filename_suffix(file_name: str, suffix: str | None) -> str:
    """Insert `-suffix` before the extension unless the name already contains it."""
    if not suffix or not suffix.strip() or suffix in file_name:
        return file_name
    idx = file_name.rfind(".")
    if idx > 0:
        return f"{file_name[:idx]}-{suffix}{file_name[idx:]}"
    return f"{file_name}-{suffix}"


def resolve_download_dir(local_path: str, cwd: Path | None = None) -> Path:
    """Resolve the target directory, which must lie within the working directory."""
    base = (cwd or Path.cwd()).resolve()
    target = Path(local_path)
    if not target.is_absolute():
        target = base / target
    target = target.resolve()
    if target != base and base not in target.parents:
        raise ToolError("Invalid path specified. Directory traversal is not allowed.")
    return target


def simplify_node(node: dict) -> dict:
    simplified: dict[str, Any] = {
        "id": node.get("id"),
        "name": node.get("name"),
        "type": node.get("type"),
        "visible": node.get("visible") if isinstance(node.get("visible"), bool) else True,
    }
    children = [simplify_node(c) for c in node.get("children") or [] if isinstance(c, dict)]
    if children:
        simplified["children"] = children
    return simplified


def extract_nodes(data: dict) -> list[dict]:
    """Simplified node trees from a /files response (document) or a /nodes response."""
    document = data.get("document")
    if isinstance(document, dict):
        return [simplify_node(document)]
    nodes = data.get("nodes")
    if isinstance(nodes, dict):
        result = []
        for value in nodes.values():
            if not isinstance(value, dict):
                continue
            doc = value.get("document")
            result.append(simplify_node(doc if isinstance(doc, dict) else value))
        return result
    return []


def build_figma_data(raw: dict, node_id: str | None) -> dict:
    return {
        "metadata": {
            "name": raw.get("name") or ("Node Data" if node_id else "Unknown"),
            "lastModified": raw.get("lastModified") or "",
            "version": str(raw.get("version") or ""),
        },
        "nodes": extract_nodes(raw),
        "globalVars": {"styles": {}, "components": {}},
    }


def _tls_verify(settings: FigmaSettings) -> bool | str:
    if settings.ca_cert_pem and settings.ca_cert_pem.exists():
        return str(settings.ca_cert_pem)
    return not settings.ssl_insecure


# ============== Client ==============

class FigmaClient:
    """Figma REST API client.

    Sends a bearer OAuth token when configured, otherwise the X-Figma-Token
    header. Image downloads go through a second client that carries no
    credentials.
    """

    def __init__(self, settings: FigmaSettings = figma_settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        headers = {"Accept": "application/json"}
        if settings.oauth_token:
            headers["Authorization"] = f"Bearer {settings.oauth_token}"
        elif settings.api_key:
            headers["X-Figma-Token"] = settings.api_key
        verify = _tls_verify(settings)
        self._client = HttpClientFactory.client(
            base_url=settings.api_url.rstrip("/"), headers=headers, verify=verify, transport=transport
        )
        self._download_client = HttpClientFactory.client(verify=verify, transport=transport)

    async def aclose(self):
        await self._client.aclose()
        await self._download_client.aclose()

    def _require_credentials(self) -> None:
        if not self.settings.oauth_token and not self.settings.api_key:
            raise ConfigurationError("FIGMA_API_KEY or FIGMA_OAUTH_TOKEN must be set")

    @transient_retry()
    async def _get(self, path: str, params: dict | None = None) -> dict:
        self._require_credentials()
        r = await self._client.get(path, params=params)
        raise_for_api_error(r, SERVICE)
        return r.json()

    async def get_file(self, file_key: str, depth: int | None = None) -> dict:
        params = {"depth": depth} if depth is not None else None
        return await self._get(f"/files/{file_key}", params=params)

    async def get_nodes(self, file_key: str, node_ids: list[str], depth: int | None = None) -> dict:
        params: dict[str, Any] = {"ids": ",".join(node_ids)}
        if depth is not None:
            params["depth"] = depth
        return await self._get(f"/files/{file_key}/nodes", params=params)

    async def get_image_fills(self, file_key: str) -> dict[str, str]:
        data = await self._get(f"/files/{file_key}/images")
        return (data.get("meta") or {}).get("images") or {}

    async def get_images(
        self, file_key: str, node_ids: list[str], fmt: str, extra: dict[str, str] | None = None
    ) -> dict[str, str | None]:
        params = {"ids": ",".join(node_ids), "format": fmt, **(extra or {})}
        data = await self._get(f"/images/{file_key}", params=params)
        return data.get("images") or {}

    @transient_retry()
    async def download_bytes(self, url: str) -> bytes:
        r = await self._download_client.get(url)
        raise_for_api_error(r, SERVICE)
        return r.content

    async def get_figma_data(self, file_key: str, node_id: str | None = None, depth: int | None = None) -> dict:
        if node_id:
            raw = await self.get_nodes(file_key, [node_id], depth)
        else:
            raw = await self.get_file(file_key, depth)
        return build_figma_data(raw, node_id)

    async def _save(self, url: str, target: Path) -> None:
        content = await self.download_bytes(url)
        async with aiofiles.open(target, mode="wb") as f:
            await f.write(content)

    async def download_images(
        self, file_key: str, requests: list[ImageRequest], target_dir: Path, png_scale: int = 2
    ) -> list[str]:
        """Download fills and renders into target_dir. Returns the written file names.

        Items whose URL cannot be resolved are skipped.
        """
        target_dir.mkdir(parents=True, exist_ok=True)
        downloaded: list[str] = []

        fill_items = [r for r in requests if r.image_ref]
        if fill_items:
            fills = await self.get_image_fills(file_key)
            for item in fill_items:
                url = fills.get(item.image_ref)
                if url:
                    await self._save(url, target_dir / item.file_name)
                    downloaded.append(item.file_name)

        render_items = [r for r in requests if r.node_id]
        for is_svg in (False, True):
            batch = [r for r in render_items if r.is_svg == is_svg]
            if not batch:
                continue
            if is_svg:
                images = await self.get_images(file_key, [r.node_id for r in batch], "svg", SVG_RENDER_OPTIONS)
            else:
                images = await self.get_images(file_key, [r.node_id for r in batch], "png", {"scale": str(png_scale)})
            for item in batch:
                url = images.get(item.node_id)
                if url:
                    await self._save(url, target_dir / item.file_name)
                    downloaded.append(item.file_name)

        logger.info("figma_images_downloaded", file_key=file_key, count=len(downloaded), target=str(target_dir))
        return downloaded


def format_download_summary(downloaded: list[str]) -> str:
    lines = [f"Downloaded {len(downloaded)} images:"]
    lines.extend(f"- {name}" for name in downloaded)
    return "\n".join(lines)


# Global client instance
figma_client = FigmaClient()

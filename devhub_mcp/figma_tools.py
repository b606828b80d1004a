"""
Figma MCP tools.
"""

from pathlib import Path
from typing import Any

from mcp.types import TextContent, Tool

from .figma import (
    ImageRequest,
    apply_filename_suffix,
    figma_client,
    format_download_summary,
    resolve_download_dir,
)
from .utils import ToolError, arg_int, arg_str, require, text_result

DEFAULT_PNG_SCALE = 2

TOOLS: list[Tool] = [
    Tool(
        name="get_figma_data",
        description=(
            "Get the layout of a Figma file, or of one node within it, as a simplified node tree "
            "(id, name, type, visible, children) with file metadata."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "fileKey": {
                    "type": "string",
                    "description": "The key of the Figma file to fetch, from figma.com/(file|design)/<fileKey>/..."
                },
                "nodeId": {
                    "type": "string",
                    "description": "The ID of the node to fetch, use if provided"
                },
                "depth": {
                    "type": "integer",
                    "description": "OPTIONAL. Do not use unless explicitly requested by the user."
                }
            },
            "required": ["fileKey"]
        }
    ),
    Tool(
        name="download_figma_images",
        description="Download SVG and PNG images used in a Figma file based on the IDs of image or icon nodes.",
        inputSchema={
            "type": "object",
            "properties": {
                "fileKey": {"type": "string", "description": "Figma file key"},
                "nodes": {
                    "type": "array",
                    "description": "The nodes to fetch as images",
                    "items": {
                        "type": "object",
                        "properties": {
                            "nodeId": {"type": "string", "description": "Node ID like 1234:5678"},
                            "imageRef": {"type": "string", "description": "imageRef if using a fill image"},
                            "fileName": {"type": "string", "description": "Local filename with extension"},
                            "filenameSuffix": {"type": "string", "description": "Suffix inserted before the extension"},
                            "needsCropping": {"type": "boolean"},
                            "cropTransform": {"type": "array"},
                            "requiresImageDimensions": {"type": "boolean"},
                        },
                        "required": ["fileName"]
                    }
                },
                "pngScale": {
                    "type": "number",
                    "description": "PNG export scale (default 2)",
                    "default": DEFAULT_PNG_SCALE
                },
                "localPath": {
                    "type": "string",
                    "description": "Target directory; must be inside the server's working directory"
                }
            },
            "required": ["fileKey", "nodes", "localPath"]
        }
    ),
]


def parse_image_requests(nodes: list[Any]) -> list[ImageRequest]:
    """Build download requests from the tool's nodes argument.

    Items without a fileName are skipped. File names are reduced to their
    final path component so every file lands in the target directory.
    """
    requests = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        file_name = arg_str(node, "fileName")
        if not file_name or not Path(file_name).name:
            continue
        file_name = apply_filename_suffix(Path(file_name).name, arg_str(node, "filenameSuffix"))
        requests.append(ImageRequest(
            file_name=file_name,
            image_ref=arg_str(node, "imageRef"),
            node_id=arg_str(node, "nodeId"),
        ))
    return requests


async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent] | None:
    if name == "get_figma_data":
        (file_key,) = require(arguments, "fileKey")
        if not file_key.strip():
            raise ToolError("fileKey is required")
        data = await figma_client.get_figma_data(
            file_key, arg_str(arguments, "nodeId") or None, arg_int(arguments, "depth")
        )
        return text_result(data)

    elif name == "download_figma_images":
        file_key = arg_str(arguments, "fileKey")
        nodes = arguments.get("nodes")
        local_path = arg_str(arguments, "localPath")
        if not file_key or not isinstance(nodes, list) or not local_path:
            raise ToolError("fileKey, nodes, localPath are required")
        target_dir = resolve_download_dir(local_path)
        downloaded = await figma_client.download_images(
            file_key,
            parse_image_requests(nodes),
            target_dir,
            png_scale=arg_int(arguments, "pngScale", DEFAULT_PNG_SCALE),
        )
        return text_result(format_download_summary(downloaded))

    return None

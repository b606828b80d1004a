# DevHub MCP Server
#
# Modular package structure:
# - config.py: Settings classes, one per external service
# - logging.py: structlog configuration
# - models.py: Knowledge graph records and simplified API payloads
# - utils.py: Shared exceptions, argument coercion and JSON rendering
# - markup.py: Markdown <-> Confluence storage markup conversion
# - memory.py: KnowledgeGraphStore over a newline-delimited JSON file
# - http.py: httpx client factory, retry policy and API errors
# - gitlab.py, confluence.py, figma.py, mattermost.py: REST clients
# - oracle.py: Read-only SELECT runner and result formatting
# - *_tools.py: MCP tool definitions and handlers per service
# - tools.py: MCP server instance and dispatch
# - main.py: Entry point and server initialization

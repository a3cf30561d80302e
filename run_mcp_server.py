"""
Launch the stageform tool server.

An MCP client opens forms, records answers stage by stage and submits
them through the tools this server exposes.

    python run_mcp_server.py                      # stdio, for a local client
    python run_mcp_server.py --transport sse      # HTTP/SSE on MCP_PORT
    python run_mcp_server.py --server-url https://forms.example.org
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from a checkout without installing the package.
sys.path.insert(0, str(Path(__file__).parent / "src"))

from stageform.config import get_config, update_config
from stageform.mcp_server import get_mcp_tools, run_mcp_server


def parse_args(argv=None) -> argparse.Namespace:
    config = get_config()
    parser = argparse.ArgumentParser(
        description="Serve stageform form sessions over the Model Context Protocol.",
        epilog=(
            "Defaults come from MCP_TRANSPORT, MCP_PORT, STAGEFORM_SERVER_URL "
            "and STAGEFORM_LOG_LEVEL (a .env file is read if present)."
        ),
    )
    parser.add_argument("--transport", choices=["stdio", "sse"], default=config.mcp_transport)
    parser.add_argument("--host", default="0.0.0.0", help="bind address for sse")
    parser.add_argument("--port", type=int, default=config.mcp_port, help="listen port for sse")
    parser.add_argument("--server-url", default=None, help="form host to fetch and submit forms")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING ...")
    return parser.parse_args(argv)


def main():
    args = parse_args()
    overrides = {}
    if args.server_url:
        overrides["form_server_url"] = args.server_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = update_config(**overrides)

    # stdout is the protocol channel under stdio.
    tools = ", ".join(tool["name"] for tool in get_mcp_tools())
    where = f" on {args.host}:{args.port}" if args.transport == "sse" else ""
    print(f"stageform: {args.transport}{where}, form host {config.form_server_url}", file=sys.stderr)
    print(f"stageform: tools {tools}", file=sys.stderr)

    try:
        asyncio.run(run_mcp_server(transport=args.transport, host=args.host, port=args.port))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

"""
Task workflow MCP server entry point.

Startup sequence:
1. Read settings from the environment and configure logging
2. Load and validate the workflow config (exit 1 if it is broken)
3. Build the task backend and the service graph
4. Start REST API server in background thread (if API_ENABLED)
5. Register all MCP tools
6. Run MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from backends import create_backend
from errors import ConfigError
from settings import Settings, load_workflow_config
from tools import register_task_tools
from workflow.services import build_services

log = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _start_api_server(services, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from api.app import create_app

    app = create_app(services)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    try:
        settings = Settings.from_env()
        _configure_logging(settings.log_level)
        config = load_workflow_config(settings)
        backend = create_backend(settings)
    except ConfigError as e:
        _configure_logging("INFO")
        log.error("Configuration error: %s", e)
        sys.exit(1)

    log.info("Backend: %s", backend.name)
    log.info(
        "Workflow: %d statuses, %d task types, human-only: %s",
        len(config.status_mapping),
        len(config.task_types),
        ", ".join(config.requires_validation) or "none",
    )

    services = build_services(config, backend)

    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(services, settings.api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("task-workflow")
    register_task_tools(mcp, services)

    log.info("Starting task-workflow server")
    try:
        mcp.run(transport="stdio")
    finally:
        backend.close()


if __name__ == "__main__":
    main()

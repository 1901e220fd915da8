from errors import ConfigError

from .base import NOT_SUPPORTED, Capability, TaskBackend
from .memory import InMemoryBackend
from .notion import NotionBackend


def create_backend(settings) -> TaskBackend:
    """Build the backend selected by settings.backend."""
    if settings.backend == "memory":
        return InMemoryBackend()

    if not settings.notion_api_key:
        raise ConfigError("NOTION_API_KEY environment variable is required for the notion backend")
    if not settings.notion_database_id:
        raise ConfigError("NOTION_DATABASE_ID environment variable is required for the notion backend")
    return NotionBackend(
        api_key=settings.notion_api_key,
        database_id=settings.notion_database_id,
        base_url=settings.notion_api_url,
    )


__all__ = [
    "NOT_SUPPORTED",
    "Capability",
    "InMemoryBackend",
    "NotionBackend",
    "TaskBackend",
    "create_backend",
]

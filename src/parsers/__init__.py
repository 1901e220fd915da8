from .todo_parser import (
    DEFAULT_POLICY,
    DEFAULT_SECTION_TITLE,
    FALLBACK_SECTION_TITLE,
    ParserPolicy,
    build_hierarchy,
    calculate_stats,
    parse,
)

__all__ = [
    "DEFAULT_POLICY",
    "DEFAULT_SECTION_TITLE",
    "FALLBACK_SECTION_TITLE",
    "ParserPolicy",
    "build_hierarchy",
    "calculate_stats",
    "parse",
]

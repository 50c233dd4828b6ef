"""Utilities to standardize OpenAPI/Swagger tags across the project.

Use tags in the format: "<Category> - <Level>"
Examples: "Stock - Authenticated", "Transferencias - Admin"
"""

from typing import List


def tag_name(category: str, level: str) -> str:
    """Return a single tag name following the project's convention."""
    return f"{category} - {level}"


def tags(category: str, level: str) -> List[str]:
    """Return a list with a single tag element (convenience for decorators)."""
    return [tag_name(category, level)]


def stock_authenticated() -> List[str]:
    return tags('Stock', 'Authenticated')


def stock_admin() -> List[str]:
    return tags('Stock', 'Admin')


def transferencias_authenticated() -> List[str]:
    return tags('Transferencias', 'Authenticated')


def transferencias_admin() -> List[str]:
    return tags('Transferencias', 'Admin')


def notificaciones_authenticated() -> List[str]:
    return tags('Notificaciones', 'Authenticated')

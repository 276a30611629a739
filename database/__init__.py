"""Markdown-backed storage for customer records and message templates."""
from .manager import CustomerStore
from .models import CustomerRecord, TemplateDefinition

__all__ = [
    "CustomerStore",
    "CustomerRecord",
    "TemplateDefinition",
]

from .base import DocumentModel
from .blocks import BLOCK_TYPES, ContentBlock, GenericBlock, parse_block
from .form_entry import FormEntry, FormEntryMetadata
from .page import ContentHierarchy, Page, SitemapEntry
from .tenant import Tenant, TenantStatus
from .theme import MenuItem, Theme
from .user import User, UserRole

__all__ = [
    "DocumentModel",
    "BLOCK_TYPES",
    "ContentBlock",
    "GenericBlock",
    "parse_block",
    "FormEntry",
    "FormEntryMetadata",
    "ContentHierarchy",
    "Page",
    "SitemapEntry",
    "Tenant",
    "TenantStatus",
    "MenuItem",
    "Theme",
    "User",
    "UserRole",
]

from typing import Dict, List

from pydantic import Field

from .base import DocumentModel, UtcDatetime, utcnow


class ThemeHeader(DocumentModel):
    logo_url: str = ""
    logo_alt: str = ""
    sticky: bool = False
    cta_text: str = ""
    cta_url: str = ""
    cta_target: str = "_self"
    class_names: Dict[str, str] = Field(default_factory=dict)


class ThemeFooter(DocumentModel):
    copyright: str = ""
    description: str = ""
    class_names: Dict[str, str] = Field(default_factory=dict)


class MenuItem(DocumentModel):
    label: str = ""
    url: str = ""
    target: str = "_self"
    icon: str = ""
    order: int = 0
    is_visible: bool = True
    children: List["MenuItem"] = Field(default_factory=list)


class Theme(DocumentModel):
    """Tenant styling and navigation bundle.

    ``block_styles`` maps block type -> style slot -> CSS class string.
    At most one theme per tenant should be active; that is kept by the
    service layer, storage does not enforce it.
    """

    id: str = ""
    tenant_id: str = ""
    name: str = ""
    description: str = ""
    is_active: bool = True
    header: ThemeHeader = Field(default_factory=ThemeHeader)
    footer: ThemeFooter = Field(default_factory=ThemeFooter)
    block_styles: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    menu: List[MenuItem] = Field(default_factory=list)
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

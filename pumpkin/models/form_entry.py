from typing import Any, Dict, List

from pydantic import Field

from .base import DocumentModel, UtcDatetime, utcnow


class FormEntryMetadata(DocumentModel):
    source: str = ""
    referrer: str = ""
    status: str = "new"
    tags: List[str] = Field(default_factory=list)


class FormEntry(DocumentModel):
    """A visitor form submission, stored per tenant."""

    id: str = ""
    tenant_id: str = ""
    form_id: str = ""
    page_slug: str = ""
    form_data: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: UtcDatetime = Field(default_factory=utcnow)
    ip_address: str = ""
    user_agent: str = ""
    metadata: FormEntryMetadata = Field(default_factory=FormEntryMetadata)

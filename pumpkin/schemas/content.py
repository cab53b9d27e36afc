from typing import List

from pumpkin.models.page import Page
from pumpkin.models.theme import Theme
from pumpkin.schemas.base import ApiSchema


class PageListResponse(ApiSchema):
    pages: List[Page]
    count: int
    tenant_id: str


class ThemeListResponse(ApiSchema):
    themes: List[Theme]
    count: int
    tenant_id: str


class FormSubmittedResponse(ApiSchema):
    id: str
    message: str = "Form submitted"

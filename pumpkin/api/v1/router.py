from fastapi import APIRouter

from pumpkin.api.v1.endpoints import (
    admin_hierarchy,
    admin_pages,
    admin_tenants,
    admin_themes,
    auth,
    forms,
    pages,
    sitemap,
    themes,
)

api_router = APIRouter()

# Content-serving (tenant API key)
api_router.include_router(pages.router, prefix="/pages", tags=["content"])
api_router.include_router(themes.router, prefix="/themes", tags=["content"])
api_router.include_router(sitemap.router, prefix="/sitemap", tags=["content"])
api_router.include_router(forms.router, prefix="/forms", tags=["content"])

# Authentication
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Admin (session token)
api_router.include_router(admin_tenants.router, prefix="/admin/tenants", tags=["admin"])
api_router.include_router(admin_pages.router, prefix="/admin/pages", tags=["admin"])
api_router.include_router(admin_hierarchy.router, prefix="/admin/hierarchy", tags=["admin"])
api_router.include_router(admin_themes.router, prefix="/admin/themes", tags=["admin"])

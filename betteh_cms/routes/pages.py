"""
Betteh Music CMS - Public Page Routes

Serves the public site using Jinja2 templates: home (news posts), industry,
gallery and staff.  These handlers only read the store and never fail on
empty collections.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from betteh_cms.auth import get_current_user
from betteh_cms.config import APP_VERSION, SOCIAL_PLATFORMS

router = APIRouter(tags=["Pages"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def render(
    request: Request,
    template: str,
    page_title: str,
    status_code: int = 200,
    **context: Any,
) -> HTMLResponse:
    """Render a template with the context every page shares."""
    context.setdefault("social", None)
    context.update(
        {
            "page_title": page_title,
            "current_user": get_current_user(request),
            "version": APP_VERSION,
            "platforms": SOCIAL_PLATFORMS,
        }
    )
    return request.app.state.templates.TemplateResponse(
        request, template, context, status_code=status_code
    )


# ---------------------------------------------------------------------------
# Home
# ---------------------------------------------------------------------------
@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    """Landing page with the news feed, newest post first."""
    document = await request.app.state.store.read()
    return render(
        request,
        "home.html",
        "Home",
        posts=list(reversed(document.posts)),
        social=document.social,
    )


# ---------------------------------------------------------------------------
# Industry
# ---------------------------------------------------------------------------
@router.get("/industry", response_class=HTMLResponse)
async def industry(request: Request):
    document = await request.app.state.store.read()
    return render(request, "industry.html", "Industry", social=document.social)


# ---------------------------------------------------------------------------
# Gallery
# ---------------------------------------------------------------------------
@router.get("/gallery", response_class=HTMLResponse)
async def gallery(request: Request):
    """Photo gallery in upload order."""
    document = await request.app.state.store.read()
    return render(
        request,
        "gallery.html",
        "Gallery",
        items=document.gallery,
        social=document.social,
    )


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------
@router.get("/staff", response_class=HTMLResponse)
async def staff(request: Request):
    document = await request.app.state.store.read()
    return render(
        request,
        "staff.html",
        "Staff",
        staff=document.staff,
        social=document.social,
    )

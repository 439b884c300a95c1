"""
Betteh Music CMS - Admin Routes

Dashboard and every mutating action: posts, gallery, staff, social links
and admin accounts.  All routes require a valid admin session.

Each mutation follows the same shape:
    1. Validate form fields and save any new upload.
    2. Run the change inside ``store.transaction()``.  Unknown ids raise
       ``NotFound`` inside the block, which aborts without writing and is
       turned into a silent redirect.
    3. Once the document is persisted, release any superseded upload.
    4. Redirect back to ``/admin``.

``StorageFailure`` is deliberately not caught here; the application-level
handler turns it into an error page instead of a success redirect.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger

from betteh_cms.auth import hash_password, require_admin, validate_new_admin
from betteh_cms.config import DEFAULT_POST_TITLE
from betteh_cms.errors import InvalidUpload, NotFound, StorageFailure
from betteh_cms.models import Admin, GalleryItem, Post, SocialLinks, StaffMember
from betteh_cms.routes.pages import render
from betteh_cms.uploads import UploadManager

router = APIRouter(prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _back(error: Optional[str] = None, notice: Optional[str] = None) -> RedirectResponse:
    """Redirect to the dashboard, optionally carrying a message."""
    params = {}
    if error:
        params["error"] = error
    if notice:
        params["notice"] = notice
    url = "/admin"
    if params:
        url += "?" + urlencode(params)
    return RedirectResponse(url=url, status_code=302)


@asynccontextmanager
async def _discard_on_failure(uploads: UploadManager, filename: Optional[str]):
    """Release a freshly saved upload if the enclosed store change fails."""
    try:
        yield
    except Exception:
        await uploads.release(filename)
        raise


async def _release_superseded(uploads: UploadManager, filename: Optional[str]) -> None:
    """Release a file the committed document no longer references."""
    try:
        await uploads.release(filename)
    except StorageFailure as e:
        # The document is already committed; the file is only an orphan now
        logger.error("❌ Could not release superseded upload {}: {}", filename, e)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------
@router.get("", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    error: Optional[str] = None,
    notice: Optional[str] = None,
    admin: str = Depends(require_admin),
):
    document = await request.app.state.store.read()
    return render(
        request,
        "admin.html",
        "Dashboard",
        posts=list(reversed(document.posts)),
        gallery=document.gallery,
        staff=document.staff,
        social=document.social,
        admins=[a.username for a in document.admins],
        error=error,
        notice=notice,
    )


# ---------------------------------------------------------------------------
# Gallery
# ---------------------------------------------------------------------------
@router.post("/gallery/upload")
async def gallery_upload(
    request: Request,
    image: Optional[UploadFile] = File(None),
    caption: str = Form(""),
    admin: str = Depends(require_admin),
):
    store = request.app.state.store
    uploads = request.app.state.uploads

    try:
        filename = await uploads.save_upload(image)
    except InvalidUpload as e:
        return _back(error=e.message)
    if filename is None:
        return _back(error="Choose an image to upload")

    item = GalleryItem(filename=filename, caption=caption.strip())
    async with _discard_on_failure(uploads, filename):
        async with store.transaction() as document:
            document.gallery.append(item)

    logger.info("🖼️  {} added gallery item {}", admin, item.id)
    return _back(notice="Image uploaded")


@router.post("/gallery/edit/{item_id}")
async def gallery_edit(
    request: Request,
    item_id: str,
    caption: str = Form(""),
    admin: str = Depends(require_admin),
):
    try:
        async with request.app.state.store.transaction() as document:
            document.get_gallery_item(item_id).caption = caption.strip()
    except NotFound as e:
        logger.info("ℹ️  Ignoring edit: {}", e.message)
        return _back()

    logger.info("✏️  {} edited gallery item {}", admin, item_id)
    return _back(notice="Caption updated")


@router.post("/gallery/delete/{item_id}")
async def gallery_delete(
    request: Request,
    item_id: str,
    admin: str = Depends(require_admin),
):
    try:
        async with request.app.state.store.transaction() as document:
            item = document.get_gallery_item(item_id)
            document.gallery.remove(item)
    except NotFound as e:
        logger.info("ℹ️  Ignoring delete: {}", e.message)
        return _back()

    await _release_superseded(request.app.state.uploads, item.filename)
    logger.info("🗑️  {} deleted gallery item {}", admin, item_id)
    return _back(notice="Image deleted")


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
@router.post("/posts/add")
async def post_add(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    image: Optional[UploadFile] = File(None),
    admin: str = Depends(require_admin),
):
    store = request.app.state.store
    uploads = request.app.state.uploads

    try:
        filename = await uploads.save_upload(image)
    except InvalidUpload as e:
        return _back(error=e.message)

    post = Post(
        title=title.strip() or DEFAULT_POST_TITLE,
        description=description.strip(),
        image=filename or "",
    )
    async with _discard_on_failure(uploads, filename):
        async with store.transaction() as document:
            document.posts.append(post)

    logger.info("📝 {} added post {} '{}'", admin, post.id, post.title)
    return _back(notice="Post added")


@router.post("/posts/edit/{post_id}")
async def post_edit(
    request: Request,
    post_id: str,
    title: str = Form(""),
    description: str = Form(""),
    image: Optional[UploadFile] = File(None),
    admin: str = Depends(require_admin),
):
    store = request.app.state.store
    uploads = request.app.state.uploads

    try:
        filename = await uploads.save_upload(image)
    except InvalidUpload as e:
        return _back(error=e.message)

    superseded = ""
    try:
        async with _discard_on_failure(uploads, filename):
            async with store.transaction() as document:
                post = document.get_post(post_id)
                post.title = title.strip() or DEFAULT_POST_TITLE
                post.description = description.strip()
                if filename:
                    superseded, post.image = post.image, filename
    except NotFound as e:
        logger.info("ℹ️  Ignoring edit: {}", e.message)
        return _back()

    await _release_superseded(uploads, superseded)
    logger.info("✏️  {} edited post {}", admin, post_id)
    return _back(notice="Post updated")


@router.post("/posts/delete/{post_id}")
async def post_delete(
    request: Request,
    post_id: str,
    admin: str = Depends(require_admin),
):
    try:
        async with request.app.state.store.transaction() as document:
            post = document.get_post(post_id)
            document.posts.remove(post)
    except NotFound as e:
        logger.info("ℹ️  Ignoring delete: {}", e.message)
        return _back()

    await _release_superseded(request.app.state.uploads, post.image)
    logger.info("🗑️  {} deleted post {}", admin, post_id)
    return _back(notice="Post deleted")


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------
@router.post("/staff/add")
async def staff_add(
    request: Request,
    name: str = Form(""),
    title: str = Form(""),
    bio: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    admin: str = Depends(require_admin),
):
    store = request.app.state.store
    uploads = request.app.state.uploads

    if not name.strip():
        return _back(error="Staff name is required")

    try:
        filename = await uploads.save_upload(photo)
    except InvalidUpload as e:
        return _back(error=e.message)

    member = StaffMember(
        name=name.strip(),
        title=title.strip(),
        bio=bio.strip(),
        photo=filename or "",
    )
    async with _discard_on_failure(uploads, filename):
        async with store.transaction() as document:
            document.staff.append(member)

    logger.info("👤 {} added staff member {} '{}'", admin, member.id, member.name)
    return _back(notice="Staff member added")


@router.post("/staff/edit/{member_id}")
async def staff_edit(
    request: Request,
    member_id: str,
    name: str = Form(""),
    title: str = Form(""),
    bio: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    admin: str = Depends(require_admin),
):
    store = request.app.state.store
    uploads = request.app.state.uploads

    if not name.strip():
        return _back(error="Staff name is required")

    try:
        filename = await uploads.save_upload(photo)
    except InvalidUpload as e:
        return _back(error=e.message)

    superseded = ""
    try:
        async with _discard_on_failure(uploads, filename):
            async with store.transaction() as document:
                member = document.get_staff_member(member_id)
                member.name = name.strip()
                member.title = title.strip()
                member.bio = bio.strip()
                if filename:
                    superseded, member.photo = member.photo, filename
    except NotFound as e:
        logger.info("ℹ️  Ignoring edit: {}", e.message)
        return _back()

    await _release_superseded(uploads, superseded)
    logger.info("✏️  {} edited staff member {}", admin, member_id)
    return _back(notice="Staff member updated")


@router.post("/staff/delete/{member_id}")
async def staff_delete(
    request: Request,
    member_id: str,
    admin: str = Depends(require_admin),
):
    try:
        async with request.app.state.store.transaction() as document:
            member = document.get_staff_member(member_id)
            document.staff.remove(member)
    except NotFound as e:
        logger.info("ℹ️  Ignoring delete: {}", e.message)
        return _back()

    await _release_superseded(request.app.state.uploads, member.photo)
    logger.info("🗑️  {} deleted staff member {}", admin, member_id)
    return _back(notice="Staff member deleted")


# ---------------------------------------------------------------------------
# Social links
# ---------------------------------------------------------------------------
@router.post("/social")
async def social_update(
    request: Request,
    facebook: str = Form(""),
    instagram: str = Form(""),
    tiktok: str = Form(""),
    youtube: str = Form(""),
    admin: str = Depends(require_admin),
):
    """Replace every social link; blank fields are cleared, not kept."""
    links = SocialLinks(
        facebook=facebook.strip(),
        instagram=instagram.strip(),
        tiktok=tiktok.strip(),
        youtube=youtube.strip(),
    )
    async with request.app.state.store.transaction() as document:
        document.social = links

    logger.info("🔗 {} updated social links", admin)
    return _back(notice="Social links saved")


# ---------------------------------------------------------------------------
# Admin accounts
# ---------------------------------------------------------------------------
@router.post("/admins/add")
async def admins_add(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    admin: str = Depends(require_admin),
):
    try:
        validate_new_admin(username, password)
    except ValueError as e:
        return _back(error=str(e))

    # Hash outside the write lock; bcrypt is slow on purpose
    password_hash = await asyncio.to_thread(hash_password, password)

    try:
        async with request.app.state.store.transaction() as document:
            if document.find_admin(username) is not None:
                raise ValueError(f"Admin '{username}' already exists")
            document.admins.append(Admin(username=username, password_hash=password_hash))
    except ValueError as e:
        return _back(error=str(e))

    logger.info("🔑 {} added admin '{}'", admin, username)
    return _back(notice=f"Admin '{username}' added")

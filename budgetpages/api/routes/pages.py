"""Page routes, including the entries on a page's days."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from budgetpages.api.deps import get_components, get_current_user
from budgetpages.api.schemas import (
    EntryCreate,
    EntryUpdate,
    PageCreate,
    PageUpdate,
    changes_of,
)
from budgetpages.models import Entry, User, is_valid_slot
from budgetpages.orchestrator import AppComponents, PageNotFoundError, ValidationError
from budgetpages.services.storage import UNSET


router = APIRouter(prefix="/page", tags=["pages"])


def parse_day_index(raw: str) -> int:
    """Path day index: an integer slot 1..7."""
    try:
        day_index = int(raw)
    except ValueError:
        raise ValidationError("Invalid day index")
    if not is_valid_slot(day_index):
        raise ValidationError("Invalid day index")
    return day_index


@router.get("")
async def list_pages(
    folder_id: Optional[str] = Query(default=None, alias="folderId"),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    # folderId=null selects pages at the root; no folderId selects all
    if folder_id is None:
        scope = UNSET
    elif folder_id == "null":
        scope = None
    else:
        scope = folder_id
    pages = await components.pages.list_pages(user.id, scope)
    return [p.to_document() for p in pages]


@router.post("", status_code=201)
async def create_page(
    body: PageCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    page = await components.pages.create_page(
        user.id,
        folder_id=body.folder_id,
        title=body.title,
        icon=body.icon,
    )
    return page.to_document()


@router.get("/{page_id}")
async def get_page(
    page_id: str,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    page = await components.pages.get_page(user.id, page_id)
    if page is None:
        raise PageNotFoundError("Page not found")
    return page.to_document()


@router.patch("/{page_id}")
async def update_page(
    page_id: str,
    body: PageUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    page = await components.pages.update_page(user.id, page_id, changes_of(body))
    if page is None:
        raise PageNotFoundError("Page not found")
    return page.to_document()


@router.delete("/{page_id}")
async def delete_page(
    page_id: str,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    if not await components.pages.delete_page(user.id, page_id):
        raise PageNotFoundError("Page not found")
    return {"success": True}


@router.post("/{page_id}/day/{day_index}/entry", status_code=201)
async def add_entry(
    page_id: str,
    day_index: str,
    body: EntryCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    slot = parse_day_index(day_index)
    entry = Entry(
        title=body.title or "New Entry",
        amount=body.amount or 0.0,
        description=body.description or "",
        category=body.category or "",
        tags=body.tags,
    )
    page = await components.pages.add_entry(user.id, page_id, slot, entry)
    if page is None:
        raise PageNotFoundError("Page not found")
    return {"entry": entry.to_document(), "page": page.to_document()}


@router.patch("/{page_id}/day/{day_index}/entry/{entry_id}")
async def update_entry(
    page_id: str,
    day_index: str,
    entry_id: str,
    body: EntryUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    slot = parse_day_index(day_index)
    changes = {k: v for k, v in changes_of(body).items() if v is not None}
    page = await components.pages.update_entry(user.id, page_id, slot, entry_id, changes)
    if page is None:
        raise PageNotFoundError("Page not found")
    return page.to_document()


@router.delete("/{page_id}/day/{day_index}/entry/{entry_id}")
async def delete_entry(
    page_id: str,
    day_index: str,
    entry_id: str,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    slot = parse_day_index(day_index)
    page = await components.pages.delete_entry(user.id, page_id, slot, entry_id)
    if page is None:
        raise PageNotFoundError("Page not found")
    return page.to_document()

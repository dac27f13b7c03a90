"""Folder tree routes."""

from fastapi import APIRouter, Depends

from budgetpages.api.deps import get_components, get_current_user
from budgetpages.api.schemas import FolderCreate, FolderUpdate, changes_of
from budgetpages.models import User
from budgetpages.orchestrator import AppComponents, FolderNotFoundError


router = APIRouter(prefix="/folder", tags=["folders"])


@router.get("")
async def list_folders(
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    folders = await components.folders.list_folders(user.id)
    return [f.to_document() for f in folders]


@router.post("", status_code=201)
async def create_folder(
    body: FolderCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    folder = await components.folders.create_folder(
        user.id,
        name=body.name,
        parent_folder_id=body.parent_folder_id,
    )
    return folder.to_document()


@router.get("/{folder_id}")
async def get_folder(
    folder_id: str,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    folder = await components.folders.get_folder(user.id, folder_id)
    if folder is None:
        raise FolderNotFoundError("Folder not found")
    return folder.to_document()


@router.patch("/{folder_id}")
async def update_folder(
    folder_id: str,
    body: FolderUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    folder = await components.folders.update_folder(user.id, folder_id, changes_of(body))
    if folder is None:
        raise FolderNotFoundError("Folder not found")
    return folder.to_document()


@router.delete("/{folder_id}")
async def delete_folder(
    folder_id: str,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await components.folders.delete_folder_recursive(user.id, folder_id)
    return {"success": True}

"""Current-user routes: profile, settings, AI key status."""

from fastapi import APIRouter, Depends

from budgetpages.api.deps import (
    get_cipher,
    get_components,
    get_current_email,
    get_current_user,
)
from budgetpages.api.schemas import UserUpdate
from budgetpages.log import get_logger
from budgetpages.models import User
from budgetpages.orchestrator import AppComponents, UserNotFoundError
from budgetpages.security import KeyCipher


logger = get_logger(__name__)

router = APIRouter(prefix="/user", tags=["users"])


@router.get("")
async def get_user(user: User = Depends(get_current_user)):
    return user.public_document()


@router.patch("")
async def update_user(
    body: UserUpdate,
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
    cipher: KeyCipher = Depends(get_cipher),
):
    encrypted_keys = None
    if body.ai_keys is not None:
        sent = {provider.value: key for provider, key in body.ai_keys.items()}
        # providers sent with an empty value lose their stored key
        encrypted_keys = dict.fromkeys(sent)
        encrypted_keys.update(cipher.encrypt_keys(sent))

    user = await components.users.update_profile(
        email,
        name=body.name,
        settings=body.settings,
        onboarding_completed=body.onboarding_completed,
        ai_keys=encrypted_keys,
    )
    if user is None:
        raise UserNotFoundError("User not found")
    if encrypted_keys:
        logger.info("ai_keys_updated", user_id=user.id, providers=sorted(encrypted_keys))
    return user.public_document()


@router.get("/ai-keys/status")
async def ai_key_status(user: User = Depends(get_current_user)):
    return user.key_status()


@router.post("/cleanup")
async def cleanup_user(
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
):
    matched = await components.users.clear_legacy_fields(email)
    return {
        "success": True,
        "message": "Cleaned up duplicate fields",
        "matched": matched,
    }

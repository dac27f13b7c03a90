"""
Session sign-in helpers.

Identity is established elsewhere (an OAuth callback, for instance).
Once it has a verified name and email it calls ``sign_in``, which
creates the user on first sign-in and records the email in the signed
session cookie that every other route reads.
"""

from typing import Optional

from fastapi import APIRouter, Request

from budgetpages.api.deps import SESSION_EMAIL_KEY
from budgetpages.log import get_logger
from budgetpages.models import User
from budgetpages.services.storage import UserStorageInterface


logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def sign_in(
    request: Request,
    users: UserStorageInterface,
    name: str,
    email: str,
    image: Optional[str] = None,
) -> User:
    user = await users.create_if_missing(name, email, image)
    request.session[SESSION_EMAIL_KEY] = user.email
    logger.info("user_signed_in", user_id=user.id)
    return user


def sign_out(request: Request) -> None:
    request.session.clear()


@router.post("/signout")
async def signout(request: Request):
    sign_out(request)
    return {"success": True}

"""
Route dependencies.

The signed-in user's email comes from the session cookie; everything
else hangs off the components built at startup. Tests swap any of
these through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from budgetpages.models import User
from budgetpages.orchestrator import AppComponents, UserNotFoundError
from budgetpages.security import KeyCipher


SESSION_EMAIL_KEY = "email"


class UnauthorizedError(Exception):
    """No signed-in user on the request."""
    pass


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_current_email(request: Request) -> str:
    email = request.session.get(SESSION_EMAIL_KEY)
    if not email:
        raise UnauthorizedError("Unauthorized")
    return email


async def get_current_user(
    email: str = Depends(get_current_email),
    components: AppComponents = Depends(get_components),
) -> User:
    user = await components.users.get_by_email(email)
    if user is None:
        raise UserNotFoundError("User not found")
    return user


def get_cipher() -> KeyCipher:
    return KeyCipher()

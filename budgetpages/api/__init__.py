"""HTTP interface."""

from budgetpages.api.app import create_app
from budgetpages.api.auth import sign_in, sign_out

__all__ = ["create_app", "sign_in", "sign_out"]

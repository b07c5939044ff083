"""Account identities, roles and the owner/manager access primitive."""

from dappy.auth.access import AccessControl
from dappy.auth.models import ZERO_ACCOUNT, Account, Role, normalize_account

__all__ = ["AccessControl", "Account", "Role", "ZERO_ACCOUNT", "normalize_account"]

from vybe_auth.schema.account import Account, VerifiedBadge
from vybe_auth.schema.session import UserSession

__all__ = ["Account", "VerifiedBadge", "UserSession"]

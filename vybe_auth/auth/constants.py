from vybe_auth.common.logging_setup import get_logger

logger = get_logger("vybe.auth")

ACCESS = "access"
REFRESH = "refresh"

# placeholder hash held by a session row only inside its creation transaction
PENDING_REFRESH_HASH = ""

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
APPLE_ISSUERS = ("https://appleid.apple.com",)

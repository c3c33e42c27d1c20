from vybe_auth.common.logging_setup import get_logger

logger = get_logger("vybe.app")

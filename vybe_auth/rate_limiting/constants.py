from vybe_auth.common.logging_setup import get_logger

logger = get_logger("vybe.rate_limiting")

RATE_LIMIT_PREFIX = "rl"    # redis key prefix

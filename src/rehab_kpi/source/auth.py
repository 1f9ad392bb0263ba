"""Supabase service key loading.

The service key is read from an environment variable named in the config
(SUPABASE_SERVICE_KEY by default) and never from the config file itself.
"""

import logging
import os
import re

logger = logging.getLogger(__name__)

# New-style secret keys and legacy JWT service_role keys
SECRET_KEY_PREFIX = "sb_secret_"
JWT_PATTERN = re.compile(r"^eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+$")


class AuthenticationError(Exception):
    """Raised when the service key is missing or malformed."""


def load_service_key(env_var: str = "SUPABASE_SERVICE_KEY") -> str:
    """Load the Supabase service key from the environment.

    Args:
        env_var: Name of the environment variable holding the key.

    Returns:
        The service key.

    Raises:
        AuthenticationError: If the variable is unset, empty, or does not
            look like a Supabase key.
    """
    key = os.getenv(env_var, "").strip()
    if not key:
        msg = f"Supabase service key not found. Set the {env_var} environment variable."
        raise AuthenticationError(msg)

    if not (key.startswith(SECRET_KEY_PREFIX) or JWT_PATTERN.match(key)):
        msg = (
            f"Value of {env_var} does not look like a Supabase key "
            f"(expected '{SECRET_KEY_PREFIX}...' or a JWT)"
        )
        raise AuthenticationError(msg)

    logger.debug("Loaded Supabase service key from %s", env_var)
    return key

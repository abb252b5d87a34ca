"""Provider credential storage — OS keyring with an environment override."""

import logging
import os

import keyring
import keyring.errors

from subdns.config import API_KEY_ENV_VAR, KEYRING_SERVICE_API_KEY, KEYRING_USERNAME

logger = logging.getLogger(__name__)


def store_api_key(api_key: str) -> None:
    """Persist the Bunny access key in the OS keyring."""
    keyring.set_password(KEYRING_SERVICE_API_KEY, KEYRING_USERNAME, api_key)


def clear_api_key() -> None:
    """Remove the stored access key.  Idempotent."""
    try:
        keyring.delete_password(KEYRING_SERVICE_API_KEY, KEYRING_USERNAME)
    except keyring.errors.PasswordDeleteError:
        pass


def get_api_key() -> str | None:
    """Return the access key, preferring ``SUBDNS_BUNNY_API_KEY`` over the keyring."""
    env_key = os.environ.get(API_KEY_ENV_VAR, "").strip()
    if env_key:
        return env_key
    try:
        stored = keyring.get_password(KEYRING_SERVICE_API_KEY, KEYRING_USERNAME)
    except keyring.errors.KeyringError as exc:
        logger.warning("Keyring unavailable: %s", exc)
        return None
    return stored.strip() if stored else None


def has_api_key() -> bool:
    return get_api_key() is not None

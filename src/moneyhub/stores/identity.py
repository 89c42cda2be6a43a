"""Identity provider backed by application settings."""

import logging

from ..config import MoneyHubSettings
from ..schemas import UserIdentity

logger = logging.getLogger(__name__)


class SettingsIdentityProvider:
    """Treats the configured ``user_id`` as the signed-in user.

    Set ``MONEYHUB_USER_ID`` (or ``user_id`` in ``.env.{profile}``) to start a
    session; without it there is no current user.
    """

    def __init__(self, settings: MoneyHubSettings):
        self.settings = settings

    def get_current_user(self) -> UserIdentity | None:
        if not self.settings.user_id:
            logger.debug("No user_id configured; no active session")
            return None
        return UserIdentity(user_id=self.settings.user_id)

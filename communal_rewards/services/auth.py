import logging

from communal_rewards.errors import Unauthorized

logger = logging.getLogger(__name__)


class AuthorizationGate:
    """Decides whether a user may perform admin actions, from the profile admin flag"""

    def __init__(self, store):
        self.store = store

    def is_admin(self, user_id: str) -> bool:
        return bool(user_id) and self.store.is_admin(user_id)

    def require_admin(self, user_id: str) -> None:
        if not self.is_admin(user_id):
            logger.warning(f"Denied admin action for user {user_id}")
            raise Unauthorized(f"User {user_id} is not an administrator")

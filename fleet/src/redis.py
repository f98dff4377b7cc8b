from secrets import token_urlsafe
from redis import Redis

from fleet.src.constants import (
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    SSO_STATE_TTL,
)

# Redis client (single connection)
redisClient = Redis(
    host=REDIS_HOST,
    port=REDIS_PORT,
    password=REDIS_PASSWORD,
    decode_responses=True,
)


class StateCache:
    """
    One time SSO state nonces kept in Redis.

    A state is issued before the SSO round trip and consumed when the account
    is registered. Every state expires after `ttl` seconds. The Redis client
    is owned by the caller.
    """

    prefix = "sso:state:"

    def __init__(self, client: Redis, ttl: int = SSO_STATE_TTL):
        self.client = client
        self.ttl = ttl

    def issue(self, purpose: str = "register") -> str:
        state = token_urlsafe(32)
        self.client.set(self.prefix + state, purpose, ex=self.ttl)
        return state

    def consume(self, state: str) -> str | None:
        """
        Remove a state and return what it was issued for.

        Returns None for unknown, expired or already consumed states.
        """
        if not state:
            return None
        return self.client.getdel(self.prefix + state)

    def restore(self, state: str, purpose: str = "register"):
        """Put back a consumed state whose registration did not complete."""
        if state:
            self.client.set(self.prefix + state, purpose, ex=self.ttl)

"""Cooldown tracking for overload warnings."""


class RateLimiter:
    """Rate limiter to prevent warning spam.

    Tracks when each key last fired and enforces a cooldown before it may
    fire again. Times are plain seconds from whatever clock the caller uses
    (the pipeline uses time.monotonic()).
    """

    def __init__(self) -> None:
        self.last_alert: dict[str, float] = {}

    def can_alert(self, key: str, cooldown_seconds: float, now: float) -> bool:
        """Check if the cooldown for this key has elapsed.

        A key that never fired can always alert.
        """
        last = self.last_alert.get(key)
        return last is None or (now - last) >= cooldown_seconds

    def record(self, key: str, now: float) -> None:
        """Mark the key as fired at now."""
        self.last_alert[key] = now

    def time_until_alert(self, key: str, cooldown_seconds: float, now: float) -> float | None:
        """Get seconds remaining until this key can alert again.

        Returns:
            Seconds remaining, or None if it can alert now
        """
        last = self.last_alert.get(key)
        if last is None:
            return None

        remaining = cooldown_seconds - (now - last)
        if remaining <= 0:
            return None

        return remaining

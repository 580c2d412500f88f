"""Cooldown that keeps one utterance from firing the shutter twice."""

from __future__ import annotations

from typing import Optional

DEFAULT_COOLDOWN_S = 2.0


def should_fire(now: float, last_fire_time: Optional[float], cooldown: float) -> bool:
    if last_fire_time is None:
        return True
    return now - last_fire_time >= cooldown


class TriggerThrottle:
    def __init__(self, cooldown_s: float = DEFAULT_COOLDOWN_S) -> None:
        self.cooldown_s = cooldown_s
        self.last_fire_time: Optional[float] = None

    def should_fire(self, now: float) -> bool:
        if not should_fire(now, self.last_fire_time, self.cooldown_s):
            return False
        self.last_fire_time = now
        return True

    def reset(self) -> None:
        self.last_fire_time = None

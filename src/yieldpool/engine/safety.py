"""Module E: Pause / Emergency Controller - Freeze gate and principal escape hatch."""

from ..errors import PoolNotPaused, PoolPaused


class PauseController:
    """Pause flag checked by every mutating entry point."""

    def __init__(self, paused: bool = False):
        self.paused = paused
        self.emergency_swept = False

    def require_not_paused(self, action: str) -> None:
        if self.paused:
            raise PoolPaused(f"{action} is disabled while the pool is paused")

    def require_paused(self, action: str) -> None:
        if not self.paused:
            raise PoolNotPaused(f"{action} is only available while the pool is paused")

    def pause(self) -> bool:
        """Set the pause flag; returns False when already paused."""
        changed = not self.paused
        self.paused = True
        return changed

    def unpause(self) -> bool:
        changed = self.paused
        self.paused = False
        return changed

"""Owner / pauser / reward-source authorization checks."""

from typing import Optional

from ..errors import InvalidAddress, Unauthorized


def check_address(address: Optional[str], what: str = "address") -> str:
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddress(f"{what} must be a non-empty string", details=repr(address))
    return address


class AccessGate:
    """Role holders for gated pool actions.

    The owner can always act as pauser and reward source.
    """

    def __init__(self, owner: str, pauser: Optional[str] = None,
                 reward_source: Optional[str] = None):
        self.owner = check_address(owner, "owner")
        self.pauser = check_address(pauser, "pauser") if pauser is not None else None
        self.reward_source = (
            check_address(reward_source, "reward source") if reward_source is not None else None
        )

    def require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("owner only", details=f"caller={caller}")

    def require_pauser(self, caller: str) -> None:
        if caller != self.owner and caller != self.pauser:
            raise Unauthorized("pauser only", details=f"caller={caller}")

    def require_reward_source(self, caller: str) -> None:
        if caller != self.owner and caller != self.reward_source:
            raise Unauthorized("reward source only", details=f"caller={caller}")

    def set_pauser(self, address: str) -> None:
        self.pauser = check_address(address, "pauser")

    def set_reward_source(self, address: str) -> None:
        self.reward_source = check_address(address, "reward source")

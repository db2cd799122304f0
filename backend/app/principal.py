"""The authenticated actor, as handed to us by the auth collaborator."""
from dataclasses import dataclass

AGENT = "agent"
MANAGER = "manager"
DIRECTOR = "director"

ROLES = {AGENT, MANAGER, DIRECTOR}

# Older user profiles stored the agent role as "sales"
_ROLE_ALIASES = {"sales": AGENT}


def normalize_role(role: str) -> str:
    role = (role or "").strip().lower()
    role = _ROLE_ALIASES.get(role, role)
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}'")
    return role


@dataclass(frozen=True)
class Principal:
    id: str
    role: str
    team_id: str = ""
    name: str = ""
    time_zone: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "role", normalize_role(self.role))

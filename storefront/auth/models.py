from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Identité de l'appelant, construite pour chaque requête par get_current_user
    puis passée explicitement aux services (jamais lue depuis un état global).
    """
    id: str
    email: Optional[str] = None
    role: str = "user"
    token: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

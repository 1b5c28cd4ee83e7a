from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ADMIN_ROLES = frozenset({"admin", "service_role"})


class AuthUser(BaseModel):
    """
    The caller behind a bearer JWT. Shoppers are identified by the ``sub``
    claim, which is what orders, carts and discount code usages store as
    ``user_id``.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

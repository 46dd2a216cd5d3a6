# finzoo/schemas/stats.py
from pydantic import ConfigDict
from sqlmodel import SQLModel


class InventoryStats(SQLModel):
    """
    Counters shown on the admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total: int
    in_stock: int
    sold_out: int
    visible: int
    hidden: int
    featured: int


class UserStats(SQLModel):
    """
    Counters shown on the admin user-management page.
    """
    model_config = ConfigDict(extra="forbid")

    total: int
    admins: int
    pending: int
    approved: int

# finzoo/routers/admin.py
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from finzoo.core.auth import (
    bearer_scheme,
    get_auth_gateway,
    get_current_session,
    get_inactivity_monitor,
    get_profile_gate,
    require_admin,
)
from finzoo.core.auth_gateway import SupabaseAuthGateway
from finzoo.core.deps import get_inventory
from finzoo.database import get_session
from finzoo.routers.pets import pet_list
from finzoo.routers.users import service as user_service
from finzoo.schemas.pet import AdminPetFilter, PetList
from finzoo.schemas.profile import DeleteUserRequest
from finzoo.schemas.stats import InventoryStats
from finzoo.services.inactivity import InactivityMonitor
from finzoo.services.inventory import InventoryStore
from finzoo.services.profile_gate import ProfileGate
from finzoo.services.stats_service import inventory_stats, search_pets
from finzoo.services.user_service import AdminActionError

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/pets",
    response_model=PetList,
    dependencies=[Depends(require_admin)],
)
def list_admin_pets(
    q: str | None = None,
    status_filter: AdminPetFilter = "all",
    inventory: InventoryStore = Depends(get_inventory),
):
    """
    Dashboard table: every pet (hidden included), newest first.

    Query params (optional):
      - q: matches name, species or breed
      - status_filter: all | inStock | soldOut | visible | hidden
    """
    pets = search_pets(inventory.list(), q, status_filter)
    return pet_list(pets, loading=inventory.loading)


@router.get(
    "/stats",
    response_model=InventoryStats,
    dependencies=[Depends(require_admin)],
)
def get_inventory_stats(inventory: InventoryStore = Depends(get_inventory)):
    """Counters for the admin dashboard."""
    return inventory_stats(inventory.list())


@router.delete("/delete-user")
def delete_user(
    payload: DeleteUserRequest | None = Body(None),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
    gate: ProfileGate = Depends(get_profile_gate),
    monitor: InactivityMonitor | None = Depends(get_inactivity_monitor),
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> dict[str, bool]:
    """
    Delete a user's profile and auth account (approved admins only).

    Errors use the {"error": "..."} shape:
      - 401: no valid session
      - 403: caller is not an approved admin
      - 400: missing id or self-deletion
      - 500: backend failure
    """
    try:
        store = get_current_session(credentials, session, gate, monitor, gateway)
    except HTTPException:
        store = None
    if store is None or store.user is None:
        raise AdminActionError(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
    if not store.is_admin:
        raise AdminActionError(status.HTTP_403_FORBIDDEN, "Forbidden: Admin access required")

    user_service.delete_user(
        session,
        gateway,
        actor_id=store.user.id,
        raw_user_id=payload.userId if payload else None,
    )
    return {"success": True}

# finzoo/core/deps.py
"""
Dependencies for app-scoped services.

The lifespan in `finzoo/main.py` puts the long-lived services on
`app.state`; routes reach them through these functions so tests can
swap them via `app.dependency_overrides`.
"""
from fastapi import Depends, HTTPException, Request, status

from finzoo.core.auth import get_auth_gateway, get_inactivity_monitor, get_profile_gate
from finzoo.core.auth_gateway import SupabaseAuthGateway
from finzoo.services.auth_service import AuthService
from finzoo.services.inactivity import InactivityMonitor
from finzoo.services.inventory import InventoryStore
from finzoo.services.media_staging import Uploader
from finzoo.services.pet_service import PetService, storage_uploader
from finzoo.services.profile_gate import ProfileGate


def get_inventory(request: Request) -> InventoryStore:
    inventory = getattr(request.app.state, "inventory", None)
    if inventory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory is not ready yet",
        )
    return inventory


def get_uploader() -> Uploader:
    return storage_uploader


def get_pet_service(
    inventory: InventoryStore = Depends(get_inventory),
    uploader: Uploader = Depends(get_uploader),
) -> PetService:
    return PetService(inventory, uploader)


def get_auth_service(
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
    gate: ProfileGate = Depends(get_profile_gate),
    monitor: InactivityMonitor | None = Depends(get_inactivity_monitor),
) -> AuthService:
    return AuthService(gateway, gate, monitor)

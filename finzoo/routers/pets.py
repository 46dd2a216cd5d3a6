# finzoo/routers/pets.py
import uuid
from dataclasses import asdict

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from finzoo.core.auth import is_admin_viewer, require_admin
from finzoo.core.config import get_settings
from finzoo.core.deps import get_inventory, get_pet_service
from finzoo.core.session import SessionStore
from finzoo.domain.pet import Pet
from finzoo.schemas.pet import (
    CategoryOptions,
    PetCreate,
    PetList,
    PetRead,
    PetSaveResult,
    PetShare,
    PetUpdate,
)
from finzoo.services.inventory import InventoryStore
from finzoo.services.media_staging import PendingFile
from finzoo.services.pet_service import MediaForm, PetService
from finzoo.services.share_service import (
    generate_qr_bytes,
    pet_detail_url,
    strip_markdown,
    whatsapp_link,
)
from finzoo.services.shop_filters import (
    ShopFilters,
    SortOrder,
    apply_filters,
    category_hierarchy,
    price_ceiling,
    toggle_species,
)

settings = get_settings()

router = APIRouter(prefix="/pets", tags=["Pets"])


def pet_list(pets: list[Pet], loading: bool = False) -> PetList:
    return PetList(
        items=[PetRead.model_validate(asdict(p)) for p in pets],
        total=len(pets),
        loading=loading,
    )


def _parse_form_data(model, data: str):
    """Validate the JSON `data` field of a multipart pet form."""
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def _media_form(
    existing_images: list[str] | None,
    existing_videos: list[str] | None,
    image_files: list[UploadFile] | None,
    video_files: list[UploadFile] | None,
    cover_index: int | None,
    clear_images: bool = False,
    clear_videos: bool = False,
) -> MediaForm:
    def pending(files: list[UploadFile] | None) -> list[PendingFile]:
        # Browsers send an empty part when no file was picked
        return [
            PendingFile(filename=f.filename, content_type=f.content_type, file=f.file)
            for f in files or []
            if f.filename
        ]

    def kept(urls: list[str] | None) -> list[str] | None:
        # None means the field was not sent
        return None if urls is None else [u for u in urls if u]

    return MediaForm(
        existing_images=kept(existing_images),
        existing_videos=kept(existing_videos),
        image_files=pending(image_files),
        video_files=pending(video_files),
        cover_index=cover_index,
        clear_images=clear_images,
        clear_videos=clear_videos,
    )


# -------- Public endpoints --------


@router.get("", response_model=PetList)
def list_pets(
    species: list[str] | None = Query(None),
    breeds: list[str] | None = Query(None),
    min_price: float | None = None,
    max_price: float | None = None,
    sort: SortOrder = "newest",
    show_hidden: bool = Depends(is_admin_viewer),
    service: PetService = Depends(get_pet_service),
    inventory: InventoryStore = Depends(get_inventory),
):
    """
    Storefront listing.

    - Hidden pets are only included for approved admins.
    - `species` selects every breed of that species; `breeds` adds
      individual ones. No selection means all breeds.
    - Price bounds are inclusive and default to [0, ceiling].
    """
    pets = service.list_pets(include_hidden=show_hidden)

    hierarchy = category_hierarchy(pets)
    selected = set(breeds or [])
    for name in species or []:
        selected = toggle_species(selected, hierarchy, name, True)

    if (species or breeds) and not selected:
        # Filter names nothing in stock: no match rather than "all breeds"
        return pet_list([], loading=inventory.loading)

    low = min_price if min_price is not None else 0
    high = max_price if max_price is not None else price_ceiling(pets)
    filters = ShopFilters(price_range=(low, high), breeds=selected, sort=sort)
    return pet_list(apply_filters(pets, filters), loading=inventory.loading)


@router.get("/featured", response_model=PetList)
def list_featured(
    limit: int = Query(6, ge=1, le=50),
    service: PetService = Depends(get_pet_service),
    inventory: InventoryStore = Depends(get_inventory),
):
    """Featured, visible pets for the home page (newest first)."""
    pets = [p for p in service.list_pets() if p.featured][:limit]
    return pet_list(pets, loading=inventory.loading)


@router.get("/categories", response_model=CategoryOptions)
def list_categories(
    show_hidden: bool = Depends(is_admin_viewer),
    service: PetService = Depends(get_pet_service),
):
    """Species -> breeds plus the price slider ceiling."""
    pets = service.list_pets(include_hidden=show_hidden)
    hierarchy = category_hierarchy(pets)
    return CategoryOptions(
        categories={name: sorted(breeds) for name, breeds in sorted(hierarchy.items())},
        min_price=0,
        max_price=price_ceiling(pets),
    )


@router.get("/{pet_id}", response_model=PetRead)
def get_pet(
    pet_id: uuid.UUID,
    show_hidden: bool = Depends(is_admin_viewer),
    service: PetService = Depends(get_pet_service),
):
    return service.get_pet(pet_id, include_hidden=show_hidden)


@router.get("/{pet_id}/share", response_model=PetShare)
def share_pet(
    pet_id: uuid.UUID,
    show_hidden: bool = Depends(is_admin_viewer),
    service: PetService = Depends(get_pet_service),
):
    """
    Everything the share dialog needs: detail URL, QR image URL and a
    WhatsApp inquiry link (None when no number is configured).
    """
    pet = service.get_pet(pet_id, include_hidden=show_hidden)
    whatsapp_url = None
    if settings.WHATSAPP_NUMBER:
        whatsapp_url = whatsapp_link(settings.WHATSAPP_NUMBER, pet)
    return PetShare(
        id=pet.id,
        url=pet_detail_url(settings.SITE_URL, pet.id),
        qr_url=f"{settings.API_BASE_URL.rstrip('/')}{settings.API_PREFIX}/pets/{pet.id}/qr.png",
        whatsapp_url=whatsapp_url,
        summary=strip_markdown(pet.description)[:200],
    )


@router.get(
    "/{pet_id}/qr.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
def pet_qr_code(
    pet_id: uuid.UUID,
    show_hidden: bool = Depends(is_admin_viewer),
    service: PetService = Depends(get_pet_service),
):
    """QR code (PNG) pointing at the pet's detail page."""
    pet = service.get_pet(pet_id, include_hidden=show_hidden)
    png = generate_qr_bytes(pet_detail_url(settings.SITE_URL, pet.id))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="pet-{pet.id}-qr.png"'},
    )


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=PetSaveResult,
    status_code=status.HTTP_201_CREATED,
)
def create_pet(
    data: str = Form(..., description="JSON-encoded pet fields"),
    existing_images: list[str] | None = Form(None),
    existing_videos: list[str] | None = Form(None),
    image_files: list[UploadFile] | None = File(None),
    video_files: list[UploadFile] | None = File(None),
    cover_index: int | None = Form(None),
    store: SessionStore = Depends(require_admin),
    service: PetService = Depends(get_pet_service),
):
    """
    Create a pet listing (admin only).

    Files that fail validation are reported in `rejected`; the rest are
    uploaded before the row is written.
    """
    payload = _parse_form_data(PetCreate, data)
    media = _media_form(existing_images, existing_videos, image_files, video_files, cover_index)
    return service.create_pet(payload, media, created_by=store.user.id)


@router.put(
    "/{pet_id}",
    response_model=PetSaveResult,
    dependencies=[Depends(require_admin)],
)
def update_pet(
    pet_id: uuid.UUID,
    data: str = Form("{}", description="JSON-encoded pet fields to change"),
    existing_images: list[str] | None = Form(None),
    existing_videos: list[str] | None = Form(None),
    image_files: list[UploadFile] | None = File(None),
    video_files: list[UploadFile] | None = File(None),
    cover_index: int | None = Form(None),
    clear_images: bool = Form(False),
    clear_videos: bool = Form(False),
    service: PetService = Depends(get_pet_service),
):
    """
    Update a pet listing (admin only).

    A media list is only rewritten when the form sends it (kept URLs,
    new files, `cover_index`, or `clear_*=true`). It is then replaced by
    the submitted order: kept URLs first, then new uploads, with
    `cover_index` moved to the front. New files sent without a kept
    list are appended to the current media.
    """
    payload = _parse_form_data(PetUpdate, data)
    media = _media_form(
        existing_images, existing_videos, image_files, video_files, cover_index,
        clear_images=clear_images, clear_videos=clear_videos,
    )
    return service.update_pet(pet_id, payload, media)


@router.post(
    "/{pet_id}/toggle-stock",
    response_model=PetRead,
    dependencies=[Depends(require_admin)],
)
def toggle_stock(
    pet_id: uuid.UUID,
    service: PetService = Depends(get_pet_service),
):
    return service.toggle_stock(pet_id)


@router.post(
    "/{pet_id}/toggle-visibility",
    response_model=PetRead,
    dependencies=[Depends(require_admin)],
)
def toggle_visibility(
    pet_id: uuid.UUID,
    service: PetService = Depends(get_pet_service),
):
    return service.toggle_visibility(pet_id)


@router.delete(
    "/{pet_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_pet(
    pet_id: uuid.UUID,
    confirm: bool = False,
    service: PetService = Depends(get_pet_service),
):
    """
    Delete a pet listing (admin only). Requires `?confirm=true`.
    """
    service.delete_pet(pet_id, confirm=confirm)
    return None

# finzoo/services/pet_service.py
import logging
import uuid
from dataclasses import asdict, dataclass, field, replace

from fastapi import HTTPException, status

from finzoo.core.config import get_settings
from finzoo.core.storage_utils import file_extension, generate_filename, upload_to_storage
from finzoo.domain.pet import Pet
from finzoo.schemas.pet import MediaRejection, PetCreate, PetRead, PetSaveResult, PetUpdate
from finzoo.services.inventory import InventoryError, InventoryStore
from finzoo.services.media_staging import (
    MediaRules,
    MediaStaging,
    MediaUploadError,
    PendingFile,
    Rejection,
    Uploader,
    image_rules,
    video_rules,
)

logger = logging.getLogger(__name__)

settings = get_settings()


def storage_uploader(pending: PendingFile, data: bytes, rules: MediaRules) -> str:
    """
    Upload one staged file to the pet media bucket.

    Path pattern:
        pets/<epoch-millis>-<random>.<ext>          (images)
        pets/videos/<epoch-millis>-<random>.<ext>   (videos)
    """
    ext = file_extension(pending.filename, rules.default_ext)
    path = f"{rules.folder}/{generate_filename(ext)}"
    return upload_to_storage(path, data, pending.content_type or "application/octet-stream")


@dataclass
class MediaForm:
    """
    Media half of a pet form: kept URLs (in order) plus new files.

    `existing_*` is None when the form did not send the list at all; on an
    edit that keeps the pet's current media. `clear_*` asks for an empty
    list when nothing is kept.
    """

    existing_images: list[str] | None = None
    existing_videos: list[str] | None = None
    image_files: list[PendingFile] = field(default_factory=list)
    video_files: list[PendingFile] = field(default_factory=list)
    cover_index: int | None = None
    clear_images: bool = False
    clear_videos: bool = False

    @property
    def touches_images(self) -> bool:
        return (
            self.clear_images
            or self.existing_images is not None
            or bool(self.image_files)
            or self.cover_index is not None
        )

    @property
    def touches_videos(self) -> bool:
        return self.clear_videos or self.existing_videos is not None or bool(self.video_files)

    def based_on(self, pet: Pet) -> "MediaForm":
        """Fill unsent lists from the pet's current media."""
        images = self.existing_images
        if images is None:
            images = [] if self.clear_images else list(pet.images)
        videos = self.existing_videos
        if videos is None:
            videos = [] if self.clear_videos else list(pet.videos)
        return replace(self, existing_images=images, existing_videos=videos)


class PetService:
    """
    Business logic for pet listings.

    Responsibilities:
      - stage, validate and upload media before any row is written
      - translate inventory/backend failures into HTTP errors
      - keep hidden pets out of public reads
    """

    def __init__(self, inventory: InventoryStore, uploader: Uploader = storage_uploader):
        self.inventory = inventory
        self.uploader = uploader

    # ----- Helpers -----

    @staticmethod
    def _not_found() -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pet not found",
        )

    @staticmethod
    def _backend_error(e: Exception) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e) or "The backend rejected the change",
        )

    def _stage(self, form: MediaForm) -> tuple[MediaStaging, MediaStaging, list[Rejection]]:
        images = MediaStaging(image_rules(settings.MAX_IMAGE_BYTES), form.existing_images or [])
        videos = MediaStaging(video_rules(settings.MAX_VIDEO_BYTES), form.existing_videos or [])
        rejected = images.add_files(form.image_files) + videos.add_files(form.video_files)

        if form.cover_index is not None and form.cover_index != 0:
            if not 0 <= form.cover_index < len(images.items):
                images.close()
                videos.close()
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="cover_index is out of range",
                )
            images.set_cover(form.cover_index)
        return images, videos, rejected

    def _commit_media(self, form: MediaForm) -> tuple[dict, list[Rejection]]:
        """
        Upload every accepted file. Returns the media columns to write and
        the files refused during validation.

        Raises:
            HTTPException(502): if any upload failed (no row is written).
        """
        images, videos, rejected = self._stage(form)
        try:
            image_urls = images.commit(self.uploader)
            video_urls = videos.commit(self.uploader)
        except MediaUploadError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(e),
            )
        finally:
            images.close()
            videos.close()
        return {"images": image_urls, "videos": video_urls}, rejected

    @staticmethod
    def _result(pet: Pet, rejected: list[Rejection]) -> PetSaveResult:
        return PetSaveResult(
            pet=PetRead.model_validate(asdict(pet)),
            rejected=[MediaRejection(filename=r.filename, reason=r.reason) for r in rejected],
        )

    # ----- Reads -----

    def list_pets(self, include_hidden: bool = False) -> list[Pet]:
        pets = self.inventory.list()
        if include_hidden:
            return pets
        return [p for p in pets if p.is_visible]

    def get_pet(self, pet_id: uuid.UUID, include_hidden: bool = False) -> Pet:
        """
        Raises:
            HTTPException(404): unknown id, or hidden from this viewer.
        """
        pet = self.inventory.get_by_id(pet_id)
        if pet is None or (not pet.is_visible and not include_hidden):
            raise self._not_found()
        return pet

    # ----- Mutations -----

    def create_pet(
        self,
        payload: PetCreate,
        media: MediaForm,
        created_by: uuid.UUID | None,
    ) -> PetSaveResult:
        fields = payload.model_dump()
        media_fields, rejected = self._commit_media(media)
        fields.update(media_fields)
        try:
            pet = self.inventory.add_pet(fields, created_by=created_by)
        except InventoryError as e:
            raise self._backend_error(e)
        return self._result(pet, rejected)

    def update_pet(
        self,
        pet_id: uuid.UUID,
        payload: PetUpdate,
        media: MediaForm,
    ) -> PetSaveResult:
        """
        Merge a form edit into an existing listing.

        A media list the form touched is replaced in the submitted order
        (kept URLs first, then new uploads). Untouched lists stay as they
        are. Nothing is uploaded for a pet that does not exist.
        """
        try:
            current = self.inventory.fetch(pet_id)
        except InventoryError as e:
            raise self._backend_error(e)
        if current is None:
            raise self._not_found()

        fields = payload.model_dump(exclude_unset=True)
        media_fields, rejected = self._commit_media(media.based_on(current))
        if media.touches_images:
            fields["images"] = media_fields["images"]
        if media.touches_videos:
            fields["videos"] = media_fields["videos"]
        try:
            pet = self.inventory.update_pet(pet_id, fields)
        except InventoryError as e:
            raise self._backend_error(e)
        if pet is None:
            raise self._not_found()
        return self._result(pet, rejected)

    def toggle_stock(self, pet_id: uuid.UUID) -> Pet:
        try:
            pet = self.inventory.toggle_stock(pet_id)
        except InventoryError as e:
            raise self._backend_error(e)
        if pet is None:
            raise self._not_found()
        return pet

    def toggle_visibility(self, pet_id: uuid.UUID) -> Pet:
        try:
            pet = self.inventory.toggle_visibility(pet_id)
        except InventoryError as e:
            raise self._backend_error(e)
        if pet is None:
            raise self._not_found()
        return pet

    def delete_pet(self, pet_id: uuid.UUID, confirm: bool = False) -> None:
        """
        Delete a listing once the caller has confirmed it.

        Raises:
            HTTPException(400): confirmation missing (nothing is deleted).
            HTTPException(502): backend failure.
        """
        if not confirm:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Deleting a pet requires confirm=true",
            )
        try:
            self.inventory.delete_pet(pet_id)
        except InventoryError as e:
            raise self._backend_error(e)
        logger.info("Pet %s deleted", pet_id)

"""Edition Assembler for building and maintaining Edition aggregates.

Creating an edition from a PDF runs rasterization strictly one page at a
time and uploads pages concurrently as they are produced. Nothing is
persisted until every page has an asset reference; any failure aborts the
whole creation and removes whatever was already uploaded.
"""

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from schemas.edition import Edition, EditionStatus, Page
from schemas.payloads import EditionCreate, EditionUpdate

from ..clients import AssetStoreClient
from ..exceptions import InputError, ValidationError
from ..geometry import (
    DEFAULT_PLACEHOLDER_URL,
    CoverPreset,
    edition_cover_url,
    section_share_url,
)
from ..rasterizers import PdfRasterizer
from ..slugs import generate_slug, generate_unique_slug
from .normalization import (
    SECTION_SLUG_SOURCE_LENGTH,
    UNTITLED,
    normalize_pages,
    parse_date,
    parse_int,
    parse_status,
)
from .refs import EditionRef, parse_edition_ref
from .store import EditionStore

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_WORKERS = 4
DEFAULT_NAMESPACE_ROOT = "epapers"
BACKFILL_BATCH_LIMIT = 200


@dataclass
class AssemblyResult:
    """Outcome of a create or update.

    Attributes:
        edition: The persisted edition
        warnings: Page and section entries dropped during normalization
        created: False when an existing edition was replaced
    """

    edition: Edition
    warnings: list[str] = field(default_factory=list)
    created: bool = True


def _now_ms() -> int:
    return int(time.time() * 1000)


class EditionAssembler:
    """Creates, updates and deletes editions.

    Config keys:
        upload_workers: Concurrent page uploads (default: 4)
        namespace_root: First path segment of every edition namespace (default: epapers)
        placeholder_image: Cover URL for editions without a page asset
        cover_preset: "edition" (portrait, default) or "article" (landscape)

    Example:
        assembler = EditionAssembler(store, asset_store, PdfRasterizer())
        result = assembler.create(pdf_bytes, "आज", "2024-01-15")
        print(result.edition.slug, len(result.edition.pages))
    """

    def __init__(
        self,
        store: EditionStore,
        asset_store: AssetStoreClient,
        rasterizer: PdfRasterizer | None = None,
        config: dict | None = None,
        clock: Callable[[], int] | None = None,
    ):
        """Initialize the assembler.

        Args:
            store: Edition persistence
            asset_store: Client for the remote image store
            rasterizer: PDF rasterizer (default: PdfRasterizer with default config)
            config: Assembler configuration
            clock: Millisecond clock used for ids (injectable for tests)
        """
        self.store = store
        self.asset_store = asset_store
        self.rasterizer = rasterizer or PdfRasterizer()
        self._config = config or {}
        self._clock = clock or _now_ms

    @property
    def upload_workers(self) -> int:
        return max(1, int(self._config.get("upload_workers", DEFAULT_UPLOAD_WORKERS)))

    @property
    def namespace_root(self) -> str:
        return str(self._config.get("namespace_root", DEFAULT_NAMESPACE_ROOT)).strip("/")

    @property
    def placeholder_image(self) -> str:
        return str(self._config.get("placeholder_image", DEFAULT_PLACEHOLDER_URL))

    @property
    def cover_preset(self) -> CoverPreset:
        return CoverPreset(self._config.get("cover_preset", CoverPreset.EDITION.value))

    def namespace(self, edition_id: int) -> str:
        """Asset store folder holding an edition's page images."""
        return f"{self.namespace_root}/{edition_id}/pages"

    def create(self, pdf_bytes: bytes, title: str, date: Any) -> AssemblyResult:
        """Create an edition from a PDF.

        Args:
            pdf_bytes: PDF file content
            title: Edition title
            date: Publication date (date or ISO 8601 string)

        Returns:
            AssemblyResult with the persisted edition

        Raises:
            InputError: If title, date or PDF are missing or malformed
            RenderError: If no renderer can run or a page fails to render
            UploadError: If any page fails to upload
        """
        title = str(title).strip() if title is not None else ""
        publication_date = parse_date(date)
        if not title or publication_date is None:
            raise InputError("Title and date are required")
        if not pdf_bytes:
            raise InputError("No PDF file uploaded")

        edition_id = self.store.allocate_id(self._clock())
        namespace = self.namespace(edition_id)
        slug = None

        try:
            pages = self._rasterize_and_upload(pdf_bytes, namespace)
            slug = generate_unique_slug(self.store, title, exclude_id=edition_id)
            now = datetime.now()
            edition = Edition(
                id=edition_id,
                uid=uuid.uuid4().hex,
                title=title,
                slug=slug,
                date=publication_date,
                status=EditionStatus.PUBLISHED,
                pages=pages,
                created_at=now,
                updated_at=now,
            )
            self._apply_share_images(edition)
            self.store.save(edition)
        except Exception:
            self._abort_create(edition_id, namespace, slug)
            raise

        logger.info(
            f"Created edition {edition_id} ({edition.slug}) with {len(edition.pages)} pages"
        )
        return AssemblyResult(edition=edition)

    def _rasterize_and_upload(self, pdf_bytes: bytes, namespace: str) -> list[Page]:
        """Render pages one at a time and upload them concurrently.

        Fails fast: the first render or upload error cancels pending uploads
        and propagates.
        """
        submitted: list[tuple[int, int, int, Future]] = []

        with ThreadPoolExecutor(max_workers=self.upload_workers) as executor:
            try:
                for raster in self.rasterizer.rasterize(pdf_bytes):
                    future = executor.submit(
                        self.asset_store.upload,
                        raster.image_bytes,
                        namespace,
                        f"page-{raster.page_no}",
                    )
                    submitted.append((raster.page_no, raster.width, raster.height, future))
                    logger.debug(f"Queued upload of page {raster.page_no}")
                    self._raise_first_failure(submitted)

                pages = []
                for page_no, width, height, future in submitted:
                    asset = future.result()
                    pages.append(
                        Page(
                            page_no=page_no,
                            image=asset.delivery_url,
                            asset_id=asset.asset_id,
                            thumbnail=asset.thumbnail_url,
                            width=asset.width or width,
                            height=asset.height or height,
                        )
                    )
                    logger.info(f"Uploaded page {page_no} as {asset.asset_id}")
            except BaseException:
                for *_, future in submitted:
                    future.cancel()
                raise

        return pages

    @staticmethod
    def _raise_first_failure(submitted: list[tuple[int, int, int, Future]]) -> None:
        for *_, future in submitted:
            if future.done() and not future.cancelled():
                error = future.exception()
                if error is not None:
                    raise error

    def _abort_create(self, edition_id: int, namespace: str, slug: str | None) -> None:
        logger.warning(f"Aborting creation of edition {edition_id}; removing {namespace}")
        self.asset_store.delete_namespace(namespace)
        try:
            if slug:
                self.store.release_slug(slug, edition_id)
            self.store.release_id(edition_id)
        except OSError as e:
            logger.error(f"Failed to release reservations of edition {edition_id}: {e}")

    def create_from_payload(self, payload: dict | EditionCreate) -> AssemblyResult:
        """Create an edition from pages already hosted on the asset store.

        If the payload names the id of an existing edition, that edition's
        title, date and status are replaced, and its pages too when the
        payload supplies them.

        Raises:
            InputError: If title or date are missing
            ValidationError: If a field value is invalid
        """
        if isinstance(payload, EditionCreate):
            data = payload
        elif isinstance(payload, dict):
            data = EditionCreate.model_validate(payload)
        else:
            raise InputError("Edition payload must be an object")

        title = str(data.title).strip() if data.title is not None else ""
        if not title or data.date in (None, ""):
            raise InputError("Title and date are required")

        errors: dict[str, str] = {}
        publication_date = parse_date(data.date)
        if publication_date is None:
            errors["date"] = f"Invalid date: {data.date!r}"
        status = EditionStatus.PUBLISHED
        if data.status not in (None, ""):
            status = parse_status(data.status)
            if status is None:
                errors["status"] = f"Invalid status: {data.status!r}"

        pages: list[Page] | None = None
        warnings: list[str] = []
        if data.pages is not None:
            pages, warnings = self._normalize_page_payload(data.pages, errors, allow_empty=True)

        edition_id = parse_int(data.id, 0)
        if data.id not in (None, "") and edition_id <= 0:
            errors["id"] = f"Invalid id: {data.id!r}"
        if errors:
            raise ValidationError("Edition payload rejected", errors=errors)

        existing = self.store.load(edition_id) if edition_id else None
        if existing is not None:
            changes: dict[str, Any] = {"title": title, "date": publication_date}
            if data.status not in (None, ""):
                changes["status"] = status
            if pages is not None:
                changes["pages"] = pages
            edition = self._apply_changes(existing, changes)
            logger.info(f"Replaced edition {edition.id} from payload")
            return AssemblyResult(edition=edition, warnings=warnings, created=False)

        if edition_id:
            if not self.store.reserve_id(edition_id):
                raise ValidationError(
                    "Edition payload rejected", errors={"id": f"Id is in use: {edition_id}"}
                )
        else:
            edition_id = self.store.allocate_id(self._clock())

        slug = generate_unique_slug(self.store, title, exclude_id=edition_id)
        now = datetime.now()
        try:
            edition = Edition(
                id=edition_id,
                uid=uuid.uuid4().hex,
                title=title,
                slug=slug,
                date=publication_date,
                status=status,
                pages=pages or [],
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            self.store.release_slug(slug, edition_id)
            self.store.release_id(edition_id)
            raise ValidationError.from_pydantic("Edition payload rejected", e) from e

        self._apply_share_images(edition)
        self.store.save(edition)
        logger.info(f"Created edition {edition_id} ({slug}) from payload")
        return AssemblyResult(edition=edition, warnings=warnings)

    def update(self, ref: EditionRef | str | int, payload: dict | EditionUpdate) -> AssemblyResult:
        """Apply an update payload to an edition.

        Only supplied fields change. A supplied ``pages`` list replaces the
        entire page list, sections included: a section missing from the
        payload is gone afterwards. Concurrent updates are not merged; the
        last save wins.

        Args:
            ref: Edition reference or raw identifier
            payload: Any subset of title, date, status, pages

        Returns:
            AssemblyResult with the updated edition

        Raises:
            NotFoundError: If the edition does not exist
            ValidationError: If any supplied field is invalid; nothing is applied
        """
        if isinstance(payload, EditionUpdate):
            data = payload
        elif isinstance(payload, dict):
            data = EditionUpdate.model_validate(payload)
        else:
            raise InputError("Update payload must be an object")

        edition = self.store.get(parse_edition_ref(ref))
        supplied = data.supplied
        errors: dict[str, str] = {}
        changes: dict[str, Any] = {}
        warnings: list[str] = []

        if "title" in supplied:
            title = str(data.title).strip() if data.title is not None else ""
            if title:
                changes["title"] = title
            else:
                errors["title"] = "Title must not be empty"

        if "date" in supplied:
            publication_date = parse_date(data.date)
            if publication_date is None:
                errors["date"] = f"Invalid date: {data.date!r}"
            else:
                changes["date"] = publication_date

        if "status" in supplied:
            status = parse_status(data.status)
            if status is None:
                errors["status"] = f"Invalid status: {data.status!r}"
            else:
                changes["status"] = status

        if "pages" in supplied:
            pages, warnings = self._normalize_page_payload(data.pages, errors, allow_empty=False)
            if pages is not None:
                changes["pages"] = pages

        if errors:
            raise ValidationError(f"Update of edition {edition.id} rejected", errors=errors)

        edition = self._apply_changes(edition, changes)
        logger.info(f"Updated edition {edition.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return AssemblyResult(edition=edition, warnings=warnings, created=False)

    def _normalize_page_payload(
        self, raw_pages: Any, errors: dict[str, str], allow_empty: bool
    ) -> tuple[list[Page] | None, list[str]]:
        if not isinstance(raw_pages, list):
            errors["pages"] = "Pages must be a list"
            return None, []

        pages, warnings = normalize_pages(raw_pages, self._clock())
        if not pages and (raw_pages or not allow_empty):
            errors["pages"] = "No valid pages in payload"
            return None, warnings
        return pages, warnings

    def _apply_changes(self, edition: Edition, changes: dict[str, Any]) -> Edition:
        data = edition.model_dump()
        data.update(changes)
        data["updated_at"] = datetime.now()
        try:
            updated = Edition.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(
                f"Edition {edition.id} failed validation", e
            ) from e

        self._apply_share_images(updated)
        return self.store.save(updated)

    def _apply_share_images(self, edition: Edition) -> None:
        for page in edition.pages:
            for section in page.sections:
                section.share_image_url = section_share_url(self.asset_store, page, section)
        edition.share_image_url = edition_cover_url(
            self.asset_store,
            edition.pages,
            preset=self.cover_preset,
            placeholder=self.placeholder_image,
        )

    def get(self, raw: EditionRef | str | int) -> Edition:
        """Fetch an edition by public id, store-native uid or slug.

        Raises:
            InputError: If the identifier is empty
            NotFoundError: If nothing matches
        """
        return self.store.get(parse_edition_ref(raw))

    def list_editions(self, include_unpublished: bool = False) -> list[Edition]:
        """List editions newest first; only published ones unless asked otherwise."""
        status = None if include_unpublished else EditionStatus.PUBLISHED
        return self.store.list(status=status)

    def delete(self, ref: EditionRef | str | int) -> Edition:
        """Delete an edition and, best effort, every asset in its namespace.

        Asset deletion failures are logged; the edition is deleted regardless.

        Returns:
            The deleted edition

        Raises:
            NotFoundError: If the edition does not exist
        """
        edition = self.store.get(parse_edition_ref(ref))
        self.store.delete(edition.id)
        deleted = self.asset_store.delete_namespace(self.namespace(edition.id))
        logger.info(f"Deleted edition {edition.id} and {deleted} assets")
        return edition

    def backfill_share_images(self, limit: int = BACKFILL_BATCH_LIMIT) -> int:
        """Compute missing share image URLs on stored editions.

        Args:
            limit: Maximum number of editions to update in one run

        Returns:
            Number of editions updated
        """
        updated = 0
        for edition in self.store.list():
            if updated >= limit:
                break
            if not self._missing_share_images(edition):
                continue
            self._apply_share_images(edition)
            self.store.save(edition)
            updated += 1
            logger.info(f"Backfilled share images for edition {edition.id}")
        return updated

    @staticmethod
    def _missing_share_images(edition: Edition) -> bool:
        if not edition.share_image_url:
            return True
        for page in edition.pages:
            if not page.asset_id:
                continue
            for section in page.sections:
                if section.share_image_url is None and section.width > 0 and section.height > 0:
                    return True
        return False

    def regenerate_slugs(self, force: bool = False) -> int:
        """Assign slugs to editions and sections that lack them.

        Args:
            force: Regenerate edition slugs even where one is already set

        Returns:
            Number of editions changed
        """
        changed_count = 0
        for edition in self.store.list():
            changed = False

            if force or not edition.slug:
                old_slug = edition.slug
                slug = generate_unique_slug(self.store, edition.title, exclude_id=edition.id)
                if slug != old_slug:
                    edition.slug = slug
                    changed = True
                    if old_slug:
                        self.store.release_slug(old_slug, edition.id)

            for page in edition.pages:
                for section in page.sections:
                    if section.slug and not force:
                        continue
                    title = "" if section.title == UNTITLED else section.title.strip()
                    text = title or section.content[:SECTION_SLUG_SOURCE_LENGTH]
                    if not text.strip():
                        continue
                    slug = generate_slug(text)
                    if slug != section.slug:
                        section.slug = slug
                        changed = True

            if changed:
                self.store.save(edition)
                changed_count += 1
                logger.info(f"Regenerated slugs for edition {edition.id} ({edition.slug})")
        return changed_count

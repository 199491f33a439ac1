"""JSON-file persistence for editions.

Layout under the store root:

    editions/{id}.json    # Edition documents
    ids/{id}              # Reserved public ids
    slugs/{digest}.json   # Slug reservations: {"slug": ..., "owner": id}

Ids and slugs are reserved by exclusive file creation, so two writers can
never both hold the same one. Edition documents are replaced atomically;
concurrent saves of the same edition do not merge, the last one wins.
"""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from schemas.edition import Edition, EditionStatus

from ..exceptions import NotFoundError, ValidationError
from .refs import ById, ByNativeId, EditionRef, parse_edition_ref

logger = logging.getLogger(__name__)

# Upper bound on id bumps when several editions are created in the same millisecond.
MAX_ID_BUMPS = 10_000

# Owner reported for a slug reservation whose file cannot be parsed.
UNKNOWN_OWNER = -1


class EditionStore:
    """Stores Edition documents in a directory tree.

    Example:
        store = EditionStore(Path("./data"))
        edition_id = store.allocate_id(int(time.time() * 1000))
        store.claim_slug("आज", edition_id)
        store.save(edition)
        store.get(parse_edition_ref("आज"))
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.editions_dir = self.root / "editions"
        self.ids_dir = self.root / "ids"
        self.slugs_dir = self.root / "slugs"
        for directory in (self.editions_dir, self.ids_dir, self.slugs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def _edition_path(self, edition_id: int) -> Path:
        return self.editions_dir / f"{edition_id}.json"

    def _slug_path(self, slug: str) -> Path:
        # Devanagari slugs can exceed the filesystem's 255-byte name limit.
        digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()
        return self.slugs_dir / f"{digest}.json"

    @staticmethod
    def _create_exclusive(path: Path, content: str) -> bool:
        # Written in full first, then linked into place, so no reader ever
        # sees an empty reservation.
        fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.link(tmp_name, path)
        except FileExistsError:
            return False
        finally:
            Path(tmp_name).unlink(missing_ok=True)
        return True

    def allocate_id(self, now_ms: int) -> int:
        """Reserve a public id, starting from a millisecond timestamp.

        Ids already taken are skipped by bumping the candidate by one.

        Args:
            now_ms: Wall-clock time in milliseconds

        Returns:
            The reserved id
        """
        candidate = int(now_ms)
        for _ in range(MAX_ID_BUMPS):
            if self._create_exclusive(self.ids_dir / str(candidate), ""):
                if candidate != now_ms:
                    logger.debug(f"Edition id {now_ms} taken, using {candidate}")
                return candidate
            candidate += 1
        raise RuntimeError(f"No free edition id near {now_ms}")

    def reserve_id(self, edition_id: int) -> bool:
        """Reserve a specific id. Returns False if it is already reserved."""
        return self._create_exclusive(self.ids_dir / str(edition_id), "")

    def release_id(self, edition_id: int) -> None:
        try:
            (self.ids_dir / str(edition_id)).unlink()
        except FileNotFoundError:
            pass

    def slug_owner(self, slug: str) -> int | None:
        """Id of the edition holding slug, or None if it is free.

        A reservation file that cannot be read still holds the slug; it is
        reported as owned by UNKNOWN_OWNER.
        """
        path = self._slug_path(slug)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return int(data["owner"])
        except FileNotFoundError:
            return None
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Unreadable reservation for slug {slug!r} in {path.name}: {e}")
            return UNKNOWN_OWNER

    def slug_taken(self, slug: str, exclude_id: int | None = None) -> bool:
        """Whether slug is held by an edition other than exclude_id."""
        owner = self.slug_owner(slug)
        return owner is not None and owner != exclude_id

    def claim_slug(self, slug: str, owner_id: int | None) -> bool:
        """Atomically claim slug for owner_id.

        Claiming a slug the owner already holds succeeds. With no owner,
        nothing is reserved and the result only says whether it is free.
        """
        if owner_id is None:
            return self.slug_owner(slug) is None

        content = json.dumps({"slug": slug, "owner": owner_id}, ensure_ascii=False)
        if self._create_exclusive(self._slug_path(slug), content):
            return True
        return self.slug_owner(slug) == owner_id

    def release_slug(self, slug: str, owner_id: int) -> None:
        """Release slug if owner_id holds it."""
        if self.slug_owner(slug) != owner_id:
            return
        try:
            self._slug_path(slug).unlink()
        except FileNotFoundError:
            pass

    def save(self, edition: Edition) -> Edition:
        """Write an edition document, replacing any previous version atomically."""
        path = self._edition_path(edition.id)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{edition.id}-", suffix=".tmp", dir=self.editions_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(edition.model_dump_json(indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved edition {edition.id} to {path}")
        return edition

    def load(self, edition_id: int) -> Edition | None:
        """Load an edition by public id.

        Returns:
            The Edition, or None if no document exists

        Raises:
            ValidationError: If the stored document fails schema checks
        """
        path = self._edition_path(edition_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        try:
            return Edition.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(
                f"Stored edition {edition_id} is invalid", e
            ) from e

    def find_by_slug(self, slug: str) -> Edition | None:
        owner = self.slug_owner(slug)
        if owner is None:
            return None
        edition = self.load(owner)
        if edition is None or edition.slug != slug:
            return None
        return edition

    def find_by_uid(self, uid: str) -> Edition | None:
        for edition in self._iter_editions():
            if edition.uid == uid:
                return edition
        return None

    def get(self, ref: EditionRef | str | int) -> Edition:
        """Resolve a reference to an edition.

        Raises:
            NotFoundError: If nothing matches
        """
        ref = parse_edition_ref(ref)
        if isinstance(ref, ByNativeId):
            edition = self.find_by_uid(ref.uid)
        elif isinstance(ref, ById):
            edition = self.load(ref.id)
        else:
            edition = self.find_by_slug(ref.slug)

        if edition is None:
            raise NotFoundError()
        return edition

    def _iter_editions(self):
        for path in sorted(self.editions_dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                yield Edition.model_validate(data)
            except FileNotFoundError:
                continue
            except (ValueError, PydanticValidationError) as e:
                logger.warning(f"Skipping unreadable edition {path.name}: {e}")

    def list(self, status: EditionStatus | None = None) -> list[Edition]:
        """List editions, newest publication date first.

        Args:
            status: Only include editions with this status

        Returns:
            Matching editions
        """
        editions = [
            edition
            for edition in self._iter_editions()
            if status is None or edition.status == status
        ]
        editions.sort(key=lambda e: (e.date, e.id), reverse=True)
        return editions

    def delete(self, edition_id: int) -> bool:
        """Remove an edition document and its id and slug reservations.

        Returns:
            True if a document was removed
        """
        edition = self.load(edition_id)
        if edition is None:
            return False

        self._edition_path(edition_id).unlink(missing_ok=True)
        if edition.slug:
            self.release_slug(edition.slug, edition_id)
        self.release_id(edition_id)
        logger.debug(f"Deleted edition {edition_id}")
        return True

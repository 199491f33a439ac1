"""Command-line interface for epaper-archive."""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from epaper_archive.clients import AssetStoreClient
from epaper_archive.config import load_config
from epaper_archive.editions import EditionAssembler, EditionStore
from epaper_archive.exceptions import ArchiveError, NotFoundError, ValidationError
from epaper_archive.rasterizers import PdfRasterizer, sweep_scratch
from schemas.edition import EditionStatus

EXIT_NOT_FOUND = 4


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def build_store(args: argparse.Namespace, config: dict | None = None) -> EditionStore:
    config = config or load_config()
    return EditionStore(args.data_dir or config["data_dir"])


def build_assembler(args: argparse.Namespace) -> EditionAssembler:
    """Wire the store, asset store client and rasterizer from the environment."""
    config = load_config()
    return EditionAssembler(
        build_store(args, config),
        AssetStoreClient(config["asset_store"]),
        PdfRasterizer(config["rasterizer"]),
        config["assembler"],
    )


def report_failure(logger: logging.Logger, action: str, error: Exception) -> int:
    """Log a failed command and choose its exit code."""
    if isinstance(error, NotFoundError):
        logger.error(f"{action}: {error.message}")
        return EXIT_NOT_FOUND
    if isinstance(error, ValidationError):
        logger.error(f"{action}: {error.message}")
        for field, message in sorted(error.errors.items()):
            logger.error(f"  {field}: {message}")
        return 1
    message = error.message if isinstance(error, ArchiveError) else str(error)
    logger.error(f"{action}: {message}")
    return 1


def load_payload(path: Path) -> dict:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Payload in {path} must be a JSON object")
    return data


def print_edition(edition) -> None:
    print(edition.model_dump_json(indent=2))


def create_edition(args: argparse.Namespace) -> int:
    """Execute the create-edition command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    pdf_path = args.pdf.resolve()
    if not pdf_path.exists():
        logger.error(f"PDF not found: {pdf_path}")
        return 1

    try:
        assembler = build_assembler(args)
        with assembler.asset_store:
            result = assembler.create(pdf_path.read_bytes(), args.title, args.date)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to create edition", e)

    edition = result.edition
    logger.info(f"Created edition: {edition.id}")
    logger.info(f"  Slug: {edition.slug}")
    logger.info(f"  Pages: {len(edition.pages)}")
    logger.info(f"  Cover: {edition.share_image_url}")
    print_edition(edition)
    return 0


def import_edition(args: argparse.Namespace) -> int:
    """Execute the import-edition command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        payload = load_payload(args.payload)
        assembler = build_assembler(args)
        result = assembler.create_from_payload(payload)
    except (ArchiveError, ValueError, OSError) as e:
        return report_failure(logger, "Failed to import edition", e)

    verb = "Created" if result.created else "Replaced"
    logger.info(f"{verb} edition: {result.edition.id}")
    for warning in result.warnings:
        logger.warning(f"  - {warning}")
    print_edition(result.edition)
    return 0


def update_edition(args: argparse.Namespace) -> int:
    """Execute the update-edition command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        payload = load_payload(args.payload)
        assembler = build_assembler(args)
        result = assembler.update(args.edition, payload)
    except (ArchiveError, ValueError, OSError) as e:
        return report_failure(logger, "Failed to update edition", e)

    logger.info(f"Updated edition: {result.edition.id}")
    if result.warnings:
        logger.warning(f"  Dropped entries: {len(result.warnings)}")
        for warning in result.warnings:
            logger.warning(f"    - {warning}")
    print_edition(result.edition)
    return 0


def show_edition(args: argparse.Namespace) -> int:
    """Execute the show-edition command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        edition = build_store(args).get(args.edition)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to fetch edition", e)

    print_edition(edition)
    return 0


def list_editions(args: argparse.Namespace) -> int:
    """Execute the list-editions command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        status = None if args.all else EditionStatus.PUBLISHED
        editions = build_store(args).list(status=status)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to list editions", e)

    for edition in editions:
        print(
            f"{edition.id}\t{edition.date.isoformat()}\t{edition.status.value}\t"
            f"{len(edition.pages)}\t{edition.slug or ''}\t{edition.title}"
        )
    logger.info(f"{len(editions)} editions")
    return 0


def delete_edition(args: argparse.Namespace) -> int:
    """Execute the delete-edition command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        assembler = build_assembler(args)
        with assembler.asset_store:
            edition = assembler.delete(args.edition)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to delete edition", e)

    logger.info(f"Deleted edition: {edition.id} ({edition.title})")
    return 0


def sweep(args: argparse.Namespace) -> int:
    """Execute the sweep-scratch command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    scratch_dir = args.scratch_dir or load_config()["rasterizer"].get("scratch_dir")
    removed = sweep_scratch(scratch_dir)
    logger.info(f"Removed {removed} scratch entries")
    return 0


def backfill_share_images(args: argparse.Namespace) -> int:
    """Execute the backfill-share-images command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        updated = build_assembler(args).backfill_share_images(limit=args.limit)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to backfill share images", e)

    logger.info(f"Updated {updated} editions")
    return 0


def regenerate_slugs(args: argparse.Namespace) -> int:
    """Execute the regenerate-slugs command."""
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        changed = build_assembler(args).regenerate_slugs(force=args.force)
    except (ArchiveError, ValueError) as e:
        return report_failure(logger, "Failed to regenerate slugs", e)

    logger.info(f"Updated slugs on {changed} editions")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="epaper-archive",
        description="Digitize newspaper editions into a hosted page image archive",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Edition store directory (default: $EPAPER_DATA_DIR or ./workspace/editions)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser(
        "create-edition",
        help="Create an edition from a PDF",
        description="Rasterize a PDF, upload its pages and store the new edition.",
    )
    create_parser.add_argument("--pdf", type=Path, required=True, help="Path to the PDF")
    create_parser.add_argument("--title", required=True, help="Edition title")
    create_parser.add_argument("--date", required=True, help="Publication date (YYYY-MM-DD)")
    create_parser.set_defaults(func=create_edition)

    import_parser = subparsers.add_parser(
        "import-edition",
        help="Create or replace an edition from a JSON payload",
        description="Create an edition whose pages are already hosted, or replace the edition with the payload's id.",
    )
    import_parser.add_argument(
        "--payload", type=Path, required=True, help="Path to the JSON payload"
    )
    import_parser.set_defaults(func=import_edition)

    update_parser = subparsers.add_parser(
        "update-edition",
        help="Update an edition from a JSON payload",
        description="Apply title, date, status or a replacement page list to an edition.",
    )
    update_parser.add_argument("edition", help="Edition id, uid or slug")
    update_parser.add_argument(
        "--payload", type=Path, required=True, help="Path to the JSON payload"
    )
    update_parser.set_defaults(func=update_edition)

    show_parser = subparsers.add_parser("show-edition", help="Print an edition as JSON")
    show_parser.add_argument("edition", help="Edition id, uid or slug")
    show_parser.set_defaults(func=show_edition)

    list_parser = subparsers.add_parser("list-editions", help="List editions, newest first")
    list_parser.add_argument(
        "--all",
        action="store_true",
        help="Include draft and archived editions",
    )
    list_parser.set_defaults(func=list_editions)

    delete_parser = subparsers.add_parser(
        "delete-edition",
        help="Delete an edition and its hosted page images",
    )
    delete_parser.add_argument("edition", help="Edition id, uid or slug")
    delete_parser.set_defaults(func=delete_edition)

    sweep_parser = subparsers.add_parser(
        "sweep-scratch",
        help="Remove all scratch files (do not run while an upload is in progress)",
    )
    sweep_parser.add_argument(
        "--scratch-dir",
        type=Path,
        default=None,
        help="Scratch directory (default: $EPAPER_SCRATCH_DIR or the system temp dir)",
    )
    sweep_parser.set_defaults(func=sweep)

    backfill_parser = subparsers.add_parser(
        "backfill-share-images",
        help="Compute missing share image URLs on stored editions",
    )
    backfill_parser.add_argument(
        "--limit",
        type=int,
        default=200,
        help="Maximum editions to update (default: 200)",
    )
    backfill_parser.set_defaults(func=backfill_share_images)

    slugs_parser = subparsers.add_parser(
        "regenerate-slugs",
        help="Assign slugs to editions and sections that lack them",
    )
    slugs_parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate slugs that are already set",
    )
    slugs_parser.set_defaults(func=regenerate_slugs)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    load_dotenv(find_dotenv(usecwd=True))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""Tests for the CLI module."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from epaper_archive.cli import EXIT_NOT_FOUND, main


@pytest.fixture(autouse=True)
def asset_store_env(monkeypatch, tmp_path):
    """Credentials and directories for every CLI run."""
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "123456")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "s3cr3t")
    monkeypatch.setenv("EPAPER_SCRATCH_DIR", str(tmp_path / "scratch"))
    monkeypatch.delenv("CLOUDINARY_URL", raising=False)
    monkeypatch.delenv("EPAPER_DATA_DIR", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def payload_file(tmp_path, pages_payload):
    path = tmp_path / "edition.json"
    path.write_text(
        json.dumps({"title": "आज", "date": "2024-01-15", "pages": pages_payload}),
        encoding="utf-8",
    )
    return path


def run(data_dir, *args) -> int:
    return main(["--data-dir", str(data_dir), *args])


def import_edition(data_dir, payload_file, capsys) -> dict:
    assert run(data_dir, "import-edition", "--payload", str(payload_file)) == 0
    return json.loads(capsys.readouterr().out)


class TestCLIImportEdition:
    """Tests for the import-edition command."""

    def test_import_creates_edition(self, data_dir, payload_file, capsys):
        """import-edition stores the edition and prints it."""
        edition = import_edition(data_dir, payload_file, capsys)

        assert edition["slug"] == "आज"
        assert len(edition["pages"]) == 3
        assert (data_dir / "editions" / f"{edition['id']}.json").exists()

    def test_import_reports_validation_errors(self, data_dir, tmp_path, caplog):
        """Invalid fields fail with exit 1 and are logged per field."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"title": "x", "date": "soon", "status": "gone"}))

        result = run(data_dir, "import-edition", "--payload", str(path))

        assert result == 1
        assert "date: Invalid date" in caplog.text
        assert "status: Invalid status" in caplog.text

    def test_import_rejects_non_object_payload(self, data_dir, tmp_path, caplog):
        """A payload that is not a JSON object fails."""
        path = tmp_path / "list.json"
        path.write_text("[]")

        assert run(data_dir, "import-edition", "--payload", str(path)) == 1
        assert "must be a JSON object" in caplog.text

    def test_import_requires_credentials(self, data_dir, payload_file, monkeypatch, caplog):
        """Missing asset store credentials are reported."""
        monkeypatch.delenv("CLOUDINARY_API_SECRET")

        assert run(data_dir, "import-edition", "--payload", str(payload_file)) == 1
        assert "api_secret" in caplog.text

    def test_credentials_from_dotenv(self, data_dir, payload_file, tmp_path, monkeypatch, capsys):
        """A .env file in the working directory supplies missing settings."""
        monkeypatch.delenv("CLOUDINARY_API_SECRET")
        (tmp_path / ".env").write_text("CLOUDINARY_API_SECRET=from-dotenv\n")

        edition = import_edition(data_dir, payload_file, capsys)

        assert edition["slug"] == "आज"


class TestCLIShowAndList:
    """Tests for the show-edition and list-editions commands."""

    def test_show_by_slug(self, data_dir, payload_file, capsys):
        """show-edition resolves slugs."""
        created = import_edition(data_dir, payload_file, capsys)

        assert run(data_dir, "show-edition", "आज") == 0
        assert json.loads(capsys.readouterr().out)["id"] == created["id"]

    def test_show_missing_edition(self, data_dir, caplog):
        """An unknown identifier exits with the not-found code."""
        assert run(data_dir, "show-edition", "no-such-edition") == EXIT_NOT_FOUND
        assert "Edition not found" in caplog.text

    def test_show_without_credentials(self, data_dir, payload_file, capsys, monkeypatch):
        """Reading needs no asset store credentials."""
        created = import_edition(data_dir, payload_file, capsys)
        monkeypatch.delenv("CLOUDINARY_API_KEY")

        assert run(data_dir, "show-edition", str(created["id"])) == 0

    def test_list_hides_drafts_unless_all(self, data_dir, payload_file, tmp_path, capsys):
        """list-editions shows published editions unless --all is given."""
        created = import_edition(data_dir, payload_file, capsys)
        update = tmp_path / "draft.json"
        update.write_text(json.dumps({"status": "draft"}))
        assert run(data_dir, "update-edition", str(created["id"]), "--payload", str(update)) == 0
        capsys.readouterr()

        assert run(data_dir, "list-editions") == 0
        assert capsys.readouterr().out == ""

        assert run(data_dir, "list-editions", "--all") == 0
        line = capsys.readouterr().out.strip()
        assert line.split("\t") == [str(created["id"]), "2024-01-15", "draft", "3", "आज", "आज"]


class TestCLIUpdateEdition:
    """Tests for the update-edition command."""

    def test_update_status(self, data_dir, payload_file, tmp_path, capsys):
        """A status update keeps the pages."""
        created = import_edition(data_dir, payload_file, capsys)
        update = tmp_path / "update.json"
        update.write_text(json.dumps({"status": "archived"}))

        assert run(data_dir, "update-edition", created["slug"], "--payload", str(update)) == 0

        edition = json.loads(capsys.readouterr().out)
        assert edition["status"] == "archived"
        assert len(edition["pages"]) == 3

    def test_update_empty_pages_rejected(self, data_dir, payload_file, tmp_path, capsys, caplog):
        """An empty page list is a validation failure."""
        created = import_edition(data_dir, payload_file, capsys)
        update = tmp_path / "update.json"
        update.write_text(json.dumps({"pages": []}))

        assert run(data_dir, "update-edition", str(created["id"]), "--payload", str(update)) == 1
        assert "pages: No valid pages in payload" in caplog.text

    def test_update_missing_edition(self, data_dir, tmp_path):
        """Updating an unknown edition exits with the not-found code."""
        update = tmp_path / "update.json"
        update.write_text(json.dumps({"status": "archived"}))

        assert run(data_dir, "update-edition", "404", "--payload", str(update)) == EXIT_NOT_FOUND


class TestCLIDeleteEdition:
    """Tests for the delete-edition command."""

    def test_delete_edition(self, data_dir, payload_file, capsys):
        """delete-edition removes the edition and its namespace."""
        created = import_edition(data_dir, payload_file, capsys)
        mock_client = MagicMock()
        mock_client.__enter__ = MagicMock(return_value=mock_client)
        mock_client.__exit__ = MagicMock(return_value=False)
        mock_client.delete_namespace.return_value = 3

        with patch("epaper_archive.cli.AssetStoreClient", return_value=mock_client):
            assert run(data_dir, "delete-edition", str(created["id"])) == 0

        mock_client.delete_namespace.assert_called_once_with(f"epapers/{created['id']}/pages")
        assert run(data_dir, "show-edition", str(created["id"])) == EXIT_NOT_FOUND


class TestCLICreateEdition:
    """Tests for the create-edition command."""

    def test_create_requires_existing_pdf(self, data_dir, tmp_path, caplog):
        """create-edition fails when the PDF is missing."""
        result = run(
            data_dir, "create-edition",
            "--pdf", str(tmp_path / "missing.pdf"),
            "--title", "आज",
            "--date", "2024-01-15",
        )

        assert result == 1
        assert "PDF not found" in caplog.text

    @patch("epaper_archive.cli.AssetStoreClient")
    @patch("epaper_archive.cli.PdfRasterizer")
    def test_create_edition(self, mock_rasterizer_class, mock_client_class, data_dir, tmp_path, capsys):
        """create-edition rasterizes, uploads and stores the edition."""
        from schemas.raster import RasterPage, UploadedAsset

        pdf = tmp_path / "edition.pdf"
        pdf.write_bytes(b"%PDF-1.7")

        mock_rasterizer = MagicMock()
        mock_rasterizer.rasterize.return_value = iter([
            RasterPage(page_no=1, image_bytes=b"jpeg", width=100, height=140),
        ])
        mock_rasterizer_class.return_value = mock_rasterizer

        mock_client = MagicMock()
        mock_client.__enter__ = MagicMock(return_value=mock_client)
        mock_client.__exit__ = MagicMock(return_value=False)
        mock_client.upload.return_value = UploadedAsset(
            delivery_url="https://res.cloudinary.com/demo/image/upload/v1/page-1.jpg",
            asset_id="epapers/1/pages/page-1",
            width=100,
            height=140,
        )
        mock_client.derived_url.side_effect = lambda asset_id, *transforms: (
            "/".join(["https://res.cloudinary.com/demo/image/upload", *[t.segment() for t in transforms], asset_id])
        )
        mock_client_class.return_value = mock_client

        result = run(data_dir, "create-edition", "--pdf", str(pdf), "--title", "आज", "--date", "2024-01-15")

        assert result == 0
        edition = json.loads(capsys.readouterr().out)
        assert edition["slug"] == "आज"
        assert [p["page_no"] for p in edition["pages"]] == [1]
        assert edition["share_image_url"].endswith("/epapers/1/pages/page-1")
        mock_client.upload.assert_called_once()


class TestCLIMaintenance:
    """Tests for the maintenance commands."""

    def test_backfill_share_images(self, data_dir, payload_file, capsys, caplog):
        """backfill-share-images reports how many editions it updated."""
        caplog.set_level(logging.INFO)
        import_edition(data_dir, payload_file, capsys)

        assert run(data_dir, "backfill-share-images", "--limit", "10") == 0
        assert "Updated 0 editions" in caplog.text

    def test_regenerate_slugs(self, data_dir, payload_file, capsys, caplog):
        """regenerate-slugs runs over the store."""
        caplog.set_level(logging.INFO)
        import_edition(data_dir, payload_file, capsys)

        assert run(data_dir, "regenerate-slugs") == 0
        assert "Updated slugs on 0 editions" in caplog.text

    def test_sweep_scratch(self, tmp_path):
        """sweep-scratch empties the scratch directory."""
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        (scratch / "leftover.pdf").write_bytes(b"x")

        assert main(["sweep-scratch", "--scratch-dir", str(scratch)]) == 0
        assert list(scratch.iterdir()) == []


class TestCLIHelp:
    """Tests for CLI help output."""

    def test_main_no_command(self, capsys):
        """No command prints help and succeeds."""
        assert main([]) == 0
        assert "create-edition" in capsys.readouterr().out

    def test_subcommand_help(self, capsys):
        """Subcommand help lists its options."""
        with pytest.raises(SystemExit) as exc_info:
            main(["create-edition", "--help"])

        assert exc_info.value.code == 0
        assert "--pdf" in capsys.readouterr().out

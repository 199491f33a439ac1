"""Pytest fixtures for epaper-archive tests."""

import itertools
from unittest.mock import MagicMock

import fitz  # PyMuPDF
import pytest

from epaper_archive.clients import AssetStoreClient
from epaper_archive.editions import EditionAssembler, EditionStore
from epaper_archive.rasterizers import PdfRasterizer

ASSET_STORE_CONFIG = {
    "cloud_name": "demo",
    "api_key": "123456",
    "api_secret": "s3cr3t",
    "retry_attempts": 1,
}


def make_pdf_bytes(pages: int = 1) -> bytes:
    """Build a PDF with *pages* A4 pages of text."""
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=595, height=842)
        page.insert_text((50, 100), f"Page {i + 1} content")
    data = doc.tobytes()
    doc.close()
    return data


def fake_store_response(method: str, path: str, **kwargs) -> MagicMock:
    """Answer asset store API calls the way the hosted service does."""
    response = MagicMock()
    response.is_success = True

    if path.endswith("/image/upload") and method == "POST":
        data = kwargs["data"]
        public_id = f"{data['folder']}/{data['public_id']}"
        response.json.return_value = {
            "public_id": public_id,
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}.jpg",
            "width": 2083,
            "height": 2947,
            "bytes": 48213,
        }
    elif path.endswith("/image/destroy"):
        response.json.return_value = {"result": "ok"}
    elif method == "DELETE":
        prefix = kwargs["params"]["prefix"]
        response.json.return_value = {"deleted": {f"{prefix}/page-1": "deleted"}}
    else:
        response.json.return_value = {}
    return response


@pytest.fixture
def pdf_bytes():
    """A two-page PDF."""
    return make_pdf_bytes(pages=2)


@pytest.fixture
def asset_store():
    """Asset store client whose HTTP layer is a MagicMock."""
    client = AssetStoreClient(dict(ASSET_STORE_CONFIG))
    client._client = MagicMock()
    client._client.request.side_effect = fake_store_response
    return client


@pytest.fixture
def store(tmp_path):
    """Edition store rooted in a temporary directory."""
    return EditionStore(tmp_path / "data")


@pytest.fixture
def rasterizer(tmp_path):
    """PyMuPDF-only rasterizer at nominal scale."""
    return PdfRasterizer({
        "renderers": ["pymupdf"],
        "scale": 1.0,
        "scratch_dir": tmp_path / "scratch",
    })


@pytest.fixture
def clock():
    """Millisecond clock that advances by one second per call."""
    ticks = itertools.count(1705300000000, 1000)
    return lambda: next(ticks)


@pytest.fixture
def assembler(store, asset_store, rasterizer, clock):
    """Assembler wired to the temporary store and mocked asset store."""
    return EditionAssembler(store, asset_store, rasterizer, {"upload_workers": 2}, clock=clock)


@pytest.fixture
def pages_payload():
    """Three hosted pages as sent by the mapping tool, page 1 with two sections."""
    base = "https://res.cloudinary.com/demo/image/upload/v1/epapers/1705300000000/pages"
    return [
        {
            "pageNo": 1,
            "image": f"{base}/page-1.jpg",
            "assetId": "epapers/1705300000000/pages/page-1",
            "width": 2083,
            "height": 2947,
            "news": [
                {"id": 11, "x": 100, "y": 200, "width": 640, "height": 480, "title": "पहिली बातमी"},
                {"id": 12, "x": "10.4", "y": "20.5", "width": "300", "height": "150", "title": "Second story"},
            ],
        },
        {
            "pageNo": "2",
            "imageUrl": f"{base}/page-2.jpg",
            "assetId": "epapers/1705300000000/pages/page-2",
            "width": "2083",
            "height": "2947",
            "news": [],
        },
        {
            "pageNo": 3,
            "image": f"{base}/page-3.jpg",
            "assetId": "epapers/1705300000000/pages/page-3",
            "width": 2083,
            "height": 2947,
        },
    ]


@pytest.fixture
def seeded_edition(assembler, pages_payload):
    """A published three-page edition already in the store."""
    result = assembler.create_from_payload({
        "title": "Morning Edition",
        "date": "2024-01-15",
        "pages": pages_payload,
    })
    return result.edition

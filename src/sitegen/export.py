"""
Packaging the generated website for download.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

from .artifacts import ArtifactStore
from .errors import ValidationError
from .logging import get_logger
from .markup import ensure_full_document, format_page_name

logger = get_logger(__name__)


def _site_files(store: ArtifactStore) -> dict[str, str]:
    if store.is_empty():
        raise ValidationError("No website has been generated yet")

    pages = store.get_pages()
    saved_files = store.saved_files
    files: dict[str, str] = {}
    for name in store.page_names():
        page = pages[name]
        filename = Path(saved_files.get(name) or f"{name}.html").name
        files[filename] = ensure_full_document(
            page.html, page.css, title=format_page_name(name)
        )

    page_list = "\n".join(f"- {format_page_name(name)}" for name in store.page_names())
    files["README.md"] = f"# Generated Website\n\nPages:\n{page_list}\n"
    return files


def build_site_archive(store: ArtifactStore) -> bytes:
    """Zip every page as a standalone document, plus a README listing them."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename, content in _site_files(store).items():
            archive.writestr(filename, content)
    return buffer.getvalue()


def write_site_archive(store: ArtifactStore, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(build_site_archive(store))
    logger.info("Website archive written", path=str(path), pages=store.page_names())
    return path


def write_site_directory(store: ArtifactStore, directory: str | Path) -> list[Path]:
    """Write each page (and the README) as a file in ``directory``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, content in _site_files(store).items():
        target = directory / filename
        target.write_text(content, encoding="utf-8")
        written.append(target)
    logger.info("Website written", directory=str(directory), files=len(written))
    return written

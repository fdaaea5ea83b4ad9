"""Tests for downloading and unpacking the front-end modules.

The npm registry is replaced by a fake session serving in-memory tarballs,
so the tests exercise member selection, prefix stripping, and error
reporting without network access.
"""

from __future__ import annotations

import io
import tarfile
import typing as typ

import pytest
import requests

from slide_pages.errors import VendorError
from slide_pages.vendor import PACKAGES, extract_package, vendor_modules

if typ.TYPE_CHECKING:
    from pathlib import Path

    from slide_pages.vendor import VendorPackage


def _tarball(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, payload in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code


class FakeSession:
    """Serve canned responses keyed by URL and record each request."""

    def __init__(self, responses: dict[str, FakeResponse]) -> None:
        self.responses = responses
        self.requested: list[str] = []

    def get(self, url: str, timeout: float) -> FakeResponse:
        self.requested.append(url)
        try:
            return self.responses[url]
        except KeyError as exc:
            raise requests.ConnectionError(url) from exc


def _package(module: str) -> VendorPackage:
    return next(package for package in PACKAGES if package.module == module)


REVEAL_TARBALL = _tarball(
    {
        "package/dist/reveal.js": b"reveal",
        "package/plugin/notes/notes.js": b"notes",
        "package/README.md": b"readme",
    }
)


def test_tarball_url_handles_scoped_packages() -> None:
    assert _package("base").tarball_url == (
        "https://registry.npmjs.org/reveal.js/-/reveal.js-5.1.0.tgz"
    )
    assert _package("highlight").tarball_url == (
        "https://registry.npmjs.org/@highlightjs/cdn-assets/-/cdn-assets-11.9.0.tgz"
    )


def test_vendor_unpacks_selected_directories(tmp_path: Path) -> None:
    base = _package("base")
    session = FakeSession({base.tarball_url: FakeResponse(REVEAL_TARBALL)})

    written = vendor_modules(tmp_path, modules=["base"], session=session)

    target = tmp_path / "reveal"
    assert sorted(path.relative_to(target).as_posix() for path in written["base"]) == [
        "dist/reveal.js",
        "plugin/notes/notes.js",
    ]
    assert (target / "dist" / "reveal.js").read_bytes() == b"reveal"
    assert not (target / "README.md").exists(), "unlisted files are not unpacked"
    assert session.requested == [base.tarball_url]


def test_vendor_keeps_existing_modules_unless_forced(tmp_path: Path) -> None:
    base = _package("base")
    session = FakeSession({base.tarball_url: FakeResponse(REVEAL_TARBALL)})
    stale = tmp_path / "reveal" / "stale.js"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")

    kept = vendor_modules(tmp_path, modules=["base"], session=session)
    forced = vendor_modules(tmp_path, modules=["base"], session=session, force=True)

    assert kept == {"base": []}
    assert len(forced["base"]) == 2
    assert not stale.exists(), "forcing replaces the whole module directory"


def test_strip_prefix_flattens_styles(tmp_path: Path) -> None:
    highlight = _package("highlight")
    archive = _tarball(
        {
            "package/styles/monokai.css": b"monokai",
            "package/highlight.min.js": b"js",
        }
    )

    written = extract_package(archive, highlight, tmp_path)

    assert written == [tmp_path / "monokai.css"]


def test_unknown_module_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(VendorError, match="Unknown module"):
        vendor_modules(tmp_path, modules=["nope"], session=FakeSession({}))


def test_http_errors_are_reported(tmp_path: Path) -> None:
    base = _package("base")
    session = FakeSession({base.tarball_url: FakeResponse(b"", status_code=404)})

    with pytest.raises(VendorError, match="status 404"):
        vendor_modules(tmp_path, modules=["base"], session=session)


def test_connection_errors_are_reported(tmp_path: Path) -> None:
    with pytest.raises(VendorError, match="Failed to download reveal.js"):
        vendor_modules(tmp_path, modules=["base"], session=FakeSession({}))


def test_corrupt_archive_is_reported(tmp_path: Path) -> None:
    with pytest.raises(VendorError, match="Could not read"):
        extract_package(b"not a tarball", _package("menu"), tmp_path)

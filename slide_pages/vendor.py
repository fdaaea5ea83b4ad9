r"""Download the front-end modules presentations are served with.

Documents reference reveal.js, its menu plugin, highlight.js styles, and a
few widget libraries through the built-in modules (``~modules/<name>``).
This module fetches the pinned npm tarballs for them and unpacks only the
directories the templates use.

Example
-------
>>> from slide_pages.vendor import vendor_modules
>>> written = vendor_modules(modules=["base"])  # doctest: +SKIP
>>> sorted(written)  # doctest: +SKIP
['base']
"""

from __future__ import annotations

import dataclasses as dc
import io
import logging
import shutil
import tarfile
import typing as typ
from http import HTTPStatus
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from slide_pages.config.helpers import PACKAGE_DIR
from slide_pages.errors import VendorError
from slide_pages.utils import is_within_directory, make_directory

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

NPM_REGISTRY = "https://registry.npmjs.org"
MODULES_DIR = PACKAGE_DIR / "modules"


@dc.dataclass(slots=True, frozen=True)
class VendorPackage:
    """A pinned npm package unpacked into one module directory.

    Attributes
    ----------
    module : str
        Name of the module in the configuration (``base``, ``menu``, ...).
    directory : str
        Directory under the modules root the files land in.
    package : str
        npm package name.
    version : str
        Pinned package version.
    include : tuple[str, ...]
        Package-relative files or directories to unpack.
    strip : str
        Leading package-relative directory removed from unpacked paths.
    """

    module: str
    directory: str
    package: str
    version: str
    include: tuple[str, ...]
    strip: str = ""

    @property
    def tarball_url(self) -> str:
        base_name = self.package.rsplit("/", 1)[-1]
        return f"{NPM_REGISTRY}/{self.package}/-/{base_name}-{self.version}.tgz"

    def target_name(self, name: str) -> str | None:
        """Return where package file ``name`` is unpacked, or ``None`` to skip it."""
        if not any(name == item or name.startswith(f"{item}/") for item in self.include):
            return None
        if self.strip and name.startswith(f"{self.strip}/"):
            return name[len(self.strip) + 1 :]
        return name


PACKAGES: tuple[VendorPackage, ...] = (
    VendorPackage("base", "reveal", "reveal.js", "5.1.0", ("dist", "plugin")),
    VendorPackage("bootstrap", "bootstrap", "bootstrap", "5.3.3", ("dist",)),
    VendorPackage("datatables", "datatables", "datatables.net", "2.0.8", ("js",)),
    VendorPackage(
        "datatables-bs", "datatables-bs", "datatables.net-bs5", "2.0.8", ("css", "js")
    ),
    VendorPackage("font-awesome", "font-awesome", "font-awesome", "4.7.0", ("css", "fonts")),
    VendorPackage(
        "highlight",
        "highlight",
        "@highlightjs/cdn-assets",
        "11.9.0",
        ("styles",),
        strip="styles",
    ),
    VendorPackage("jquery", "jquery", "jquery", "3.7.1", ("dist",)),
    VendorPackage("menu", "menu", "reveal.js-menu", "2.1.0", ("menu.js", "menu.css")),
)


def build_session(retries: int = 5) -> requests.Session:
    """Return a session retrying transient registry failures."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        read=retries,
        connect=3,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def extract_package(archive: bytes, package: VendorPackage, destination: Path) -> list[Path]:
    """Unpack the files ``package`` selects from an npm tarball.

    npm tarballs nest every file under a single top-level directory
    (usually ``package/``), which is dropped before matching ``include``.

    Raises
    ------
    VendorError
        If the archive cannot be read or a member would escape
        ``destination``.
    """
    written: list[Path] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
            for member in tar.getmembers():
                if not member.isfile() or "/" not in member.name:
                    continue
                relative = package.target_name(member.name.split("/", 1)[1])
                if not relative:
                    continue
                target = destination / relative
                if not is_within_directory(target, destination):
                    msg = f"Refusing to unpack {member.name} outside {destination}"
                    raise VendorError(msg)
                source = tar.extractfile(member)
                if source is None:
                    continue
                make_directory(target.parent)
                target.write_bytes(source.read())
                written.append(target)
    except tarfile.TarError as exc:
        msg = f"Could not read the {package.package} {package.version} archive: {exc}"
        raise VendorError(msg) from exc
    return written


def _download(session: requests.Session, package: VendorPackage, timeout: float) -> bytes:
    url = package.tarball_url
    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        msg = f"Failed to download {package.package} {package.version}: {exc}"
        raise VendorError(msg) from exc
    if response.status_code >= HTTPStatus.BAD_REQUEST:
        msg = (
            f"Downloading {package.package} {package.version} failed with "
            f"status {response.status_code}"
        )
        raise VendorError(msg)
    return response.content


def vendor_modules(
    destination: Path | None = None,
    *,
    modules: cabc.Iterable[str] | None = None,
    session: requests.Session | None = None,
    timeout: float = 30.0,
    force: bool = False,
) -> dict[str, list[Path]]:
    """Download and unpack the built-in front-end modules.

    Parameters
    ----------
    destination : Path, optional
        Modules root; defaults to the ``modules`` directory of the package,
        which is where the built-in module paths point.
    modules : Iterable[str], optional
        Module names to fetch; all of them when omitted.
    session : requests.Session, optional
        Session to download with; a retrying session is created (and
        closed) when omitted.
    timeout : float, optional
        Per-request timeout in seconds.
    force : bool, optional
        Replace module directories that already have content.

    Returns
    -------
    dict[str, list[Path]]
        Files written per module; modules skipped as already present map to
        an empty list.

    Raises
    ------
    VendorError
        If a module name is unknown, or a download or unpack fails.
    """
    root = destination or MODULES_DIR
    known = {package.module: package for package in PACKAGES}
    names = list(modules) if modules is not None else list(known)
    unknown = sorted(set(names) - set(known))
    if unknown:
        msg = f"Unknown module(s): {', '.join(unknown)}. Known modules: {', '.join(known)}"
        raise VendorError(msg)

    owned = session is None
    active = session or build_session()
    written: dict[str, list[Path]] = {}
    try:
        for name in names:
            package = known[name]
            target = root / package.directory
            if target.is_dir() and any(target.iterdir()) and not force:
                logger.info("module %s already present in %s", name, target)
                written[name] = []
                continue
            logger.info("fetching %s %s", package.package, package.version)
            archive = _download(active, package, timeout)
            if target.exists():
                shutil.rmtree(target)
            written[name] = extract_package(archive, package, target)
    finally:
        if owned:
            active.close()
    return written


__all__ = [
    "MODULES_DIR",
    "NPM_REGISTRY",
    "PACKAGES",
    "VendorPackage",
    "build_session",
    "extract_package",
    "vendor_modules",
]

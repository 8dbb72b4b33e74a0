"""Download and unpack Chrome extensions for the shared browser.

Extensions (cookie-consent helpers) are fetched as CRX files from the Chrome
Web Store update endpoint, unpacked into ``extensions_dir/<name>/`` and then
loaded with ``--load-extension``. Already-unpacked extensions are reused.
"""

from __future__ import annotations

import asyncio
import io
import logging
import struct
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from crawl_service.services.browser.manager import LaunchArgsProvider

logger = logging.getLogger(__name__)

CRX_MAGIC = b"Cr24"

CRX_DOWNLOAD_URL = (
    "https://clients2.google.com/service/update2/crx?response=redirect"
    "&prodversion=131.0.6778.204&acceptformat=crx2,crx3"
    "&x=id%3D{extension_id}%26uc&nacl_arch=x86-64"
)

DOWNLOAD_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


@dataclass(frozen=True)
class ChromeExtension:
    """A Chrome Web Store extension to preload into the browser."""

    id: str
    name: str
    description: str


DEFAULT_EXTENSIONS: tuple[ChromeExtension, ...] = (
    ChromeExtension(
        id="ofpnikijgfhlmmjlpkfaifhhdonchhoi",
        name="accepteer-alle-cookies",
        description="Accepteer alle cookies",
    ),
    ChromeExtension(
        id="neooppigbkahgfdhbpbhcccgpimeaafi",
        name="superagent-automatic-cookie-consent",
        description="Superagent Automatic Cookie Consent",
    ),
    ChromeExtension(
        id="edibdbjcniadpccecjdfdjjppcpchdlm",
        name="i-still-dont-care-about-cookies",
        description="I still don't care about cookies",
    ),
)


class ExtensionError(Exception):
    """Raised when an extension cannot be downloaded or unpacked."""

    pass


def crx_zip_offset(data: bytes) -> int:
    """Return the offset of the ZIP payload inside a CRX2/CRX3 file.

    CRX2: magic, version, public key length, signature length, key, signature.
    CRX3: magic, version, header length, protobuf header.

    Raises:
        ExtensionError: If the header is malformed or the version unsupported.
    """
    if len(data) < 12:
        raise ExtensionError("Invalid CRX file: too small")
    if data[:4] != CRX_MAGIC:
        raise ExtensionError("Invalid CRX file: wrong magic number")

    (version,) = struct.unpack_from("<I", data, 4)
    if version == 2:
        if len(data) < 16:
            raise ExtensionError("Invalid CRX2 file: header too small")
        key_length, signature_length = struct.unpack_from("<II", data, 8)
        offset = 16 + key_length + signature_length
    elif version == 3:
        (header_length,) = struct.unpack_from("<I", data, 8)
        offset = 12 + header_length
    else:
        raise ExtensionError(f"Unsupported CRX version: {version}")

    if offset >= len(data):
        raise ExtensionError(
            f"Invalid CRX file: header extends beyond file "
            f"(zipStart: {offset}, fileSize: {len(data)})"
        )
    return offset


def unpack_crx(data: bytes, target_dir: Path) -> Path:
    """Extract the ZIP payload of a CRX file into ``target_dir``."""
    offset = crx_zip_offset(data)
    target_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(io.BytesIO(data[offset:])) as archive:
            archive.extractall(target_dir)
    except zipfile.BadZipFile as e:
        raise ExtensionError(f"Failed to extract CRX file: {e}") from e
    return target_dir


async def download_extension(
    client: httpx.AsyncClient, extension: ChromeExtension, extensions_dir: Path
) -> Path:
    """Download and unpack one extension, reusing an existing unpacked copy."""
    extension_dir = extensions_dir / extension.name
    if extension_dir.is_dir():
        logger.debug("Extension already exists: %s", extension_dir)
        return extension_dir

    logger.info("Downloading %s extension...", extension.description)
    url = CRX_DOWNLOAD_URL.format(extension_id=extension.id)
    try:
        response = await client.get(url, headers=DOWNLOAD_HEADERS)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ExtensionError(f"Failed to download CRX: {e}") from e

    if not response.content:
        raise ExtensionError("Downloaded file is empty")
    logger.debug("Downloaded %d bytes for %s", len(response.content), extension.name)

    return await asyncio.to_thread(unpack_crx, response.content, extension_dir)


async def prepare_extensions(
    extensions_dir: Path,
    extensions: tuple[ChromeExtension, ...] = DEFAULT_EXTENSIONS,
    client: httpx.AsyncClient | None = None,
) -> list[Path]:
    """Make every configured extension available on disk.

    Individual failures are skipped.

    Raises:
        ExtensionError: If not a single extension could be prepared.
    """
    extensions_dir.mkdir(parents=True, exist_ok=True)
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=30.0, follow_redirects=True)

    paths: list[Path] = []
    try:
        for extension in extensions:
            try:
                paths.append(await download_extension(client, extension, extensions_dir))
            except ExtensionError as e:
                logger.warning(
                    "Failed to download %s, skipping: %s", extension.description, e
                )
    finally:
        if owns_client:
            await client.aclose()

    if not paths:
        raise ExtensionError("Failed to download any extensions")
    logger.info("Successfully prepared %d extension(s)", len(paths))
    return paths


def extension_launch_args(paths: list[Path]) -> list[str]:
    """Build the Chromium arguments that load the given unpacked extensions."""
    if not paths:
        return []
    joined = ",".join(str(path.resolve()) for path in paths)
    return [
        f"--disable-extensions-except={joined}",
        f"--load-extension={joined}",
    ]


def extension_args_provider(extensions_dir: str) -> LaunchArgsProvider:
    """Return a coroutine factory usable as BrowserManager's extra_args_provider."""

    async def _provide() -> list[str]:
        paths = await prepare_extensions(Path(extensions_dir))
        return extension_launch_args(paths)

    return _provide

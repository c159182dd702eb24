from __future__ import annotations

import io
import os
import tarfile
import zipfile
from dataclasses import dataclass

import httpx

from .models import Version, ZoneIdentity

ZIP = "application/zip"
GZIP = "application/x-gzip"
SUPPORTED_CONTENT_TYPES = {ZIP, GZIP}


class FetchError(Exception):
    pass


def artifact_name(zone: ZoneIdentity, version: Version) -> str:
    """File name of the zone application bundle built for a version and zone."""
    return "zone-application-%s-%s_%s_%s.zip" % (
        version.to_full_string(),
        zone.system,
        zone.region,
        zone.environment,
    )


def artifact_url(url_prefix: str, zone: ZoneIdentity, version: Version) -> str:
    # The prefix is used as-is; artifacts live in one directory per version.
    return f"{url_prefix}{version.to_full_string()}/{artifact_name(zone, version)}"


@dataclass(frozen=True)
class CompressedBundle:
    """A downloaded application package, kept compressed in memory."""

    data: bytes
    content_type: str = ZIP

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str = ZIP) -> CompressedBundle:
        bundle = cls(data=data, content_type=content_type)
        if content_type not in SUPPORTED_CONTENT_TYPES:
            raise ValueError(f"Unsupported content type '{content_type}'.")
        try:
            bundle.names()
        except (zipfile.BadZipFile, tarfile.TarError, OSError, EOFError) as e:
            raise ValueError(f"Payload is not a valid {content_type} archive: {e}") from e
        return bundle

    def names(self) -> list[str]:
        if self.content_type == ZIP:
            with zipfile.ZipFile(io.BytesIO(self.data)) as zf:
                return zf.namelist()
        with tarfile.open(fileobj=io.BytesIO(self.data), mode="r:gz") as tf:
            return tf.getnames()

    def extract_to(self, dest: str) -> list[str]:
        """Unpack into dest. Links and entries resolving outside dest are rejected."""
        root = os.path.abspath(dest)
        if self.content_type == GZIP:
            with tarfile.open(fileobj=io.BytesIO(self.data), mode="r:gz") as tf:
                for member in tf.getmembers():
                    if member.issym() or member.islnk():
                        raise ValueError(f"Archive entry is a link: {member.name}")
        for name in self.names():
            target = os.path.abspath(os.path.join(root, name))
            if os.path.commonpath([root, target]) != root:
                raise ValueError(f"Archive entry escapes destination: {name}")
        os.makedirs(root, exist_ok=True)
        if self.content_type == ZIP:
            with zipfile.ZipFile(io.BytesIO(self.data)) as zf:
                zf.extractall(root)
        else:
            with tarfile.open(fileobj=io.BytesIO(self.data), mode="r:gz") as tf:
                tf.extractall(root)
        return self.names()


class ArtifactFetcher:
    """Downloads zone application bundles. One attempt per call, no retries."""

    def __init__(self, url_prefix: str, timeout_s: float = 30.0, transport: httpx.BaseTransport | None = None):
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self.url_prefix = url_prefix
        self.timeout_s = timeout_s
        self._transport = transport

    def locate(self, zone: ZoneIdentity, version: Version) -> CompressedBundle:
        url = artifact_url(self.url_prefix, zone, version)
        try:
            with httpx.Client(timeout=self.timeout_s, follow_redirects=True, transport=self._transport) as client:
                resp = client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to download {url}: {type(e).__name__}: {e}") from e

        if resp.status_code == 404:
            raise FetchError(f"Zone application {version} not found at {url}")
        if resp.status_code != 200:
            raise FetchError(f"Failed to download {url}: HTTP {resp.status_code}")

        try:
            return CompressedBundle.from_bytes(resp.content, ZIP)
        except ValueError as e:
            raise FetchError(f"Bad content from {url}: {e}") from e

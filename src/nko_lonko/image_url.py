"""Turn content-store image references into CDN URLs."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from .config import Settings, get_settings
from .errors import AssetResolutionFailure

logger = logging.getLogger(__name__)

CDN_BASE = "https://cdn.sanity.io/images"
# image-<asset id>-<width>x<height>-<format>
ASSET_REF_PATTERN = re.compile(r"^image-(?P<id>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)-(?P<fmt>[a-z0-9]+)$")


def _extract_ref(source: Any) -> str:
    """Dig the asset reference (or a ready URL) out of the many shapes images arrive in."""
    if source is None:
        raise AssetResolutionFailure("no image source")
    if isinstance(source, str):
        txt = source.strip()
        if not txt:
            raise AssetResolutionFailure("empty image reference")
        return txt
    if isinstance(source, dict):
        asset = source.get("asset", source)
        if isinstance(asset, str):
            return _extract_ref(asset)
        if isinstance(asset, dict):
            for key in ("url", "_ref", "_id"):
                value = asset.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        raise AssetResolutionFailure("image object has no asset reference")
    raise AssetResolutionFailure(f"unsupported image source type: {type(source).__name__}")


class ImageUrlBuilder:
    """Build CDN URLs for image assets of one project/dataset."""

    def __init__(self, project_id: str, dataset: str, base_url: str = CDN_BASE):
        self.project_id = project_id
        self.dataset = dataset
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ImageUrlBuilder":
        settings = settings or get_settings()
        return cls(settings.sanity_project_id, settings.sanity_dataset)

    def url_for_ref(self, ref: str) -> str:
        """Map an asset reference to its URL; absolute http(s) URLs pass through."""
        if ref.startswith(("http://", "https://")):
            return ref
        match = ASSET_REF_PATTERN.match(ref)
        if not match:
            raise AssetResolutionFailure(f"malformed asset reference: {ref!r}")
        return (
            f"{self.base_url}/{self.project_id}/{self.dataset}/"
            f"{match['id']}-{match['dims']}.{match['fmt']}"
        )

    def build_url(self, source: Any) -> Optional[str]:
        """Return the image URL for ``source`` or ``None``; never raises."""
        try:
            return self.url_for_ref(_extract_ref(source))
        except AssetResolutionFailure as exc:
            logger.debug(f"Image asset not resolved: {exc}")
            return None

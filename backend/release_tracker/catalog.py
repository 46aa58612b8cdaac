import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

from django.conf import settings

from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.json"
REGION_AREAS = ("domestic", "apac", "africa", "latam")


@dataclass(frozen=True)
class RegionEntry:
    name: str
    area: str
    is_gray: bool = False


@dataclass(frozen=True)
class Catalog:
    components: Tuple[str, ...]
    regions: Tuple[RegionEntry, ...]

    def has_component(self, name: str) -> bool:
        return name in self.components

    def to_payload(self) -> Dict[str, Any]:
        return {
            "components": list(self.components),
            "regions": [
                {"name": region.name, "area": region.area, "is_gray": region.is_gray}
                for region in self.regions
            ],
            "areas": list(REGION_AREAS),
        }


def parse_catalog(payload: Dict[str, Any]) -> Catalog:
    components = payload.get("components")
    regions = payload.get("regions")
    if not isinstance(components, list) or not isinstance(regions, list):
        raise ValidationError("catalog requires components and regions lists")
    names = [str(name).strip() for name in components]
    if len(set(names)) != len(names) or not all(names):
        raise ValidationError("catalog component names must be unique and non-empty")
    entries = []
    for idx, region in enumerate(regions):
        area = region.get("area")
        if area not in REGION_AREAS:
            raise ValidationError(f"catalog regions[{idx}].area: invalid area {area!r}")
        entries.append(RegionEntry(name=str(region["name"]), area=area, is_gray=bool(region.get("is_gray"))))
    return Catalog(components=tuple(names), regions=tuple(entries))


def _catalog_path() -> Path:
    override = getattr(settings, "RELEASE_TRACKER_CATALOG", "")
    return Path(override) if override else DEFAULT_CATALOG_PATH


@lru_cache(maxsize=1)
def load_catalog() -> Catalog:
    path = _catalog_path()
    with open(path, "r", encoding="utf-8") as handle:
        catalog = parse_catalog(json.load(handle))
    logger.info("Loaded catalog %s: %d components, %d regions", path, len(catalog.components), len(catalog.regions))
    return catalog

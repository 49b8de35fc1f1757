"""
Station metadata loading and path resolution.

Reads ``radio.json`` (shared pools and the list of station folders) and each
station's ``station.json``, either from a local data folder or from a remote
base URL. The scheduler itself never does I/O; it only consumes the parsed
``StationMetadata`` held by a ``StationSource``.
"""

import json
import math
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

import requests
from loguru import logger

from radio_sync.core.config import DataConfig, SchedulerConfig

from .exceptions import InvalidMetadataError, MetadataLoadError
from .models import (
    Category,
    DJMarker,
    RadioMetadata,
    SegmentInfo,
    StationInfo,
    StationMetadata,
    TrackMarker,
    VoiceoverInfo,
)

if TYPE_CHECKING:
    from .stations import RadioStation

STATION_TYPES = ("dynamic", "talkshow", "static")
DEFAULT_STATION_TYPE = "dynamic"
ICON_PRIORITY = ("color", "monochrome", "full")
DJ_MARKER_VALUES = ("intro_start", "intro_end", "outro_start", "outro_end")

PathInfo = TypeVar("PathInfo", bound=Union[SegmentInfo, VoiceoverInfo])


def _is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def fetch_json(location: str, timeout: float = 10.0) -> Any:
    """Read a JSON document from a local path or an HTTP(S) URL.

    Args:
        location: File path or URL
        timeout: Request timeout in seconds (remote only)

    Returns:
        Decoded JSON document

    Raises:
        MetadataLoadError: If the document cannot be read or decoded
    """
    if _is_remote(location):
        try:
            response = requests.get(location, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise MetadataLoadError(location, f"Failed to fetch {location}: {e}") from e

    try:
        with open(location, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise MetadataLoadError(location, f"Failed to read {location}: {e}") from e


def _require_number(data: dict, key: str, context: str) -> float:
    """Non-negative, finite number stored under ``key``."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidMetadataError(f"{context}: '{key}' must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise InvalidMetadataError(
            f"{context}: '{key}' must be finite and not negative, got {value!r}"
        )
    return float(value)


def _optional_number(data: dict, key: str, context: str) -> Optional[float]:
    if data.get(key) is None:
        return None
    return _require_number(data, key, context)


def _require_object(value: Any, context: str) -> dict:
    if not isinstance(value, dict):
        raise InvalidMetadataError(f"{context} must be an object, got {value!r}")
    return value


def _require_list(value: Any, context: str) -> list:
    if not isinstance(value, list):
        raise InvalidMetadataError(f"{context} must be a list, got {value!r}")
    return value


def parse_voiceover(data: dict) -> VoiceoverInfo:
    """Parse an ``attachments.intro`` entry."""
    if not isinstance(data, dict) or not isinstance(data.get("path"), str):
        raise InvalidMetadataError(f"Voiceover entry needs a 'path': {data!r}")

    path = data["path"]
    offset = _optional_number(data, "offset", path)
    return VoiceoverInfo(
        path=path,
        duration=_require_number(data, "duration", path),
        offset=offset if offset is not None else 0.0,
        audible_duration=_optional_number(data, "audibleDuration", path),
    )


def _parse_dj_markers(entries: Any, path: str) -> tuple[DJMarker, ...]:
    dj_markers = []
    for marker in _require_list(entries, f"{path}: markers.dj"):
        marker = _require_object(marker, f"{path}: DJ marker")
        if marker.get("value") not in DJ_MARKER_VALUES:
            logger.warning(f"{path}: ignoring unknown DJ marker {marker.get('value')!r}")
            continue
        offset = _require_number(marker, "offset", f"{path}: DJ marker")
        dj_markers.append(DJMarker(offset=offset, value=marker["value"]))
    return tuple(dj_markers)


def _parse_track_markers(entries: Any, path: str) -> tuple[TrackMarker, ...]:
    track_markers = []
    for marker in _require_list(entries, f"{path}: markers.track"):
        marker = _require_object(marker, f"{path}: track marker")
        track_markers.append(
            TrackMarker(
                offset=_require_number(marker, "offset", f"{path}: track marker"),
                title=marker.get("title"),
                artist=marker.get("artist"),
            )
        )
    return tuple(track_markers)


def parse_segment_info(data: dict, shared: bool = False) -> SegmentInfo:
    """Parse one file-group entry into a ``SegmentInfo``.

    Args:
        data: Entry from a ``fileGroups`` (or common pool) list
        shared: True for entries from radio.json's common pool

    Raises:
        InvalidMetadataError: If required fields are missing or malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("path"), str):
        raise InvalidMetadataError(f"Segment entry needs a 'path': {data!r}")

    path = data["path"]
    duration = _require_number(data, "duration", path)
    audible = _optional_number(data, "audibleDuration", path)

    category = data.get("category")
    if category is not None:
        try:
            category = Category(category)
        except ValueError as e:
            raise InvalidMetadataError(f"{path}: unknown category {category!r}") from e

    attachments = _require_object(data.get("attachments") or {}, f"{path}: attachments")
    markers = _require_object(data.get("markers") or {}, f"{path}: markers")
    intros = _require_list(attachments.get("intro", []), f"{path}: attachments.intro")

    return SegmentInfo(
        path=path,
        duration=duration,
        category=category,
        audible_duration=audible,
        intro_voiceovers=tuple(parse_voiceover(v) for v in intros),
        track_markers=_parse_track_markers(markers.get("track", []), path),
        dj_markers=_parse_dj_markers(markers.get("dj", []), path),
        shared=shared,
    )


def parse_radio_metadata(document: Any) -> RadioMetadata:
    """Parse a ``radio.json`` document."""
    if not isinstance(document, dict):
        raise InvalidMetadataError("radio.json must be an object")

    common = {}
    for key, entries in (document.get("common") or {}).items():
        if not isinstance(entries, list):
            logger.debug(f"Skipping non-list common entry '{key}'")
            continue
        common[key] = tuple(parse_segment_info(e, shared=True) for e in entries)

    station_paths = []
    for station in document.get("stations", []):
        if not isinstance(station, dict) or not isinstance(station.get("path"), str):
            raise InvalidMetadataError(f"Station entry needs a 'path': {station!r}")
        station_paths.append(station["path"])

    return RadioMetadata(common=common, station_paths=tuple(station_paths))


def parse_station_metadata(
    document: Any,
    common: Optional[dict[str, tuple[SegmentInfo, ...]]] = None,
) -> StationMetadata:
    """Parse a ``station.json`` document.

    The station's ``common.adverts`` ids are looked up in ``common`` (the
    shared pools from radio.json) and prepended to its own ``adverts`` group.

    Args:
        document: Decoded station.json
        common: Shared pools keyed by id

    Raises:
        InvalidMetadataError: If the document lacks ``fileGroups.track``
    """
    if not isinstance(document, dict):
        raise InvalidMetadataError("station.json must be an object")

    station_type = document.get("type", DEFAULT_STATION_TYPE)
    if station_type not in STATION_TYPES:
        logger.warning(
            f"Unknown station type {station_type!r}, using '{DEFAULT_STATION_TYPE}'"
        )
        station_type = DEFAULT_STATION_TYPE

    info_data = document.get("info") or {}
    info = StationInfo(
        title=info_data.get("title", ""),
        genre=info_data.get("genre", ""),
        dj=info_data.get("dj", ""),
        icons=dict(info_data.get("icon") or {}),
    )

    groups_data = document.get("fileGroups")
    if not isinstance(groups_data, dict) or "track" not in groups_data:
        raise InvalidMetadataError("station.json requires fileGroups.track")

    file_groups: dict[str, tuple[SegmentInfo, ...]] = {}
    for list_id, entries in groups_data.items():
        if not isinstance(entries, list):
            raise InvalidMetadataError(f"fileGroups.{list_id} must be a list")
        file_groups[list_id] = tuple(parse_segment_info(e) for e in entries)

    common_adverts = tuple((document.get("common") or {}).get("adverts", []))
    if common_adverts:
        shared: list[SegmentInfo] = []
        for pool_id in common_adverts:
            pool = (common or {}).get(pool_id)
            if pool is None:
                logger.warning(f"Common advert pool '{pool_id}' not found in radio.json")
                continue
            shared.extend(pool)
        file_groups["adverts"] = tuple(shared) + file_groups.get("adverts", ())

    return StationMetadata(
        type=station_type,
        info=info,
        file_groups=file_groups,
        common_adverts=common_adverts,
    )


def load_radio_meta(data_config: DataConfig) -> tuple[RadioMetadata, str]:
    """Load radio.json, preferring the local data folder over the remote one.

    Args:
        data_config: Local and remote data locations

    Returns:
        Tuple of (parsed metadata, data path the document came from)

    Raises:
        MetadataLoadError: If neither location provides radio.json
    """
    local_path = _as_folder(data_config.local_path)
    try:
        document = fetch_json(local_path + "radio.json", data_config.request_timeout)
        return parse_radio_metadata(document), local_path
    except MetadataLoadError as local_error:
        logger.warning(f"Local radio meta not found, trying remote... ({local_error})")

    remote_path = _as_folder(data_config.remote_path)
    try:
        document = fetch_json(remote_path + "radio.json", data_config.request_timeout)
    except MetadataLoadError as remote_error:
        logger.error(f"Failed to load radio meta from both sources: {remote_error}")
        raise

    logger.info(f"Using remote radio metadata from {remote_path}")
    return parse_radio_metadata(document), remote_path


def load_station_sources(data_config: DataConfig) -> list["StationSource"]:
    """Create a ``StationSource`` for every station listed in radio.json."""
    radio_meta, data_path = load_radio_meta(data_config)
    return [
        StationSource(
            path,
            data_path,
            common=radio_meta.common,
            timeout=data_config.request_timeout,
        )
        for path in radio_meta.station_paths
    ]


def _as_folder(path: str) -> str:
    return path if path.endswith("/") else path + "/"


class StationSource:
    """Where a station lives and its (lazily loaded) metadata.

    Args:
        path: Station folder relative to the data path
        data_path: Local folder or base URL holding the station folders
        meta: Already parsed metadata (skips loading)
        common: Shared pools from radio.json
        timeout: Request timeout for remote metadata
    """

    def __init__(
        self,
        path: str,
        data_path: str,
        meta: Optional[StationMetadata] = None,
        common: Optional[dict[str, tuple[SegmentInfo, ...]]] = None,
        timeout: float = 10.0,
    ):
        self.path = path.strip("/")
        self.data_path = _as_folder(data_path)
        self.meta = meta
        self.common = common or {}
        self.timeout = timeout

    def load_meta(self) -> StationMetadata:
        """Load and parse station.json once.

        Raises:
            MetadataLoadError: If station.json cannot be fetched
            InvalidMetadataError: If station.json is malformed
        """
        if self.meta is None:
            location = self.get_absolute_path("station.json")
            try:
                document = fetch_json(location, self.timeout)
            except MetadataLoadError:
                logger.error(f'Failed to load "{self.path}" metadata from {location}')
                raise
            self.meta = parse_station_metadata(document, self.common)
            logger.debug(f"Loaded metadata for '{self.path}' ({self.meta.type})")
        return self.meta

    def create_station(self, config: Optional[SchedulerConfig] = None) -> "RadioStation":
        """Create the station variant declared by the metadata ``type``."""
        from .stations import create_station

        self.load_meta()
        return create_station(self, config)

    def get_absolute_path(self, relative_path: str) -> str:
        return f"{self.data_path}{self.path}/{relative_path}"

    def resolve_object_path(self, info: PathInfo) -> PathInfo:
        """Copy of ``info`` with its path made absolute.

        Entries from the common pool resolve against the data root rather
        than the station folder.
        """
        if isinstance(info, SegmentInfo) and info.shared:
            return info.with_path(self.data_path + info.path)
        return info.with_path(self.get_absolute_path(info.path))

    def get_icon(self, icon_type: str) -> Optional[str]:
        if self.meta is None:
            return None
        icon = self.meta.info.icons.get(icon_type)
        if icon:
            return self.get_absolute_path(icon)
        return None

    def get_preferred_icon(self, icon_type: str) -> Optional[str]:
        """Icon of ``icon_type``, or the closest alternative that exists."""
        icon = self.get_icon(icon_type)
        if icon:
            return icon

        for alternative in ICON_PRIORITY:
            if alternative == icon_type:
                continue
            icon = self.get_icon(alternative)
            if icon:
                return icon
        return None

    @property
    def title(self) -> str:
        if self.meta and self.meta.info.title:
            return self.meta.info.title
        return self.path

    def __repr__(self) -> str:
        return f"StationSource(path={self.path!r}, data_path={self.data_path!r})"

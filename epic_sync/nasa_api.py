"""
NASA EPIC API client.
Lists the observation dates published by the EPIC catalog (or a local
mirror of it), fetches per-date image manifests, and builds archive
URLs for the natural-color PNGs taken by DSCOVR's EPIC camera.
"""

import json
import requests
from datetime import datetime
from urllib.parse import urlencode

from epic_sync.config import Settings
from epic_sync.errors import ParseError, TimeParseError, TransportError
from epic_sync.models import ImageRecord, InvalidRecord


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_dates(content: bytes | str) -> list[str]:
    """
    Parse a date-list document shaped like ``[{"date": "2015-06-13"}, ...]``.

    Returns
    -------
    list[str]
        The dates in document order.

    Raises
    ------
    ParseError
        If the body is not JSON or is not a list of ``{"date": str}`` objects.
    """
    data = _load_json(content)
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array of dates, got {type(data).__name__}")

    dates = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict) or not isinstance(entry.get("date"), str):
            raise ParseError(f"Date entry {i} is not an object with a string 'date': {entry!r}")
        dates.append(entry["date"])
    return dates


def parse_manifest(content: bytes | str) -> list[ImageRecord]:
    """Parse a per-date manifest into ImageRecords, preserving order.

    Raises ParseError on the first invalid entry; see
    `parse_manifest_entries` for a per-entry variant.
    """
    entries = parse_manifest_entries(content)
    for entry in entries:
        if isinstance(entry, InvalidRecord):
            raise entry.error
    return entries


def parse_manifest_entries(content: bytes | str) -> list[ImageRecord | InvalidRecord]:
    """
    Parse a per-date manifest entry by entry.

    A body that is not a JSON array raises ParseError. An entry that does
    not parse is returned in place as an InvalidRecord, so the valid
    entries around it are still usable.
    """
    data = _load_json(content)
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array of images, got {type(data).__name__}")

    entries = []
    for i, raw in enumerate(data):
        where = f"image[{i}]"
        try:
            entries.append(ImageRecord.from_dict(raw, where))
        except ParseError as e:
            name = raw.get("image") if isinstance(raw, dict) else None
            entries.append(InvalidRecord(name=name if isinstance(name, str) and name else where, error=e))
    return entries


def _load_json(content: bytes | str):
    try:
        return json.loads(content)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Response is not valid JSON: {e}") from e


def archive_path(record: ImageRecord) -> str:
    """
    Archive path for a single EPIC image, without host or credentials.

    The archive URL pattern is:
        /archive/natural/{YYYY}/{MM}/{DD}/png/{image_name}.png

    Month and day are zero-padded, matching the live archive layout.
    """
    try:
        dt = datetime.strptime(record.date, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise TimeParseError(
            f"Image {record.image}: bad capture timestamp {record.date!r}"
        ) from e
    return f"/archive/natural/{dt.year}/{dt.month:02d}/{dt.day:02d}/png/{record.image}.png"


class EpicClient:
    """
    Thin client over the EPIC JSON endpoints.

    The credential, base URLs and timeout come from *settings*; nothing
    is read from the environment here.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.settings = settings
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # -- transport --

    def _get(self, url: str, params: dict | None = None) -> bytes:
        try:
            response = self.session.get(url, params=params, timeout=self.settings.request_timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"GET {url} failed with HTTP {status}", url, status) from e
        except requests.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}", url) from e
        return response.content

    def _key_params(self) -> dict:
        return {"api_key": self.settings.api_key}

    # -- dates --

    def available_dates(self, url: str, params: dict | None = None) -> list[str]:
        """Fetch and parse a date-list document from *url*."""
        return parse_dates(self._get(url, params))

    def remote_dates(self) -> list[str]:
        """Dates published by the catalog."""
        dates = self.available_dates(
            f"{self.settings.catalog_url}/api/natural/all", self._key_params()
        )
        print(f"[NASA] Catalog lists {len(dates)} dates")
        return dates

    def local_dates(self) -> list[str]:
        """Dates already present on the local mirror."""
        dates = self.available_dates(f"{self.settings.mirror_url}/all.json")
        print(f"[NASA] Mirror lists {len(dates)} dates")
        return dates

    # -- manifests --

    def images_for_date(self, date: str) -> list[ImageRecord]:
        """Fetch the image manifest for one observation date."""
        url = f"{self.settings.catalog_url}/api/natural/date/{date}"
        images = parse_manifest(self._get(url, self._key_params()))
        print(f"[NASA] Found {len(images)} images for {date}")
        return images

    def manifest_entries(self, date: str) -> list[ImageRecord | InvalidRecord]:
        """Like `images_for_date`, but invalid entries come back as InvalidRecord."""
        url = f"{self.settings.catalog_url}/api/natural/date/{date}"
        entries = parse_manifest_entries(self._get(url, self._key_params()))
        bad = sum(1 for e in entries if isinstance(e, InvalidRecord))
        print(f"[NASA] Found {len(entries)} images for {date}" + (f" ({bad} invalid)" if bad else ""))
        return entries

    # -- archive --

    def image_url(self, record: ImageRecord) -> str:
        """Full download URL (including api_key) for *record*'s PNG."""
        return (
            f"{self.settings.catalog_url}{archive_path(record)}"
            f"?{urlencode(self._key_params())}"
        )

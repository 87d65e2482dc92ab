"""
Data models for EPIC manifest records and sync results.

The EPIC API repeats every geometry block twice: once at the top level
of an image record and once inside a nested "coords" object. Both copies
are parsed through the same `Geometry` structure and re-emitted in both
positions by `ImageRecord.to_dict`.
"""

from dataclasses import dataclass, field
from pathlib import Path

from epic_sync.errors import ParseError


def _number(block: dict, key: str, where: str) -> float:
    value = block.get(key) if isinstance(block, dict) else None
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"{where}.{key}: expected a number, got {value!r}")
    return float(value)


def _string(block: dict, key: str, where: str) -> str:
    value = block.get(key)
    if not isinstance(value, str):
        raise ParseError(f"{where}.{key}: expected a string, got {value!r}")
    return value


def is_plain_filename(name: str) -> bool:
    """True if *name* is a single path component (no separators, not "." or "..")."""
    if not name or name in (".", ".."):
        return False
    return Path(name).name == name and "/" not in name and "\\" not in name


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float

    @classmethod
    def from_dict(cls, data: dict, where: str) -> "Coordinates":
        return cls(lat=_number(data, "lat", where), lon=_number(data, "lon", where))


@dataclass(frozen=True)
class Position:
    """J2000 position vector in kilometres."""
    x: float
    y: float
    z: float

    @classmethod
    def from_dict(cls, data: dict, where: str) -> "Position":
        return cls(
            x=_number(data, "x", where),
            y=_number(data, "y", where),
            z=_number(data, "z", where),
        )


@dataclass(frozen=True)
class Quaternion:
    q0: float
    q1: float
    q2: float
    q3: float

    @classmethod
    def from_dict(cls, data: dict, where: str) -> "Quaternion":
        return cls(
            q0=_number(data, "q0", where),
            q1=_number(data, "q1", where),
            q2=_number(data, "q2", where),
            q3=_number(data, "q3", where),
        )


@dataclass(frozen=True)
class Geometry:
    """Spacecraft, Moon and Sun geometry at capture time."""
    centroid_coordinates: Coordinates
    dscovr_j2000_position: Position
    lunar_j2000_position: Position
    sun_j2000_position: Position
    attitude_quaternions: Quaternion

    @classmethod
    def from_dict(cls, data: dict, where: str = "record") -> "Geometry":
        """
        Parse the five geometry blocks from *data*.

        Raises
        ------
        ParseError
            If a block is missing or holds a non-numeric component.
        """
        if not isinstance(data, dict):
            raise ParseError(f"{where}: expected an object, got {type(data).__name__}")

        def block(key: str) -> dict:
            value = data.get(key)
            if not isinstance(value, dict):
                raise ParseError(f"{where}.{key}: missing or not an object")
            return value

        return cls(
            centroid_coordinates=Coordinates.from_dict(
                block("centroid_coordinates"), f"{where}.centroid_coordinates"),
            dscovr_j2000_position=Position.from_dict(
                block("dscovr_j2000_position"), f"{where}.dscovr_j2000_position"),
            lunar_j2000_position=Position.from_dict(
                block("lunar_j2000_position"), f"{where}.lunar_j2000_position"),
            sun_j2000_position=Position.from_dict(
                block("sun_j2000_position"), f"{where}.sun_j2000_position"),
            attitude_quaternions=Quaternion.from_dict(
                block("attitude_quaternions"), f"{where}.attitude_quaternions"),
        )

    def to_dict(self) -> dict:
        c = self.centroid_coordinates
        q = self.attitude_quaternions

        def pos(p: Position) -> dict:
            return {"x": p.x, "y": p.y, "z": p.z}

        return {
            "centroid_coordinates": {"lat": c.lat, "lon": c.lon},
            "dscovr_j2000_position": pos(self.dscovr_j2000_position),
            "lunar_j2000_position": pos(self.lunar_j2000_position),
            "sun_j2000_position": pos(self.sun_j2000_position),
            "attitude_quaternions": {"q0": q.q0, "q1": q.q1, "q2": q.q2, "q3": q.q3},
        }


@dataclass(frozen=True)
class ImageRecord:
    """One entry of a per-date EPIC manifest."""
    identifier: str
    caption: str
    image: str
    version: str
    date: str
    geometry: Geometry
    coords: Geometry

    @classmethod
    def from_dict(cls, data: dict, where: str = "record") -> "ImageRecord":
        if not isinstance(data, dict):
            raise ParseError(f"{where}: expected an object, got {type(data).__name__}")
        image = _string(data, "image", where)
        if not is_plain_filename(image):
            raise ParseError(f"{where}.image: not a plain file name: {image!r}")
        return cls(
            identifier=_string(data, "identifier", where),
            caption=_string(data, "caption", where),
            image=image,
            version=_string(data, "version", where),
            date=_string(data, "date", where),
            geometry=Geometry.from_dict(data, where),
            coords=Geometry.from_dict(data.get("coords"), f"{where}.coords"),
        )

    def to_dict(self) -> dict:
        """Rebuild the upstream wire shape, geometry at top level and under "coords"."""
        out = {
            "identifier": self.identifier,
            "caption": self.caption,
            "image": self.image,
            "version": self.version,
        }
        out.update(self.geometry.to_dict())
        out["date"] = self.date
        out["coords"] = self.coords.to_dict()
        return out


@dataclass(frozen=True)
class InvalidRecord:
    """Manifest entry that failed to parse; *name* is a best-effort label."""
    name: str
    error: ParseError


# -- Sync results --

@dataclass
class DownloadResult:
    name: str
    url: str
    path: Path | None = None
    thumbnail: Path | None = None
    skipped: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DateResult:
    date: str
    images: list[DownloadResult] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(r.ok for r in self.images)


@dataclass
class SyncReport:
    """Outcome of one sync run."""
    remote_count: int = 0
    local_count: int = 0
    missing: list[str] = field(default_factory=list)
    dates: list[DateResult] = field(default_factory=list)

    @property
    def downloaded(self) -> list[DownloadResult]:
        return [r for d in self.dates for r in d.images if r.ok and not r.skipped]

    @property
    def skipped(self) -> list[DownloadResult]:
        return [r for d in self.dates for r in d.images if r.skipped]

    @property
    def failures(self) -> list[tuple[str, Exception]]:
        """(label, error) for every failed date or image."""
        out = []
        for d in self.dates:
            if d.error is not None:
                out.append((d.date, d.error))
            for r in d.images:
                if r.error is not None:
                    out.append((f"{d.date} {r.name}", r.error))
        return out

    @property
    def ok(self) -> bool:
        return not self.failures

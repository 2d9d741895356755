"""Location privacy fuzzer.

Maps a seller's precise coordinates to a public point that is:
  - within the fuzzing level's radius band of the precise point
    (distance <= band.max_km, and >= band.min_km whenever the region allows)
  - inside the same named region as the precise point
  - labelled with the locality/region it falls in, never left unlabelled

The perturbation is drawn from an injectable random source, so there is no
way back from the public point to the precise one beyond the band radius.
Pure: no I/O, no shared state.
"""

import math
import random
from dataclasses import dataclass

from config.settings import settings
from src.lm_common.enums import FuzzingLevel
from src.lm_common.errors import InvalidCoordinatesError, InvalidPrivacyLevelError
from src.lm_geo.domain.gazetteer import (
    DEFAULT_GAZETTEER,
    UNKNOWN_LOCALITY,
    Gazetteer,
    Locality,
)
from src.lm_geo.domain.geodesy import (
    destination_point,
    haversine_km,
    initial_bearing,
    validate_coordinates,
)

MAX_ATTEMPTS = 8
PUBLIC_DECIMALS = 4  # ~11 m grid


@dataclass(frozen=True)
class FuzzBand:
    min_km: float
    max_km: float

    def __post_init__(self) -> None:
        if not (0 <= self.min_km <= self.max_km):
            raise ValueError(f"Invalid fuzz band [{self.min_km}, {self.max_km}]")


@dataclass(frozen=True)
class FuzzedLocation:
    public_lat: float
    public_lng: float
    country: str
    region: str
    locality: str
    formatted_address: str
    level: FuzzingLevel


def default_bands() -> dict[FuzzingLevel, FuzzBand]:
    return {
        FuzzingLevel.LOW: FuzzBand(settings.FUZZ_LOW_MIN_KM, settings.FUZZ_LOW_MAX_KM),
        FuzzingLevel.MEDIUM: FuzzBand(settings.FUZZ_MEDIUM_MIN_KM, settings.FUZZ_MEDIUM_MAX_KM),
        FuzzingLevel.HIGH: FuzzBand(settings.FUZZ_HIGH_MIN_KM, settings.FUZZ_HIGH_MAX_KM),
    }


def parse_level(level: object) -> FuzzingLevel:
    if isinstance(level, FuzzingLevel):
        return level
    try:
        return FuzzingLevel(level)
    except ValueError:
        raise InvalidPrivacyLevelError(level) from None


def _check_coordinates(latitude: object, longitude: object) -> tuple[float, float]:
    if (
        isinstance(latitude, bool)
        or isinstance(longitude, bool)
        or not isinstance(latitude, (int, float))
        or not isinstance(longitude, (int, float))
    ):
        raise InvalidCoordinatesError(latitude, longitude)  # type: ignore[arg-type]
    lat, lng = float(latitude), float(longitude)
    if not validate_coordinates(lat, lng):
        raise InvalidCoordinatesError(lat, lng)
    return lat, lng


def _same_region(a: Locality, b: Locality) -> bool:
    return a.region == b.region and a.country == b.country


def fuzz_location(
    precise_lat: float,
    precise_lng: float,
    level: FuzzingLevel | str,
    rng: random.Random | None = None,
    gazetteer: Gazetteer | None = None,
    bands: dict[FuzzingLevel, FuzzBand] | None = None,
    snap_max_km: float | None = None,
) -> FuzzedLocation:
    """Produce the public location for a listing.

    Raises:
        InvalidCoordinatesError: lat outside [-90, 90] or lng outside [-180, 180].
        InvalidPrivacyLevelError: level is not low/medium/high.
    """
    lat, lng = _check_coordinates(precise_lat, precise_lng)
    fuzz_level = parse_level(level)
    band = (bands or default_bands())[fuzz_level]
    rng = rng or random.SystemRandom()
    gazetteer = gazetteer or DEFAULT_GAZETTEER
    snap_km = settings.GEO_SNAP_MAX_KM if snap_max_km is None else snap_max_km

    home = gazetteer.resolve(lat, lng, snap_km)

    public: tuple[float, float] | None = None
    label = home or UNKNOWN_LOCALITY
    for _ in range(MAX_ATTEMPTS):
        distance = rng.uniform(band.min_km, band.max_km)
        bearing = rng.uniform(0.0, 2 * math.pi)
        cand_lat, cand_lng = destination_point(lat, lng, distance, bearing)
        if home is None:
            public = (cand_lat, cand_lng)
            break
        cand_loc, _ = gazetteer.nearest(cand_lat, cand_lng)
        if _same_region(cand_loc, home):
            public = (cand_lat, cand_lng)
            label = cand_loc
            break

    if public is None:
        # Every sample crossed a region border: walk towards the home
        # locality's centre instead. Points on that path stay nearest to home.
        assert home is not None
        to_home_km = haversine_km(lat, lng, home.latitude, home.longitude)
        step = min(band.max_km, to_home_km)
        if step <= 0:
            public = (home.latitude, home.longitude)
        else:
            bearing = initial_bearing(lat, lng, home.latitude, home.longitude)
            public = destination_point(lat, lng, step, bearing)
        label = home

    return FuzzedLocation(
        public_lat=round(public[0], PUBLIC_DECIMALS),
        public_lng=round(public[1], PUBLIC_DECIMALS),
        country=label.country,
        region=label.region,
        locality=label.name,
        formatted_address=label.formatted_address if label is not UNKNOWN_LOCALITY else "Unknown location",
        level=fuzz_level,
    )

"""Locality lookup used to label and contain fuzzed points.

A point belongs to the locality whose centre is nearest (a Voronoi
partition over the gazetteer), and to that locality's region.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from src.lm_geo.domain.geodesy import haversine_km


@dataclass(frozen=True)
class Locality:
    name: str
    region: str
    country: str
    latitude: float
    longitude: float

    @property
    def formatted_address(self) -> str:
        return f"{self.name}, {self.region}, {self.country}"


UNKNOWN_LOCALITY = Locality(
    name="Unknown", region="Unknown", country="Unknown", latitude=0.0, longitude=0.0
)


class Gazetteer:
    def __init__(self, localities: Iterable[Locality]) -> None:
        self._localities: tuple[Locality, ...] = tuple(localities)
        if not self._localities:
            raise ValueError("Gazetteer needs at least one locality")

    def __len__(self) -> int:
        return len(self._localities)

    def nearest(self, latitude: float, longitude: float) -> tuple[Locality, float]:
        """Closest locality and its distance in km. Linear scan; the table is small."""
        best = self._localities[0]
        best_km = haversine_km(latitude, longitude, best.latitude, best.longitude)
        for loc in self._localities[1:]:
            d = haversine_km(latitude, longitude, loc.latitude, loc.longitude)
            if d < best_km:
                best, best_km = loc, d
        return best, best_km

    def resolve(
        self, latitude: float, longitude: float, max_km: float
    ) -> Locality | None:
        """Nearest locality, or None when the point is too far from all of them."""
        loc, d = self.nearest(latitude, longitude)
        return loc if d <= max_km else None


DEFAULT_LOCALITIES: tuple[Locality, ...] = (
    # Nigeria
    Locality("Lagos", "Lagos", "Nigeria", 6.5244, 3.3792),
    Locality("Ikeja", "Lagos", "Nigeria", 6.6018, 3.3515),
    Locality("Abeokuta", "Ogun", "Nigeria", 7.1475, 3.3619),
    Locality("Ibadan", "Oyo", "Nigeria", 7.3775, 3.9470),
    Locality("Ogbomosho", "Oyo", "Nigeria", 8.1335, 4.2407),
    Locality("Ilorin", "Kwara", "Nigeria", 8.4966, 4.5421),
    Locality("Benin City", "Edo", "Nigeria", 6.3350, 5.6037),
    Locality("Port Harcourt", "Rivers", "Nigeria", 4.8156, 7.0498),
    Locality("Enugu City", "Enugu", "Nigeria", 6.4584, 7.5464),
    Locality("Nsukka", "Enugu", "Nigeria", 6.8567, 7.3958),
    Locality("Makurdi", "Benue", "Nigeria", 7.7322, 8.5391),
    Locality("Abuja", "FCT", "Nigeria", 9.0579, 7.4951),
    Locality("Jos", "Plateau", "Nigeria", 9.8965, 8.8583),
    Locality("Kaduna City", "Kaduna", "Nigeria", 10.5105, 7.4165),
    Locality("Zaria", "Kaduna", "Nigeria", 11.0855, 7.7199),
    Locality("Kano City", "Kano", "Nigeria", 12.0022, 8.5919),
    Locality("Sokoto", "Sokoto", "Nigeria", 13.0059, 5.2476),
    Locality("Maiduguri", "Borno", "Nigeria", 11.8311, 13.1510),
    # Ghana
    Locality("Accra", "Greater Accra", "Ghana", 5.6037, -0.1870),
    Locality("Kumasi", "Ashanti", "Ghana", 6.6885, -1.6244),
    Locality("Tamale", "Northern", "Ghana", 9.4008, -0.8393),
    # Kenya
    Locality("Nairobi", "Nairobi", "Kenya", -1.2921, 36.8219),
    Locality("Nakuru", "Nakuru", "Kenya", -0.3031, 36.0800),
    Locality("Eldoret", "Uasin Gishu", "Kenya", 0.5143, 35.2698),
)

DEFAULT_GAZETTEER = Gazetteer(DEFAULT_LOCALITIES)

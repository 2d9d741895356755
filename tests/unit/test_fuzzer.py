"""Tests for lm_geo: geodesy helpers, gazetteer and the location fuzzer."""

import math
import random

import pytest

from src.lm_common.enums import FuzzingLevel
from src.lm_common.errors import InvalidCoordinatesError, InvalidPrivacyLevelError
from src.lm_geo.domain.fuzzer import FuzzBand, default_bands, fuzz_location, parse_level
from src.lm_geo.domain.gazetteer import DEFAULT_GAZETTEER, Gazetteer, Locality
from src.lm_geo.domain.geodesy import (
    bounding_box,
    destination_point,
    haversine_km,
    validate_coordinates,
)

IBADAN = (7.3775, 3.9470)
# Rounding the public point to 4 decimals moves it by at most ~8 m
ROUNDING_KM = 0.02


class TestGeodesy:
    def test_zero_distance(self) -> None:
        assert haversine_km(*IBADAN, *IBADAN) == 0.0

    def test_one_degree_latitude(self) -> None:
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.05)

    def test_destination_round_trip(self) -> None:
        lat, lng = destination_point(*IBADAN, 7.5, math.radians(60))
        assert haversine_km(*IBADAN, lat, lng) == pytest.approx(7.5, abs=1e-6)

    def test_destination_wraps_longitude(self) -> None:
        _, lng = destination_point(0.0, 179.99, 10.0, math.pi / 2)
        assert -180.0 <= lng < -179.0

    def test_bounding_box_contains_radius(self) -> None:
        min_lat, max_lat, min_lng, max_lng = bounding_box(*IBADAN, 20.0)
        for bearing in range(0, 360, 15):
            lat, lng = destination_point(*IBADAN, 20.0, math.radians(bearing))
            assert min_lat <= lat <= max_lat
            assert min_lng <= lng <= max_lng

    @pytest.mark.parametrize(
        "lat,lng,ok",
        [(0, 0, True), (90, 180, True), (-90, -180, True), (90.01, 0, False),
         (0, -180.5, False), (float("nan"), 0, False)],
    )
    def test_validate_coordinates(self, lat: float, lng: float, ok: bool) -> None:
        assert validate_coordinates(lat, lng) is ok


class TestGazetteer:
    def test_nearest_is_ibadan(self) -> None:
        loc, km = DEFAULT_GAZETTEER.nearest(*IBADAN)
        assert loc.name == "Ibadan"
        assert loc.region == "Oyo"
        assert km < 0.01

    def test_resolve_too_far_returns_none(self) -> None:
        # South Atlantic
        assert DEFAULT_GAZETTEER.resolve(-40.0, -30.0, 250.0) is None

    def test_empty_gazetteer_rejected(self) -> None:
        with pytest.raises(ValueError):
            Gazetteer([])

    def test_formatted_address(self) -> None:
        loc = Locality("Zaria", "Kaduna", "Nigeria", 11.0855, 7.7199)
        assert loc.formatted_address == "Zaria, Kaduna, Nigeria"


class TestLevels:
    def test_bands_ordered_low_to_high(self) -> None:
        bands = default_bands()
        assert bands[FuzzingLevel.LOW].max_km <= bands[FuzzingLevel.MEDIUM].max_km
        assert bands[FuzzingLevel.MEDIUM].max_km <= bands[FuzzingLevel.HIGH].max_km

    def test_parse_level_accepts_strings(self) -> None:
        assert parse_level("low") is FuzzingLevel.LOW

    def test_parse_level_rejects_unknown(self) -> None:
        with pytest.raises(InvalidPrivacyLevelError):
            parse_level("extreme")

    def test_band_validation(self) -> None:
        with pytest.raises(ValueError):
            FuzzBand(5.0, 2.0)


class TestFuzzLocation:
    @pytest.mark.parametrize("level", ["low", "medium", "high"])
    def test_public_point_inside_band(self, level: str) -> None:
        band = default_bands()[FuzzingLevel(level)]
        for seed in range(25):
            out = fuzz_location(*IBADAN, level, rng=random.Random(seed))
            d = haversine_km(*IBADAN, out.public_lat, out.public_lng)
            assert band.min_km - ROUNDING_KM <= d <= band.max_km + ROUNDING_KM

    @pytest.mark.parametrize("level", ["low", "medium", "high"])
    def test_stays_in_home_region(self, level: str) -> None:
        for seed in range(25):
            out = fuzz_location(*IBADAN, level, rng=random.Random(seed))
            assert out.region == "Oyo"
            assert out.country == "Nigeria"
            loc, _ = DEFAULT_GAZETTEER.nearest(out.public_lat, out.public_lng)
            assert loc.region == "Oyo"

    def test_deterministic_for_same_seed(self) -> None:
        a = fuzz_location(*IBADAN, "medium", rng=random.Random(7))
        b = fuzz_location(*IBADAN, "medium", rng=random.Random(7))
        assert a == b

    def test_output_is_labelled(self) -> None:
        out = fuzz_location(*IBADAN, FuzzingLevel.LOW, rng=random.Random(1))
        assert out.locality == "Ibadan"
        assert out.formatted_address == "Ibadan, Oyo, Nigeria"
        assert out.level is FuzzingLevel.LOW

    def test_public_point_is_rounded(self) -> None:
        out = fuzz_location(*IBADAN, "high", rng=random.Random(3))
        assert round(out.public_lat, 4) == out.public_lat
        assert round(out.public_lng, 4) == out.public_lng

    def test_falls_back_towards_home_when_every_sample_leaves_region(self) -> None:
        # Home locality ringed at 3 km by another region: every 5-15 km sample
        # lands nearer the ring than home.
        home = Locality("Home", "Inner", "Testland", 0.0, 0.0)
        ring = [
            Locality(f"Ring{i}", "Outer", "Testland",
                     0.027 * math.cos(math.radians(a)), 0.027 * math.sin(math.radians(a)))
            for i, a in enumerate(range(0, 360, 45))
        ]
        gazetteer = Gazetteer([home, *ring])
        precise = (0.001, 0.0)

        out = fuzz_location(*precise, "high", rng=random.Random(0), gazetteer=gazetteer)

        assert out.region == "Inner"
        assert out.locality == "Home"
        d = haversine_km(*precise, out.public_lat, out.public_lng)
        assert d <= default_bands()[FuzzingLevel.HIGH].max_km + ROUNDING_KM
        loc, _ = gazetteer.nearest(out.public_lat, out.public_lng)
        assert loc.region == "Inner"

    def test_far_from_every_locality_is_unknown(self) -> None:
        out = fuzz_location(-40.0, -30.0, "medium", rng=random.Random(5))
        assert out.region == "Unknown"
        assert out.formatted_address == "Unknown location"
        d = haversine_km(-40.0, -30.0, out.public_lat, out.public_lng)
        assert 2.0 - ROUNDING_KM <= d <= 5.0 + ROUNDING_KM

    @pytest.mark.parametrize(
        "lat,lng",
        [(90.5, 0.0), (-91, 0.0), (0.0, 180.1), (0.0, -181), (float("nan"), 3.0)],
    )
    def test_invalid_coordinates(self, lat: float, lng: float) -> None:
        with pytest.raises(InvalidCoordinatesError):
            fuzz_location(lat, lng, "low", rng=random.Random(0))

    def test_non_numeric_coordinates(self) -> None:
        with pytest.raises(InvalidCoordinatesError):
            fuzz_location("7.3", 3.9, "low")  # type: ignore[arg-type]
        with pytest.raises(InvalidCoordinatesError):
            fuzz_location(True, 3.9, "low")  # type: ignore[arg-type]

    def test_unknown_level(self) -> None:
        with pytest.raises(InvalidPrivacyLevelError):
            fuzz_location(*IBADAN, "extreme")

    def test_coordinates_checked_before_level(self) -> None:
        with pytest.raises(InvalidCoordinatesError):
            fuzz_location(100.0, 0.0, "extreme")

"""
Record Loader and Region Lookup tests (pytest compatible)

Run with:
    pytest tests/test_fetch.py -v
"""

import pytest
import requests

from simnet.fetch import (
    LoadResult,
    RecordLoader,
    RegionLookup,
    load_records,
    normalize_header,
    parse_region_features,
    sniff_delimiter,
)


OWID_CSV = (
    "Entity,Code,Year,Life expectancy (years)\n"
    "France,FRA,2000,79.2\n"
    "France,FRA,2001,79.3\n"
    "World,OWID_WRL,2000,67.5\n"
    "Africa,,2000,53.0\n"
    "Japan,JPN,2000,81.1\n"
    "Japan,JPN,abc,81.2\n"
    "Kenya,KEN,2000,\n"
)


# =============================================================================
# Headers and delimiters
# =============================================================================

class TestHeaders:

    @pytest.mark.parametrize("header,expected", [
        ("Entity,Code,Year,Value", ","),
        ("Entity;Code;Year;Value", ";"),
        ("Entity\tCode\tYear\tValue", "\t"),
        ("Entity", ","),
    ])
    def test_sniff_delimiter(self, header, expected):
        assert sniff_delimiter(header) == expected

    def test_normalize_header(self):
        assert normalize_header("\ufeffLife expectancy (years)") == "lifeexpectancyyears"
        assert normalize_header(" ISO-3 ") == "iso3"
        assert normalize_header(None) == ""


# =============================================================================
# Record loading
# =============================================================================

class TestRecordLoader:

    def test_owid_export(self):
        result = load_records(OWID_CSV)

        assert result.success
        assert result.delimiter == ","
        assert result.rows_read == 7
        assert result.rows_kept == 3
        assert [(r.entity_id, r.year, r.value) for r in result.records] == [
            ("FRA", 2000, 79.2),
            ("FRA", 2001, 79.3),
            ("JPN", 2000, 81.1),
        ]
        assert result.records[0].entity_name == "France"
        assert (result.first_year, result.last_year) == (2000, 2001)

    def test_semicolon_with_bom_and_thousands(self):
        text = "\ufeffCountry;ISO3;Year;Value\nFrance;fra;2000;1,079.5\n"
        result = RecordLoader().load_text(text)
        assert result.success
        assert result.delimiter == ";"
        record = result.records[0]
        assert record.entity_id == "FRA"
        assert record.value == pytest.approx(1079.5)

    def test_tab_delimited(self):
        text = "location\tcode\tyear\tlife_expectancy\nPeru\tPER\t2010\t74.1\n"
        result = RecordLoader().load_text(text)
        assert result.delimiter == "\t"
        assert result.records[0].entity_id == "PER"

    def test_fragment_fallback_column(self):
        text = "Entity,Code,Year,Period life expectancy at birth\nPeru,PER,2010,74.1\n"
        assert load_records(text).records[0].value == pytest.approx(74.1)

    def test_explicit_value_column(self):
        text = "Entity,Code,Year,GDP,Value\nPeru,PER,2010,100,74.1\n"
        result = RecordLoader(value_column="GDP").load_text(text)
        assert result.records[0].value == 100.0

    def test_missing_columns(self):
        result = load_records("Entity,Year,Value\nPeru,2010,74.1\n")
        assert not result.success
        assert "code" in result.error
        assert result.records == []

    def test_no_usable_rows(self):
        result = load_records("Entity,Code,Year,Value\nWorld,OWID_WRL,2010,70\n")
        assert not result.success
        assert result.rows_read == 1
        assert result.error == "No usable rows"

    def test_empty_input(self):
        result = RecordLoader().load_text("")
        assert not result.success

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "life.csv"
        path.write_text(OWID_CSV, encoding="utf-8")
        result = load_records(path)
        assert result.success
        assert result.source == str(path)
        assert "parsed rows=3/7" in result.summary()

    def test_missing_file(self, tmp_path):
        result = load_records(tmp_path / "nope.csv")
        assert not result.success
        assert "FAILED" in result.summary()

    def test_result_from_error(self):
        result = LoadResult.from_error("x.csv", "boom")
        assert not result.success and result.rows_kept == 0


# =============================================================================
# Region lookup
# =============================================================================

GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "properties": {"cca3": "FRA", "region": "Europe"}},
        {"type": "Feature", "properties": {"ISO_A3": "jpn", "continent": "Asia"}},
        {"type": "Feature", "properties": {"cca3": "ATA"}},
        {"type": "Feature", "properties": {"ISO_A3": "-99", "region": "Europe"}},
        {"type": "Feature"},
    ],
}


class FakeResponse:

    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def get(self, url, timeout=None):
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestRegions:

    def test_parse_region_features(self):
        regions = parse_region_features(GEOJSON)
        assert regions == {"FRA": "Europe", "JPN": "Asia", "ATA": "Other"}

    def test_parse_custom_default(self):
        assert parse_region_features(GEOJSON, default_category="Unknown")["ATA"] == "Unknown"

    def test_fetch_and_cache(self):
        session = FakeSession([FakeResponse(GEOJSON)])
        lookup = RegionLookup(session=session)
        assert lookup.fetch()["FRA"] == "Europe"
        assert lookup.fetch()["JPN"] == "Asia"
        assert session.calls == 1

    def test_failure_without_cache_is_empty(self):
        lookup = RegionLookup(session=FakeSession([requests.ConnectionError("offline")]))
        assert lookup.fetch() == {}

    def test_failure_falls_back_to_stale_cache(self):
        session = FakeSession([FakeResponse(GEOJSON), FakeResponse(None, status=503)])
        lookup = RegionLookup(session=session)
        first = lookup.fetch()
        assert lookup.fetch(force_refresh=True) == first
        assert session.calls == 2

    def test_invalid_json(self):
        class BadJson(FakeResponse):
            def json(self):
                raise ValueError("not json")

        lookup = RegionLookup(session=FakeSession([BadJson(None)]))
        assert lookup.fetch() == {}

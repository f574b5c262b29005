import gzip
from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
import requests
from shapely.geometry import box

NUTS_CRS = "EPSG:3035"

POPULATION_TSV = "\n".join(
    [
        "freq,unit,sex,age,geo\\TIME_PERIOD\t2017 \t2018 \t2019 ",
        "A,NR,T,TOTAL,DE111\t100 \t110 p\t120 ",
        "A,NR,T,TOTAL,DE112\t200 \t210 \t220 e",
        "A,NR,F,TOTAL,DE111\t50 \t55 \t60 ",
        "A,NR,T,Y_LT5,DE111\t5 \t6 \t7 ",
        "A,NR,T,TOTAL,DE11\t300 \t320 \t340 ",
        "A,NR,T,TOTAL,DE\t1000 \t1100 \t1200 ",
        "A,NR,T,TOTAL,AT111\t70 \t71 \t: ",
        "A,NR,T,TOTAL,EL301\t80 \t: c\t82 ",
    ]
) + "\n"


def _region(nuts_id: str, cntr_code: str, name: str, offset: int) -> dict:
    return {
        "NUTS_ID": nuts_id,
        "LEVL_CODE": 3,
        "CNTR_CODE": cntr_code,
        "NAME_LATN": name,
        "geometry": box(4_000_000 + offset * 1_000, 3_000_000, 4_000_500 + offset * 1_000, 3_000_500),
    }


@pytest.fixture
def nuts_regions() -> gpd.GeoDataFrame:
    """NUTS3 collection with several countries, in GISCO's attribute layout."""
    rows = [
        _region("DE111", "DE", "Stuttgart, Stadtkreis", 0),
        _region("DE112", "DE", "Böblingen", 1),
        _region("DE113", "DE", "Esslingen", 2),
        _region("AT111", "AT", "Mittelburgenland", 3),
        _region("EL301", "EL", "Voreios Tomeas Athinon", 4),
    ]
    return gpd.GeoDataFrame(rows, crs=NUTS_CRS)


@pytest.fixture
def population_table() -> pd.DataFrame:
    """Long-format table with mixed strata, code lengths, years and countries."""
    rows = []
    for geo, sex, age, year, value in [
        ("DE111", "T", "TOTAL", 2018, "110"),
        ("DE112", "T", "TOTAL", 2018, "210"),
        ("DE111", "T", "TOTAL", 2017, "100"),
        ("DE111", "F", "TOTAL", 2018, "55"),
        ("DE111", "T", "Y_LT5", 2018, "6"),
        ("DE11", "T", "TOTAL", 2018, "320"),
        ("DE1111", "T", "TOTAL", 2018, "1"),
        ("DE", "T", "TOTAL", 2018, "1100"),
        ("AT111", "T", "TOTAL", 2018, "71"),
    ]:
        rows.append(
            {
                "freq": "A",
                "unit": "NR",
                "sex": sex,
                "age": age,
                "geo": geo,
                "TIME_PERIOD": pd.Timestamp(year=year, month=1, day=1),
                "values": value,
                "flags": "",
            }
        )
    return pd.DataFrame(rows)


@pytest.fixture
def seeded_cache(tmp_path: Path, nuts_regions: gpd.GeoDataFrame) -> Path:
    """Cache directory pre-filled with a GISCO file and a Eurostat table."""
    cache_dir = tmp_path / "cache"
    gisco_dir = cache_dir / "gisco"
    gisco_dir.mkdir(parents=True)
    nuts_regions.to_file(gisco_dir / "NUTS_RG_01M_2016_3035_LEVL_3.geojson", driver="GeoJSON")

    eurostat_dir = cache_dir / "eurostat"
    eurostat_dir.mkdir(parents=True)
    (eurostat_dir / "demo_r_pjangrp3.tsv.gz").write_bytes(gzip.compress(POPULATION_TSV.encode("utf-8")))
    return cache_dir


@pytest.fixture
def no_network(monkeypatch):
    """Fail loudly if anything tries to reach a provider."""
    calls = []

    def _blocked(self, url, *args, **kwargs):
        calls.append(url)
        raise requests.ConnectionError(f"network disabled in tests: {url}")

    monkeypatch.setattr(requests.Session, "get", _blocked)
    return calls


class FakeResponse:
    def __init__(self, payload: bytes, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=8192):
        for start in range(0, len(self.payload), chunk_size):
            yield self.payload[start:start + chunk_size]


@pytest.fixture
def fake_get(monkeypatch):
    """Serve fixed payloads from requests.Session.get and record the URLs."""
    state = {"payload": b"", "status_code": 200, "calls": []}

    def _get(self, url, *args, **kwargs):
        state["calls"].append(url)
        return FakeResponse(state["payload"], state["status_code"])

    monkeypatch.setattr(requests.Session, "get", _get)
    return state


@pytest.fixture
def population_tsv() -> str:
    """Eurostat TSV export covering the population_table scenarios."""
    return POPULATION_TSV

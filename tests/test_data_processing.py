import logging

import numpy as np
import pandas as pd
import pytest

from nuts_population.errors import EmptyResultError, SchemaError, ValidationError
from nuts_population.utils.data_processing import (
    coerce_population_values,
    filter_population_stats,
    find_duplicate_regions,
    merge_population,
    select_country_regions,
    summarize_population,
)


# --- Geometry selection ---

def test_select_country_matches_country_attribute(nuts_regions):
    selected = select_country_regions(nuts_regions, "DE", 2016)

    assert selected["NUTS_ID"].tolist() == ["DE111", "DE112", "DE113"]
    assert list(selected.index) == [0, 1, 2]
    assert selected.crs == nuts_regions.crs


def test_select_country_does_not_prefix_match_region_ids(nuts_regions):
    # Greece is 'EL' in both attributes, but a CNTR_CODE mismatch must win
    regions = nuts_regions.copy()
    regions.loc[regions["NUTS_ID"] == "EL301", "CNTR_CODE"] = "GR"

    assert select_country_regions(regions, "GR", 2016)["NUTS_ID"].tolist() == ["EL301"]
    with pytest.raises(EmptyResultError):
        select_country_regions(regions, "EL", 2016)


def test_select_unknown_country_names_country_and_year(nuts_regions):
    with pytest.raises(EmptyResultError) as excinfo:
        select_country_regions(nuts_regions, "ZZ", 2016)

    assert "'ZZ'" in str(excinfo.value)
    assert "2016" in str(excinfo.value)


def test_select_requires_country_attribute(nuts_regions):
    with pytest.raises(SchemaError, match="CNTR_CODE"):
        select_country_regions(nuts_regions.drop(columns=["CNTR_CODE"]), "DE", 2016)


# --- Population filter ---

def test_filter_keeps_only_total_nuts3_rows_for_year_and_country(population_table):
    filtered = filter_population_stats(population_table, 2018, "DE")

    assert filtered["geo"].tolist() == ["DE111", "DE112"]
    assert (filtered["TIME_PERIOD"] == pd.Timestamp("2018-01-01")).all()
    assert set(filtered["sex"]) == {"T"}
    assert set(filtered["age"]) == {"TOTAL"}
    assert filtered["geo"].str.len().eq(5).all()


def test_filter_uses_requested_year(population_table):
    filtered = filter_population_stats(population_table, 2017, "DE")
    assert filtered["geo"].tolist() == ["DE111"]
    assert filtered["values"].tolist() == ["100"]


def test_filter_accepts_string_dates(population_table):
    table = population_table.assign(TIME_PERIOD=population_table["TIME_PERIOD"].dt.strftime("%Y-%m-%d"))
    assert filter_population_stats(table, 2018, "AT")["geo"].tolist() == ["AT111"]


def test_filter_empty_result_names_country_and_year(population_table):
    with pytest.raises(EmptyResultError) as excinfo:
        filter_population_stats(population_table, 2019, "DE")

    assert "'DE'" in str(excinfo.value)
    assert "2019" in str(excinfo.value)


@pytest.mark.parametrize("column", ["TIME_PERIOD", "geo", "sex", "age"])
def test_filter_requires_dimension_columns(population_table, column):
    with pytest.raises(SchemaError, match=column):
        filter_population_stats(population_table.drop(columns=[column]), 2018, "DE")


def test_filter_rejects_unparseable_time_period(population_table):
    table = population_table.assign(TIME_PERIOD="not-a-date")

    with pytest.raises(SchemaError, match="TIME_PERIOD"):
        filter_population_stats(table, 2018, "DE")


# --- Join ---

def test_merge_keeps_every_region(nuts_regions, population_table):
    regions = select_country_regions(nuts_regions, "DE", 2016)
    observations = filter_population_stats(population_table, 2018, "DE")

    merged = merge_population(regions, observations, "POP_2018")

    assert len(merged) == len(regions)
    assert merged["NUTS_ID"].tolist() == ["DE111", "DE112", "DE113"]
    assert merged["POP_2018"].dtype == np.float64
    assert merged["POP_2018"].tolist()[:2] == [110.0, 210.0]
    assert np.isnan(merged["POP_2018"].iloc[2])


def test_merge_adds_only_population_column(nuts_regions, population_table):
    regions = select_country_regions(nuts_regions, "DE", 2016)
    observations = filter_population_stats(population_table, 2018, "DE")

    merged = merge_population(regions, observations, "POP_2018")

    assert list(merged.columns) == list(regions.columns) + ["POP_2018"]
    assert merged.crs == regions.crs
    assert merged.geometry.name == regions.geometry.name
    assert merged.geometry.geom_equals(regions.geometry).all()


def test_merge_without_any_match_yields_missing_values(nuts_regions):
    observations = pd.DataFrame({"geo": ["FR101"], "values": ["5"]})

    merged = merge_population(nuts_regions, observations, "POP_2020")

    assert len(merged) == len(nuts_regions)
    assert merged["POP_2020"].isna().all()


def test_merge_duplicate_regions_keep_first_and_warn(nuts_regions, caplog):
    observations = pd.DataFrame({"geo": ["DE111", "DE111", "DE112"], "values": ["1", "2", "3"]})

    with caplog.at_level(logging.WARNING, logger="nuts_population.utils.data_processing"):
        merged = merge_population(nuts_regions, observations, "POP_2018")

    assert len(merged) == len(nuts_regions)
    assert merged.set_index("NUTS_ID").loc["DE111", "POP_2018"] == 1.0
    assert "DE111" in caplog.text


def test_find_duplicate_regions():
    observations = pd.DataFrame({"geo": ["B", "A", "B", "C", "A"]})
    assert find_duplicate_regions(observations) == ["A", "B"]


def test_merge_rejects_non_numeric_values(nuts_regions):
    observations = pd.DataFrame({"geo": ["DE111", "DE112"], "values": ["110", "n/a"]})

    with pytest.raises(ValidationError, match="DE112"):
        merge_population(nuts_regions, observations, "POP_2018")


def test_merge_treats_eurostat_markers_as_missing(nuts_regions):
    observations = pd.DataFrame({"geo": ["DE111", "DE112", "AT111"], "values": [":", None, " 71 "]})

    merged = merge_population(nuts_regions, observations, "POP_2018").set_index("NUTS_ID")

    assert np.isnan(merged.loc["DE111", "POP_2018"])
    assert np.isnan(merged.loc["DE112", "POP_2018"])
    assert merged.loc["AT111", "POP_2018"] == 71.0


def test_merge_requires_values_column(nuts_regions):
    observations = pd.DataFrame({"geo": ["DE111"], "OBS_VALUE": ["1"]})

    with pytest.raises(SchemaError, match="values"):
        merge_population(nuts_regions, observations, "POP_2018")


def test_merge_requires_region_id(nuts_regions):
    observations = pd.DataFrame({"geo": ["DE111"], "values": ["1"]})

    with pytest.raises(SchemaError, match="NUTS_ID"):
        merge_population(nuts_regions.drop(columns=["NUTS_ID"]), observations, "POP_2018")


def test_coerce_accepts_numeric_input():
    values = pd.Series([1, 2.5, np.nan])
    result = coerce_population_values(values, pd.Series(["A", "B", "C"]))
    assert result.tolist()[:2] == [1.0, 2.5]
    assert np.isnan(result.iloc[2])


def test_summarize_population(nuts_regions, population_table):
    regions = select_country_regions(nuts_regions, "DE", 2016)
    observations = filter_population_stats(population_table, 2018, "DE")
    merged = merge_population(regions, observations, "POP_2018")

    assert summarize_population(merged, "POP_2018") == {
        "regions": 3,
        "matched_regions": 2,
        "unmatched_regions": 1,
        "total_population": 320.0,
    }

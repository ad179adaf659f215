"""Unit tests for the age distribution report."""

from __future__ import annotations

import polars as pl
import pytest

from src.ingestion.distribution import (
    bucket_age_counts,
    compute_age_distribution,
    percentage,
    round_half_up,
)
from src.ingestion.models import AGE_BUCKETS, NormalizedRow


def _age_counts(ages: dict[int, int]) -> pl.DataFrame:
    return pl.DataFrame(
        {"age": list(ages.keys()), "cnt": list(ages.values())},
        schema={"age": pl.Int32, "cnt": pl.Int64},
    )


class TestRounding:
    """Tests for percentage rounding helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(12.5, 13), (12.4999, 12), (0.5, 1), (33.333, 33), (66.667, 67), (0.0, 0)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    def test_zero_total_gives_zero(self) -> None:
        assert percentage(0, 0) == 0

    def test_half_percent_rounds_up(self) -> None:
        assert percentage(1, 8) == 13


class TestBucketAgeCounts:
    """Tests for bucket_age_counts()."""

    def test_example_distribution(self) -> None:
        dist = bucket_age_counts(_age_counts({10: 3, 30: 1, 70: 1}))

        assert dist.total == 5
        assert dist.counts == {"<20": 3, "20-40": 1, "40-60": 0, ">60": 1}
        assert dist.percentages == {"<20": 60, "20-40": 20, "40-60": 0, ">60": 20}

    @pytest.mark.parametrize(
        ("age", "bucket"),
        [
            (0, "<20"),
            (19, "<20"),
            (20, "20-40"),
            (40, "20-40"),
            (41, "40-60"),
            (60, "40-60"),
            (61, ">60"),
            (120, ">60"),
        ],
    )
    def test_bucket_boundaries(self, age: int, bucket: str) -> None:
        dist = bucket_age_counts(_age_counts({age: 1}))

        assert dist.counts[bucket] == 1
        assert dist.percentages[bucket] == 100

    def test_empty_input_gives_all_zero(self) -> None:
        dist = bucket_age_counts(_age_counts({}))

        assert dist.total == 0
        assert dist.counts == dict.fromkeys(AGE_BUCKETS, 0)
        assert dist.percentages == dict.fromkeys(AGE_BUCKETS, 0)

    def test_independent_rounding_may_not_sum_to_100(self) -> None:
        dist = bucket_age_counts(_age_counts({10: 1, 30: 1, 50: 1}))

        assert dist.percentages == {"<20": 33, "20-40": 33, "40-60": 33, ">60": 0}
        assert sum(dist.percentages.values()) == 99

    def test_rounding_up_may_exceed_100(self) -> None:
        # 1/8 = 12.5% rounds up in two buckets
        dist = bucket_age_counts(_age_counts({10: 1, 30: 1, 50: 3, 70: 3}))

        assert dist.percentages == {"<20": 13, "20-40": 13, "40-60": 38, ">60": 38}
        assert sum(dist.percentages.values()) == 102

    def test_counts_across_ages_are_summed(self) -> None:
        dist = bucket_age_counts(_age_counts({21: 2, 35: 5, 40: 1}))

        assert dist.counts["20-40"] == 8
        assert dist.total == 8

    def test_summary_lists_every_bucket(self) -> None:
        summary = bucket_age_counts(_age_counts({10: 1})).summary()

        assert "< 20: 100%" in summary
        assert "20 to 40: 0%" in summary
        assert "40 to 60: 0%" in summary
        assert "> 60: 0%" in summary


class TestComputeAgeDistribution:
    """Tests for compute_age_distribution() against DuckDB."""

    def test_reads_persisted_rows(self, user_store) -> None:
        ages = [10, 10, 10, 30, 70]
        user_store.write_batch([NormalizedRow(f"U {i}", age) for i, age in enumerate(ages)])

        dist = compute_age_distribution(user_store)

        assert dist.total == 5
        assert dist.percentages == {"<20": 60, "20-40": 20, "40-60": 0, ">60": 20}

    def test_empty_table(self, user_store) -> None:
        dist = compute_age_distribution(user_store)

        assert dist.total == 0
        assert dist.percentages == dict.fromkeys(AGE_BUCKETS, 0)

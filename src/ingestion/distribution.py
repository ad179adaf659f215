"""Age distribution report over the persisted users."""

from __future__ import annotations

import logging
import math

import polars as pl

from src.ingestion.loader import UserStore
from src.ingestion.models import AGE_BUCKETS, AgeDistribution

logger = logging.getLogger("ingest_users")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def percentage(count: int, total: int) -> int:
    """Integer percentage of ``count`` in ``total``; 0 when total is 0."""
    if total == 0:
        return 0
    return round_half_up(count / total * 100)


def _bucket_expr() -> pl.Expr:
    age = pl.col("age")
    return (
        pl.when(age < 20).then(pl.lit("<20"))
        .when(age <= 40).then(pl.lit("20-40"))
        .when(age <= 60).then(pl.lit("40-60"))
        .otherwise(pl.lit(">60"))
        .alias("bucket")
    )


def bucket_age_counts(age_counts: pl.DataFrame) -> AgeDistribution:
    """Fold per-age counts into the four fixed buckets.

    Each percentage is rounded on its own; no correction is applied to
    force the total to 100.

    Args:
        age_counts: DataFrame with integer columns ``age`` and ``cnt``.

    Returns:
        AgeDistribution with totals, counts and percentages.
    """
    counts = dict.fromkeys(AGE_BUCKETS, 0)
    if not age_counts.is_empty():
        bucketed = (
            age_counts
            .with_columns(_bucket_expr())
            .group_by("bucket")
            .agg(pl.col("cnt").sum())
        )
        for bucket, cnt in bucketed.iter_rows():
            counts[bucket] = int(cnt)

    total = sum(counts.values())
    return AgeDistribution(
        total=total,
        counts=counts,
        percentages={bucket: percentage(counts[bucket], total) for bucket in AGE_BUCKETS},
    )


def compute_age_distribution(store: UserStore) -> AgeDistribution:
    """Query the store and compute the age distribution.

    Args:
        store: Persistence handle for the users table.

    Returns:
        AgeDistribution across every persisted user.
    """
    distribution = bucket_age_counts(store.fetch_age_counts())
    logger.info(
        "Age distribution over %d user(s): %s",
        distribution.total,
        distribution.percentages,
    )
    return distribution

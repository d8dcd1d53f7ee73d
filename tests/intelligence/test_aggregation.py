"""
Tests for monthly aggregation and yearly rollup.
"""

import pytest
from blocklog.core.errors import ConfigError, InvalidRecordError, ParseError
from blocklog.core.records import AggregateRow, Record, UserType
from blocklog.intelligence.aggregation import (
    BucketedAggregator,
    aggregate_monthly,
    group_by_bucket,
    parse_bucket,
    rollup_yearly,
)
from blocklog.intelligence.rules import build_registry


@pytest.fixture
def registry():
    return build_registry([("spam", "spam"), ("vandal", "vandal")])


def record(reason, bucket, user_type=UserType.REGISTERED):
    return Record(reason_text=reason, time_bucket=bucket, user_type=user_type)


class TestParseBucket:
    """Test bucket key validation."""

    def test_valid_buckets(self):
        """Test that YYYYMM keys are accepted."""
        assert parse_bucket("200601") == "200601"
        assert parse_bucket("201312") == "201312"

    @pytest.mark.parametrize("bucket", [
        "2006", "20060", "2006011", "200613", "200600", "2006-1", "abcdef", "", None, 200601,
        "200601\n", "\n200601", " 200601", "٢٠٠٦٠١",
    ])
    def test_malformed_buckets(self, bucket):
        """Test that anything other than YYYYMM is rejected."""
        with pytest.raises(ParseError) as exc_info:
            parse_bucket(bucket)

        assert exc_info.value.bucket == bucket

    def test_group_by_bucket_sorts_keys(self):
        """Test that groups come back in bucket order."""
        groups = group_by_bucket([record("a", "200702"), record("b", "200601"), record("c", "200702")])

        assert list(groups) == ["200601", "200702"]
        assert [r.reason_text for r in groups["200702"]] == ["a", "c"]


class TestAggregateMonthly:
    """Test per-month aggregation."""

    def test_rows_per_bucket(self, registry):
        """Test that each bucket yields rule, fallback and total rows."""
        records = [
            record("typical spam message", "200601"),
            record("vandalism happened", "200601"),
            record("other reason", "200601"),
            record("SPAM and vandalism", "200601"),
            record("vandal", "200602"),
        ]

        rows = aggregate_monthly(records, registry)

        assert rows == [
            AggregateRow("200601", "spam", 2),
            AggregateRow("200601", "vandal", 1),
            AggregateRow("200601", "misc", 1),
            AggregateRow("200601", "total", 4),
            AggregateRow("200602", "spam", 0),
            AggregateRow("200602", "vandal", 1),
            AggregateRow("200602", "misc", 0),
            AggregateRow("200602", "total", 1),
        ]

    def test_category_counts_sum_to_total(self, registry):
        """Test count conservation in every bucket."""
        records = [record(text, bucket)
                   for bucket in ("200601", "200602", "200703")
                   for text in ("spam", "vandal", "spam vandal", "x", "SPAM", "")]

        rows = aggregate_monthly(records, registry)

        for bucket in ("200601", "200602", "200703"):
            bucket_rows = [r for r in rows if r.bucket == bucket]
            total = next(r.count for r in bucket_rows if r.category == "total")
            assert sum(r.count for r in bucket_rows if r.category != "total") == total == 6

    def test_output_sorted_regardless_of_input_order(self, registry):
        """Test that output order does not depend on record order."""
        records = [record("spam", "200703"), record("vandal", "200601"), record("x", "200602")]

        forward = aggregate_monthly(records, registry)
        backward = aggregate_monthly(list(reversed(records)), registry)

        assert forward == backward
        assert [r.bucket for r in forward][::4] == ["200601", "200602", "200703"]

    def test_malformed_bucket_aborts_run(self, registry):
        """Test that one bad bucket fails the whole aggregation."""
        records = [record("spam", "200601"), record("vandal", "2006-02")]

        with pytest.raises(ParseError):
            aggregate_monthly(records, registry)

    def test_trailing_newline_bucket_aborts_run(self, registry):
        """Test that a key with a trailing newline is not a separate month."""
        records = [record("spam", "200601"), record("spam", "200601\n")]

        with pytest.raises(ParseError):
            aggregate_monthly(records, registry)

    def test_missing_reason_text_aborts_run(self, registry):
        """Test that a record without text fails the aggregation."""
        with pytest.raises(InvalidRecordError):
            aggregate_monthly([record(None, "200601")], registry)

    def test_empty_input(self, registry):
        """Test that no records produce no rows."""
        assert aggregate_monthly([], registry) == []

    def test_display_names_rename_categories(self, registry):
        """Test that display names change labels but not counts."""
        rows = aggregate_monthly(
            [record("spam", "200601")],
            registry,
            display_names={"vandal": "vandalism", "misc": "other"},
        )

        assert [r.category for r in rows] == ["spam", "vandalism", "other", "total"]
        assert [r.count for r in rows] == [1, 0, 0, 1]

    def test_custom_total_label(self, registry):
        """Test that the diagnostic total row can be renamed."""
        rows = aggregate_monthly([record("spam", "200601")], registry, total_label="all")

        assert rows[-1] == AggregateRow("200601", "all", 1)

    def test_thread_pool_matches_sequential(self, registry):
        """Test that parallel bucket classification gives the same table."""
        records = [record(text, f"20{year:02d}{month:02d}")
                   for year in range(6, 9)
                   for month in range(1, 13)
                   for text in ("spam", "vandal", "other", "spam vandal")]

        sequential = aggregate_monthly(records, registry)
        parallel = aggregate_monthly(records, registry, max_workers=4)

        assert parallel == sequential
        assert len(parallel) == 36 * 4


class TestBucketedAggregator:
    """Test aggregator configuration and statistics."""

    def test_total_label_collision_rejected(self, registry):
        """Test that the total label cannot reuse a category name."""
        with pytest.raises(ConfigError):
            BucketedAggregator(registry, total_label="spam")

    def test_display_names_must_stay_distinct(self, registry):
        """Test that two categories cannot be renamed to one name."""
        with pytest.raises(ConfigError):
            BucketedAggregator(registry, display_names={"vandal": "spam"})

    def test_categories(self, registry):
        """Test the per-bucket category order."""
        aggregator = BucketedAggregator(registry)

        assert aggregator.categories == ["spam", "vandal", "misc", "total"]

    def test_statistics(self, registry):
        """Test that statistics track runs, buckets and records."""
        aggregator = BucketedAggregator(registry)
        aggregator.aggregate_monthly([record("spam", "200601"), record("x", "200602")])

        stats = aggregator.get_statistics()

        assert stats["runs"] == 1
        assert stats["buckets_processed"] == 2
        assert stats["records_classified"] == 2
        assert stats["rules_loaded"] == 2

    def test_aggregate_by_user_type(self, registry):
        """Test that each kind of account is aggregated separately."""
        aggregator = BucketedAggregator(registry)
        records = [
            record("spam", "200601", UserType.REGISTERED),
            record("vandal", "200601", UserType.ANONYMOUS),
            record("vandal", "200602", UserType.ANONYMOUS),
        ]

        result = aggregator.aggregate_by_user_type(records)

        assert set(result) == {UserType.REGISTERED, UserType.ANONYMOUS}
        assert AggregateRow("200601", "spam", 1) in result[UserType.REGISTERED]
        assert {r.bucket for r in result[UserType.ANONYMOUS]} == {"200601", "200602"}
        assert {r.bucket for r in result[UserType.REGISTERED]} == {"200601"}

    def test_aggregate_by_user_type_keeps_every_record(self, registry):
        """Test that user types given as strings are counted, not dropped."""
        aggregator = BucketedAggregator(registry)
        records = [
            Record("spam", "200601", "registered"),
            Record("vandal", "200601", "anonymous"),
            Record("other", "200601", UserType.ANONYMOUS),
        ]

        result = aggregator.aggregate_by_user_type(records)

        totals = [r.count for rows in result.values() for r in rows if r.category == "total"]
        assert sum(totals) == len(records)
        assert AggregateRow("200601", "total", 2) in result[UserType.ANONYMOUS]

    def test_progress_bar_does_not_change_output(self, registry):
        """Test that enabling progress display leaves results unchanged."""
        records = [record("spam", "200601"), record("vandal", "200602")]

        quiet = BucketedAggregator(registry).aggregate_monthly(records)
        noisy = BucketedAggregator(registry, progress=True).aggregate_monthly(records)

        assert quiet == noisy


class TestRollupYearly:
    """Test yearly rollup from monthly rows."""

    def test_worked_rollup_scenario(self):
        """Test that yearly counts sum the monthly counts."""
        monthly = [
            AggregateRow("200601", "spam", 2),
            AggregateRow("200602", "spam", 3),
            AggregateRow("200601", "vandal", 1),
        ]

        yearly = rollup_yearly(monthly)

        assert AggregateRow("2006", "spam", 5) in yearly
        assert AggregateRow("2006", "vandal", 1) in yearly
        assert len(yearly) == 2

    def test_rollup_consistent_with_monthly(self, registry):
        """Test yearly sums against monthly rows from a real aggregation."""
        records = [record(text, bucket)
                   for bucket in ("200601", "200611", "200705")
                   for text in ("spam", "vandal", "other", "spam vandal", "x")]
        monthly = aggregate_monthly(records, registry)

        yearly = rollup_yearly(monthly)

        for row in yearly:
            expected = sum(m.count for m in monthly
                           if m.bucket[:4] == row.bucket and m.category == row.category)
            assert row.count == expected
        assert AggregateRow("2006", "total", 10) in yearly
        assert AggregateRow("2007", "total", 5) in yearly

    def test_rollup_keeps_category_order(self, registry):
        """Test that yearly rows follow the monthly category order."""
        monthly = aggregate_monthly([record("spam", "200612"), record("x", "200701")], registry)

        yearly = rollup_yearly(monthly)

        assert [(r.bucket, r.category) for r in yearly] == [
            ("2006", "spam"), ("2006", "vandal"), ("2006", "misc"), ("2006", "total"),
            ("2007", "spam"), ("2007", "vandal"), ("2007", "misc"), ("2007", "total"),
        ]

    def test_rollup_does_not_reclassify(self, registry, monkeypatch):
        """Test that the rollup never runs the classifier."""
        import blocklog.intelligence.aggregation as aggregation_module

        monthly = aggregate_monthly([record("spam", "200601")], registry)

        def fail(*args, **kwargs):
            raise AssertionError("classifier called during rollup")

        monkeypatch.setattr(aggregation_module, "classify_counts", fail)

        assert rollup_yearly(monthly)[0] == AggregateRow("2006", "spam", 1)

    def test_malformed_monthly_bucket(self):
        """Test that rollup rejects malformed monthly keys."""
        with pytest.raises(ParseError):
            rollup_yearly([AggregateRow("2006", "spam", 1)])

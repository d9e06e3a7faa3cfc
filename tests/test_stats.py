from slurp.scanner.stats import StatsAggregator
from slurp.util.types import Classification


def test_counters_start_at_zero():
    stats = StatsAggregator()
    assert stats.total == 0
    assert stats.summary() == "Stats: PUBLIC=0 FORBIDDEN=0 NOT_FOUND=0 RATE_LIMITED=0 GAVE_UP=0"


def test_links_keep_completion_order():
    stats = StatsAggregator()
    stats.record(Classification.PUBLIC, "b.s3.amazonaws.com")
    stats.record(Classification.PUBLIC, "a.s3.amazonaws.com")
    stats.record(Classification.FORBIDDEN, "c.s3.amazonaws.com")

    assert stats.count(Classification.PUBLIC) == 2
    assert stats.links(Classification.PUBLIC) == ["b.s3.amazonaws.com", "a.s3.amazonaws.com"]
    assert stats.to_dict()['FORBIDDEN'] == {'count': 1, 'links': ["c.s3.amazonaws.com"]}


def test_unknown_is_not_counted():
    stats = StatsAggregator()
    stats.record(Classification.UNKNOWN, "x.s3.amazonaws.com")
    assert stats.total == 0
    assert stats.count(Classification.UNKNOWN) == 0


def test_links_are_copies():
    stats = StatsAggregator()
    stats.record(Classification.NOT_FOUND, "x")
    stats.links(Classification.NOT_FOUND).append("y")
    assert stats.links(Classification.NOT_FOUND) == ["x"]


def test_report_lists_hits_after_summary():
    stats = StatsAggregator()
    stats.record(Classification.PUBLIC, "a.s3.amazonaws.com")
    stats.record(Classification.FORBIDDEN, "http://b.s3-eu-west-1.amazonaws.com/")
    stats.record(Classification.NOT_FOUND, "c.s3.amazonaws.com")

    assert stats.report() == [
        "Stats: PUBLIC=1 FORBIDDEN=1 NOT_FOUND=1 RATE_LIMITED=0 GAVE_UP=0",
        "  PUBLIC: http://a.s3.amazonaws.com",
        "  FORBIDDEN: http://b.s3-eu-west-1.amazonaws.com/",
    ]


def test_verbose_report_includes_misses_and_retries():
    stats = StatsAggregator()
    stats.record(Classification.NOT_FOUND, "c.s3.amazonaws.com")
    stats.record(Classification.RATE_LIMITED, "d.s3.amazonaws.com")

    lines = stats.report(verbose=True)
    assert "  NOT_FOUND: http://c.s3.amazonaws.com" in lines
    assert "  RATE_LIMITED: http://d.s3.amazonaws.com" in lines

from optic_measure.my_dataclasses.post_capture_models import EyeMetrics, Metrics
from optic_measure.post_capture.metrics_summary import (
    SummaryEntry,
    compact_display,
    compact_line,
    compact_summary_lines,
    format_mm,
    share_description,
    summary_entries,
)

METRICS = Metrics(
    right_eye=EyeMetrics(width=52.0, height=38.5, dnp=31.5, pupil_height=22.0),
    left_eye=EyeMetrics(width=52.5, height=38.0, dnp=32.0, pupil_height=21.5),
    bridge=18.0,
)


def test_format_mm():
    assert format_mm(31.5) == "31,5"
    assert format_mm(31.5, ".") == "31.5"
    assert format_mm(18) == "18,0"


def test_entries_order_and_pairs():
    entries = summary_entries(METRICS)
    assert [e.key for e in entries] == ["width", "height", "dnp", "pupil_height", "bridge"]
    assert all(e.has_pair for e in entries[:4])
    assert not entries[4].has_pair


def test_compact_display():
    assert compact_display(SummaryEntry("dnp", "DNP", 31.5, 32.0)) == "31,5 / 32,0"
    assert compact_display(SummaryEntry("dnp", "DNP", right_value=31.5)) == "31,5"
    assert compact_display(SummaryEntry("dnp", "DNP")) == "-"
    assert compact_line(SummaryEntry("bridge", "Bridge", single_value=18.0)) == "Bridge - 18,0"


def test_compact_summary_lines():
    assert compact_summary_lines(METRICS) == [
        "Horizontal - 52,0 / 52,5",
        "Vertical - 38,5 / 38,0",
        "DNP - 31,5 / 32,0",
        "Pupil height - 22,0 / 21,5",
        "Bridge - 18,0",
    ]


def test_share_description():
    text = share_description(METRICS, client_name="  Ana Souza ", order_number="A-17")
    lines = text.split("\n")
    assert lines[:3] == ["Client: Ana Souza", "Order: A-17", "Values in mm - R / L"]
    assert lines[3:] == compact_summary_lines(METRICS)


def test_share_description_without_client():
    text = share_description(METRICS, decimal_separator=".")
    assert text.startswith("Values in mm - R / L\nHorizontal - 52.0 / 52.5")

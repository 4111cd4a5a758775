"""Text rendering of Metrics for the result table and the shared summary."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from optic_measure.my_dataclasses.post_capture_models import Metrics


@dataclass(frozen=True)
class SummaryEntry:
    key: str
    title: str
    right_value: Optional[float] = None
    left_value: Optional[float] = None
    single_value: Optional[float] = None

    @property
    def has_pair(self) -> bool:
        return self.right_value is not None and self.left_value is not None


def format_mm(value: float, decimal_separator: str = ",") -> str:
    return f"{value:.1f}".replace(".", decimal_separator)


def summary_entries(metrics: Metrics) -> list[SummaryEntry]:
    r, l = metrics.right_eye, metrics.left_eye
    return [
        SummaryEntry("width", "Horizontal", r.width, l.width),
        SummaryEntry("height", "Vertical", r.height, l.height),
        SummaryEntry("dnp", "DNP", r.dnp, l.dnp),
        SummaryEntry("pupil_height", "Pupil height", r.pupil_height, l.pupil_height),
        SummaryEntry("bridge", "Bridge", single_value=metrics.bridge),
    ]


def compact_display(entry: SummaryEntry, decimal_separator: str = ",") -> str:
    if entry.single_value is not None:
        return format_mm(entry.single_value, decimal_separator)

    values = [format_mm(v, decimal_separator) for v in (entry.right_value, entry.left_value) if v is not None]
    return " / ".join(values) if values else "-"


def compact_line(entry: SummaryEntry, decimal_separator: str = ",") -> str:
    """e.g. 'DNP - 31,5 / 32,0' (right eye first)."""
    return f"{entry.title} - {compact_display(entry, decimal_separator)}"


def compact_summary_lines(metrics: Metrics, decimal_separator: str = ",") -> list[str]:
    return [compact_line(e, decimal_separator) for e in summary_entries(metrics)]


def share_description(metrics: Metrics, client_name: str = "", order_number: str = "",
                      decimal_separator: str = ",") -> str:
    lines = []
    name = client_name.strip()
    order = order_number.strip()
    if name:
        lines.append(f"Client: {name}")
    if order:
        lines.append(f"Order: {order}")
    lines.append("Values in mm - R / L")
    lines.extend(compact_summary_lines(metrics, decimal_separator))
    return "\n".join(lines)

"""Multi-page analytics report rendered with the reportlab canvas.

Layout works top-down with a running ``y`` cursor measured from the top edge
of the page.  Every block asks :meth:`PageCursor.ensure_space` for its height
before drawing, so tall blocks (bar charts) and short ones (single lines)
paginate the same way.
"""
from __future__ import annotations

import io
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas as pdf_canvas

from event_export.core.catalog import BundleDescriptor
from event_export.core.responses import RatingResponse, decode_response
from event_export.domain import Artifact, EventScope, SourceRecord

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40.0
BAR_GAP = 8.0
LABEL_CHARS = 10
ELLIPSIS = "…"
CHART_HEIGHT = 120.0
CHART_LABEL_SPACE = 14.0
CHART_VALUE_SPACE = 12.0
LINE_HEIGHT = 14.0
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
BAR_COLOUR = colors.HexColor("#10b981")


@dataclass(frozen=True, slots=True)
class Bar:
    label: str
    value: float
    x: float
    y: float
    width: float
    height: float


def truncate_label(label: str, limit: int = LABEL_CHARS) -> str:
    text = str(label)
    if len(text) <= limit:
        return text
    return text[: limit - 1] + ELLIPSIS


def layout_bars(
    labels: Sequence[str],
    values: Sequence[float],
    x: float,
    y: float,
    width: float,
    height: float,
    *,
    gap: float = BAR_GAP,
    label_chars: int = LABEL_CHARS,
) -> list[Bar]:
    """Place one bar per value along a baseline at ``y`` (PDF coordinates).

    Heights are scaled against ``max(1, max(values))`` so an all-zero series
    never divides by zero.
    """

    count = min(len(labels), len(values))
    if count == 0:
        return []
    max_value = max(1.0, max(float(value) for value in values[:count]))
    bar_width = max((width - gap * (count - 1)) / count, 1.0)
    bars: list[Bar] = []
    for index in range(count):
        value = float(values[index])
        bars.append(
            Bar(
                label=truncate_label(labels[index], label_chars),
                value=value,
                x=x + index * (bar_width + gap),
                y=y,
                width=bar_width,
                height=(max(value, 0.0) / max_value) * height,
            )
        )
    return bars


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


class PageCursor:
    """Tracks the vertical position on the current page and breaks pages."""

    def __init__(
        self,
        canvas: pdf_canvas.Canvas,
        *,
        page_width: float = PAGE_WIDTH,
        page_height: float = PAGE_HEIGHT,
        margin: float = MARGIN,
    ) -> None:
        self.canvas = canvas
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.y = margin
        self.page = 1

    @property
    def usable_width(self) -> float:
        return self.page_width - 2 * self.margin

    def pdf_y(self, offset: float = 0.0) -> float:
        """Convert the top-down cursor (plus ``offset``) to PDF coordinates."""

        return self.page_height - (self.y + offset)

    def ensure_space(self, height: float) -> bool:
        """Start a new page when ``height`` does not fit; return True if it did."""

        if self.y + height > self.page_height - self.margin:
            self.new_page()
            return True
        return False

    def new_page(self) -> None:
        self._draw_footer()
        self.canvas.showPage()
        self.page += 1
        self.y = self.margin

    def finish(self) -> None:
        self._draw_footer()
        self.canvas.save()

    def _draw_footer(self) -> None:
        self.canvas.setFont(FONT, 8)
        self.canvas.setFillColor(colors.grey)
        self.canvas.drawRightString(self.page_width - self.margin, self.margin / 2, f"Page {self.page}")
        self.canvas.setFillColor(colors.black)

    # ------------------------------------------------------------------
    # blocks
    # ------------------------------------------------------------------
    def heading(self, text: str, size: int = 16) -> None:
        height = size + 10
        self.ensure_space(height)
        self.canvas.setFont(FONT_BOLD, size)
        self.canvas.drawString(self.margin, self.pdf_y(size), text)
        self.y += height

    def paragraph(self, text: str, size: int = 10) -> None:
        for line in simpleSplit(str(text), FONT, size, self.usable_width) or [""]:
            self.ensure_space(LINE_HEIGHT)
            self.canvas.setFont(FONT, size)
            self.canvas.drawString(self.margin, self.pdf_y(size), line)
            self.y += LINE_HEIGHT

    def stat(self, label: str, value: Any) -> None:
        self.ensure_space(LINE_HEIGHT)
        self.canvas.setFont(FONT_BOLD, 10)
        self.canvas.drawString(self.margin, self.pdf_y(10), f"{label}:")
        self.canvas.setFont(FONT, 10)
        self.canvas.drawString(self.margin + 180, self.pdf_y(10), str(value))
        self.y += LINE_HEIGHT

    def spacer(self, height: float = 8.0) -> None:
        self.ensure_space(height)
        self.y += height

    def bar_chart(self, labels: Sequence[str], values: Sequence[float], *, height: float = CHART_HEIGHT) -> list[Bar]:
        if not labels:
            self.paragraph("No data available.")
            return []
        block = CHART_VALUE_SPACE + height + CHART_LABEL_SPACE
        self.ensure_space(block)
        baseline = self.pdf_y(CHART_VALUE_SPACE + height)
        bars = layout_bars(labels, values, self.margin, baseline, self.usable_width, height)
        draw_bar_chart(self.canvas, bars)
        self.y += block + 6
        return bars

    def chart_section(
        self, title: str, labels: Sequence[str], values: Sequence[float], *, size: int = 13, height: float = CHART_HEIGHT
    ) -> list[Bar]:
        """Draw a titled chart with the title on the same page as its bars."""

        body = CHART_VALUE_SPACE + height + CHART_LABEL_SPACE if labels else LINE_HEIGHT
        self.ensure_space(size + 10 + body)
        self.heading(title, size=size)
        return self.bar_chart(labels, values, height=height)


def draw_bar_chart(canvas: pdf_canvas.Canvas, bars: Iterable[Bar]) -> None:
    for bar in bars:
        canvas.setFillColor(BAR_COLOUR)
        if bar.height > 0:
            canvas.rect(bar.x, bar.y, bar.width, bar.height, stroke=0, fill=1)
        canvas.setFillColor(colors.black)
        canvas.setFont(FONT, 8)
        centre = bar.x + bar.width / 2
        canvas.drawCentredString(centre, bar.y + bar.height + 3, _format_number(bar.value))
        canvas.drawCentredString(centre, bar.y - 10, bar.label)


# ----------------------------------------------------------------------
# statistics
# ----------------------------------------------------------------------
@dataclass(slots=True)
class ReportStats:
    event_name: str
    totals: dict[str, int] = field(default_factory=dict)
    messages_per_day: dict[str, int] = field(default_factory=dict)
    guests_by_group: dict[str, int] = field(default_factory=dict)
    modules_by_type: dict[str, int] = field(default_factory=dict)
    responses_by_type: dict[str, int] = field(default_factory=dict)
    activity_by_action: dict[str, int] = field(default_factory=dict)
    top_participants: dict[str, int] = field(default_factory=dict)
    average_rating: float | None = None
    rating_count: int = 0
    announcement_titles: list[str] = field(default_factory=list)
    itinerary_lines: list[str] = field(default_factory=list)


SECTIONS = ("messages", "guests", "modules", "responses", "announcements", "itineraries", "activity")


def _rows(record: SourceRecord, key: str) -> list[dict[str, Any]]:
    value = record.get(key)
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


def _day(row: dict[str, Any]) -> str:
    stamp = row.get("created_at") or row.get("timestamp") or ""
    return str(stamp)[:10] or "unknown"


def compute_stats(record: SourceRecord, scope: EventScope) -> ReportStats:
    event = record.get("event") if isinstance(record.get("event"), dict) else {}
    stats = ReportStats(event_name=str(event.get("name") or scope.event_name or "event"))
    sections = {name: _rows(record, name) for name in SECTIONS}
    stats.totals = {name: len(rows) for name, rows in sections.items()}

    stats.messages_per_day = dict(sorted(Counter(_day(row) for row in sections["messages"]).items()))
    stats.top_participants = dict(
        Counter(
            str(row.get("sender_name") or row.get("sender_email") or "Unknown") for row in sections["messages"]
        ).most_common(8)
    )
    stats.guests_by_group = dict(
        Counter(str(row.get("group_name") or "Ungrouped") for row in sections["guests"]).most_common()
    )
    stats.modules_by_type = dict(
        Counter(str(row.get("module_type") or row.get("type") or "other") for row in sections["modules"]).most_common()
    )
    stats.activity_by_action = dict(
        Counter(str(row.get("action") or row.get("action_type") or "other") for row in sections["activity"]).most_common(8)
    )

    ratings: list[float] = []
    by_type: Counter[str] = Counter()
    for row in sections["responses"]:
        response = decode_response(row.get("module_type"), row.get("answer_text"))
        by_type[str(row.get("module_type") or response.kind)] += 1
        if isinstance(response, RatingResponse):
            ratings.append(float(response.rating))
    stats.responses_by_type = dict(by_type.most_common())
    stats.rating_count = len(ratings)
    if ratings:
        stats.average_rating = round(sum(ratings) / len(ratings), 2)

    stats.announcement_titles = [str(row.get("title") or "Untitled") for row in sections["announcements"][:10]]
    for row in sections["itineraries"]:
        when = " ".join(str(row.get(key)) for key in ("date", "start_time") if row.get(key))
        where = f" @ {row['location']}" if row.get("location") else ""
        stats.itinerary_lines.append(f"{row.get('title') or 'Untitled'}{' (' + when + ')' if when else ''}{where}")
    return stats


def _chart(cursor: PageCursor, title: str, series: dict[str, int]) -> None:
    cursor.chart_section(title, list(series.keys()), list(series.values()))


def render_report(stats: ReportStats, *, generated_on: date | None = None) -> bytes:
    buffer = io.BytesIO()
    canvas = pdf_canvas.Canvas(buffer, pagesize=A4)
    canvas.setTitle(f"{stats.event_name} - Full Data Export")
    cursor = PageCursor(canvas)

    cursor.heading(stats.event_name, size=22)
    cursor.paragraph("Full Data Export")
    cursor.paragraph(f"Generated on {(generated_on or date.today()).isoformat()}")
    cursor.spacer(16)

    cursor.heading("Key metrics")
    for name in SECTIONS:
        cursor.stat(name.capitalize(), stats.totals.get(name, 0))
    cursor.spacer()

    _chart(cursor, "Messages per day", stats.messages_per_day)
    _chart(cursor, "Top participants", stats.top_participants)

    cursor.heading("Guests")
    cursor.stat("Total guests", stats.totals.get("guests", 0))
    for group, count in stats.guests_by_group.items():
        cursor.stat(group, count)
    cursor.spacer()

    _chart(cursor, "Modules by type", stats.modules_by_type)

    _chart(cursor, "Responses by type", stats.responses_by_type)
    cursor.heading("Feedback insights", size=13)
    average = "n/a" if stats.average_rating is None else f"{stats.average_rating:.2f} / 5"
    cursor.stat("Average rating", average)
    cursor.stat("Ratings received", stats.rating_count)
    cursor.spacer()

    cursor.heading("Announcements")
    cursor.stat("Total announcements", stats.totals.get("announcements", 0))
    for title in stats.announcement_titles:
        cursor.paragraph(f"- {title}")
    cursor.spacer()

    cursor.heading("Itineraries")
    if not stats.itinerary_lines:
        cursor.paragraph("No itineraries.")
    for line in stats.itinerary_lines:
        cursor.paragraph(f"- {line}")
    cursor.spacer()

    _chart(cursor, "Activity by action", stats.activity_by_action)

    cursor.finish()
    return buffer.getvalue()


def encode_report(
    bundle: BundleDescriptor,
    records: Sequence[SourceRecord],
    scope: EventScope,
    *,
    filename: str | None = None,
    generated_on: date | None = None,
) -> Artifact:
    merged: SourceRecord = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        for key, value in record.items():
            if isinstance(value, list):
                merged.setdefault(key, []).extend(value)
            else:
                merged.setdefault(key, value)
    stats = compute_stats(merged, scope)
    return Artifact(
        content=render_report(stats, generated_on=generated_on),
        filename=filename or f"{bundle.id}.{bundle.extension}",
        media_type=bundle.media_type,
        output_kind=bundle.output_kind,
    )

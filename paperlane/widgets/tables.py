"""Reading anchor headings and data tables out of the rendered tree."""

import logging
import re
from collections.abc import Callable

from paperlane.models import LockPoint, MetricRow, TableData
from paperlane.render.markup import heading_label
from paperlane.tree import Node, is_tag

logger = logging.getLogger(__name__)

_DAYS_RE = re.compile(r"(\d+)\s*days?", re.IGNORECASE)
_MULT_RE = re.compile(r"(\d+(\.\d+)?)")


def find_heading(root: Node, tag: str, match: Callable[[str], bool]) -> Node | None:
    """First heading of ``tag`` whose lower-cased label satisfies ``match``."""
    for h in root.find_all(is_tag(tag)):
        if match(heading_label(h).lower()):
            return h
    return None


def find_next_table(anchor: Node | None) -> Node | None:
    """The next table after ``anchor`` before another h2/h3, if any."""
    n = anchor.next_element if anchor is not None else None
    while n is not None:
        if n.tag == "table":
            return n
        wrapped = n.find(is_tag("table")) if n.has_class("table-wrap") else None
        if wrapped is not None:
            return wrapped
        if n.tag in ("h2", "h3"):
            break
        n = n.next_element
    return None


def parse_table(table: Node) -> TableData:
    headers = []
    thead = table.find(is_tag("thead"))
    if thead is not None:
        headers = [th.text_content.strip() for th in thead.find_all(is_tag("th"))]
    rows = []
    tbody = table.find(is_tag("tbody"))
    if tbody is not None:
        for tr in tbody.find_all(is_tag("tr")):
            rows.append([c.text_content.strip() for c in tr.find_all(is_tag("td", "th"))])
    return TableData(headers=headers, rows=rows)


def parse_lock_points(table: Node) -> list[LockPoint]:
    """Rows shaped like ('N days', '<multiplier>'); unparseable rows are skipped."""
    points = []
    for row in parse_table(table).rows:
        d = _DAYS_RE.search(row[0] if row else "")
        m = _MULT_RE.search(row[1] if len(row) > 1 else "")
        if not d or not m:
            continue
        points.append(LockPoint(days=int(d.group(1)), mult=float(m.group(1))))
    return points


def parse_metric_rows(table: Node) -> list[MetricRow]:
    rows = []
    for row in parse_table(table).rows:
        cells = row + [""] * (3 - len(row))
        if cells[0] and cells[1] and cells[2]:
            rows.append(MetricRow(metric=cells[0], m6=cells[1], m12=cells[2]))
    return rows

"""PDF rendering for bills and daily sales reports."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..core import paths
from ..core.config_store import get_reports_dir
from ..utils.currency import format_amount
from .billing import Bill
from .reports import DailyReport

_FONT_NAME = "Helvetica"
_BOLD_FONT_NAME = "Helvetica-Bold"
_FONT_CANDIDATES = [
    "DejaVuSans.ttf",
    "dejavusans.ttf",
    "arial.ttf",
    "segoeui.ttf",
    "NotoSans-Regular.ttf",
]


def _font_search_paths() -> List[Path]:
    found: List[Path] = []
    if sys.platform.startswith("win"):
        windir = Path(os.environ.get("WINDIR", r"C:\\Windows"))
        found.append(windir / "Fonts")
    else:
        found.extend(
            [
                Path.home() / ".fonts",
                Path("/usr/share/fonts/truetype/dejavu"),
                Path("/usr/share/fonts"),
                Path("/usr/local/share/fonts"),
            ]
        )
    return [p for p in found if p.exists()]


def _register_font() -> None:
    global _FONT_NAME
    if "WaiterPOSFont" in pdfmetrics.getRegisteredFontNames():
        _FONT_NAME = "WaiterPOSFont"
        return

    for folder in _font_search_paths():
        for candidate in _FONT_CANDIDATES:
            path = folder / candidate
            if not path.exists():
                continue
            try:
                pdfmetrics.registerFont(TTFont("WaiterPOSFont", str(path)))
            except Exception:  # unreadable TTF, try the next one
                continue
            else:
                _FONT_NAME = "WaiterPOSFont"
                return


def _sanitize_filename(value: str) -> str:
    safe = [ch if ch.isalnum() or ch in "-_" else "-" for ch in value]
    return "".join(safe).strip("-") or "report"


def _line_height() -> float:
    return 14.0


def _receipt_dimensions(line_count: int) -> tuple[float, float]:
    width = 200  # 58mm roll
    base_height = 60
    height = max(base_height, base_height + line_count * _line_height())
    return width, height


def _format_bill_lines(bill: Bill) -> List[str]:
    ts = bill.timestamp.strftime("%Y-%m-%d %H:%M")
    lines = [
        f"Bill - Table {bill.table}",
        ts,
        "------------------------------",
    ]
    for line in bill.lines:
        lines.append(f"{line.item.name} x{line.quantity}")
        lines.append(f"   @ {format_amount(line.item.price)} = {format_amount(line.total)}")
    lines.extend(
        [
            "------------------------------",
            f"Total: {format_amount(bill.grand_total)}",
            "Thank You!",
        ]
    )
    return lines


class PrinterService:
    """Render bills and reports to PDF files under the reports folder."""

    __slots__ = ("output_dir",)

    def __init__(self, output_dir: Optional[Path] = None) -> None:
        configured = get_reports_dir()
        self.output_dir = Path(output_dir or configured or paths.REPORTS_DIR)
        _register_font()

    def _target(self, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / filename

    def render_bill(self, bill: Bill) -> Path:
        lines = _format_bill_lines(bill)
        target = self._target(f"Bill_{_sanitize_filename(str(bill.id))}_Table_{bill.table}.pdf")
        width, height = _receipt_dimensions(len(lines) + 2)
        canv = canvas.Canvas(str(target), pagesize=(width, height))
        canv.setTitle(f"Bill Table {bill.table}")
        canv.setAuthor("Waiter POS")
        canv.setFont(_FONT_NAME, 10)

        x = 10
        y = height - 18
        for line in lines:
            canv.drawString(x, y, line)
            y -= _line_height()
        canv.showPage()
        canv.save()
        return target

    def render_daily_report(self, report: DailyReport) -> Path:
        day_text = report.day.isoformat()
        target = self._target(f"Daily_Report_{day_text}.pdf")
        page_width, page_height = A4
        canv = canvas.Canvas(str(target), pagesize=A4)
        canv.setTitle(f"Daily Sales Report {day_text}")
        canv.setAuthor("Waiter POS")

        def top(offset_mm: float) -> float:
            return page_height - offset_mm * mm

        canv.setFont(_BOLD_FONT_NAME, 18)
        canv.drawCentredString(page_width / 2, top(15), "Daily Sales Report")
        canv.setFont(_FONT_NAME, 12)
        canv.drawCentredString(page_width / 2, top(23), report.day.strftime("%d %B %Y"))

        y = 35.0
        right = 180 * mm

        def new_page() -> float:
            canv.showPage()
            return 15.0

        for summary in report.tables:
            canv.setFont(_BOLD_FONT_NAME, 14)
            canv.drawString(15 * mm, top(y), f"Table {summary.table}")
            y += 7
            canv.setFont(_FONT_NAME, 10)
            for line in summary.lines:
                canv.drawString(20 * mm, top(y), f"{line.name} x{line.quantity}")
                canv.drawRightString(right, top(y), format_amount(line.total))
                y += 5
                if y > 270:
                    y = new_page()
                    canv.setFont(_FONT_NAME, 10)
            canv.setFont(_BOLD_FONT_NAME, 10)
            canv.drawString(20 * mm, top(y), "Subtotal:")
            canv.drawRightString(right, top(y), format_amount(summary.subtotal))
            y += 8
            if y > 260:
                y = new_page()

        y += 5
        canv.setFont(_BOLD_FONT_NAME, 14)
        canv.line(15 * mm, top(y), 195 * mm, top(y))
        y += 7
        canv.drawString(15 * mm, top(y), "GRAND TOTAL:")
        canv.drawRightString(right, top(y), format_amount(report.grand_total))
        canv.setFont(_FONT_NAME, 8)
        canv.drawString(15 * mm, 10 * mm, f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}")
        canv.showPage()
        canv.save()
        return target

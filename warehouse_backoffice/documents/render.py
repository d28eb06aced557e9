"""
HTML/PDF rendering of the document projections from ReportingRepo.

Templates live next to this module (documents/templates/<kind>.html) and are
rendered with Jinja2; PDFs are produced by WeasyPrint, imported only when a
PDF is actually written.
"""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
import logging

from jinja2 import Template

from ..constants import APP_NAME
from ..utils.helpers import fmt_money

_log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

DOCUMENT_KINDS = ("invoice", "delivery_order", "bast", "purchase")

# A4 with narrow margins
PDF_CSS = """
    @page {
        margin: 10mm;
        size: A4;
    }
    body {
        margin: 0 !important;
        padding: 0 !important;
    }
"""


def _money(value) -> str:
    if value is None or value == "":
        return ""
    return fmt_money(value if isinstance(value, Decimal) else Decimal(str(value)))


def _load_template(kind: str) -> Template:
    if kind not in DOCUMENT_KINDS:
        raise ValueError(f"Unknown document kind: {kind}. Allowed: {', '.join(DOCUMENT_KINDS)}")
    path = TEMPLATE_DIR / f"{kind}.html"
    with open(path, "r", encoding="utf-8") as f:
        template = Template(f.read(), autoescape=True)
    return template


def render_html(kind: str, projection: dict) -> str:
    """Render one document projection (a ReportingRepo dict) to HTML."""
    template = _load_template(kind)
    return template.render(doc=projection, app_name=APP_NAME, money=_money)


def write_pdf(html_content: str, path: Path | str) -> Path:
    """Write rendered HTML to a PDF file and return its path."""
    from weasyprint import CSS, HTML

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    HTML(string=html_content).write_pdf(str(target), stylesheets=[CSS(string=PDF_CSS)])
    _log.info("wrote %s", target)
    return target

from .render import DOCUMENT_KINDS, render_html, write_pdf

__all__ = ["DOCUMENT_KINDS", "render_html", "write_pdf"]

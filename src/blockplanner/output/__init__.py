"""Output generation for previews (PDF, debug text)."""

from blockplanner.output.debug_generator import DebugGenerator
from blockplanner.output.pdf_generator import PDFGenerator

__all__ = [
    "DebugGenerator",
    "PDFGenerator",
]

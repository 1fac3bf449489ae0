"""Document rendering."""

from .pdf import PDF_CONFIG, NewspaperPDFRenderer, PDFQuality, decode_data_uri, wrap_text

__all__ = [
    "PDF_CONFIG",
    "NewspaperPDFRenderer",
    "PDFQuality",
    "decode_data_uri",
    "wrap_text",
]

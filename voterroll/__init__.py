"""
Electoral roll digitizer.

Turns electoral roll PDFs into voter records (remote conversion, vision
model, OCR or digital text) and tracks poll status on election day.
"""

__version__ = "1.0.0"

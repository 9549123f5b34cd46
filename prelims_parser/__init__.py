"""
Prelims Question Paper Parser
=============================
Deterministic PDF import for UPSC prelims question papers and answer keys.

Architecture:
    - Text Extractor: Positioned text fragments from PDF bytes (PyMuPDF)
    - Layout Reconstructor: Lines and two-column reading order
    - Question Segmenter: Question / option / explanation boundaries
    - Bilingual Normalizer: Strips the Hindi duplicate of English text
    - Answer-Key Matcher: Aligns a separate key PDF by question number
    - Record Builder: Final question records flagged for review

Version: 1.0.0
"""

__version__ = "1.0.0"

"""
Layout Reconstructor
====================
Reassembles positioned text fragments into logical lines, detecting
two-column question papers.

Printed exam convention: a two-column page is read top-to-bottom in the
left column, then top-to-bottom in the right column.
"""

from __future__ import annotations

import logging
import re
from itertools import groupby
from statistics import median
from typing import Iterable

from .models import Line, TextFragment

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class LayoutReconstructor:
    """
    Groups fragments into horizontal bands, then splits bands into columns.

    Args:
        line_tolerance: Fraction of the smaller font size within which two
            vertical centres count as the same line.
        column_gap: Minimum horizontal gap (points) that separates two
            column clusters inside a band.
        min_column_lines: Number of split bands required before a page is
            treated as two-column.
        max_crossing_ratio: Share of fragments allowed to straddle the
            column divider on a two-column page.
    """

    def __init__(
        self,
        line_tolerance: float = 0.5,
        column_gap: float = 40.0,
        min_column_lines: int = 2,
        max_crossing_ratio: float = 0.1,
    ):
        self.line_tolerance = line_tolerance
        self.column_gap = column_gap
        self.min_column_lines = min_column_lines
        self.max_crossing_ratio = max_crossing_ratio

    def reconstruct_document(
        self, fragments: Iterable[TextFragment]
    ) -> list[Line]:
        """Reconstruct lines for every page, concatenated in page order."""
        ordered = sorted(fragments, key=lambda f: f.page)  # stable
        lines: list[Line] = []
        for page_num, page_fragments in groupby(ordered, key=lambda f: f.page):
            page_lines = self.reconstruct(list(page_fragments))
            logger.debug(f"Page {page_num}: {len(page_lines)} lines")
            lines.extend(page_lines)
        return lines

    def reconstruct(self, fragments: list[TextFragment]) -> list[Line]:
        """Reconstruct the ordered lines of a single page."""
        if not fragments:
            return []

        bands = self._group_bands(fragments)
        divider = self._find_column_divider(bands, fragments)

        if divider is None:
            return self._bands_to_lines(bands, column=0)

        logger.debug(
            f"Page {fragments[0].page}: two-column layout "
            f"(divider at x={divider:.1f})"
        )
        left = [f for f in fragments if f.x < divider]
        right = [f for f in fragments if f.x >= divider]
        return (
            self._bands_to_lines(self._group_bands(left), column=0)
            + self._bands_to_lines(self._group_bands(right), column=1)
        )

    # ─── Band grouping ────────────────────────────────────────────────────

    def _group_bands(
        self, fragments: list[TextFragment]
    ) -> list[list[TextFragment]]:
        """Group fragments whose vertical centres fall within tolerance."""
        bands: list[list[TextFragment]] = []
        band_center = 0.0
        band_min_size = 0.0

        for frag in sorted(fragments, key=lambda f: (f.center_y, f.x)):
            if bands:
                tolerance = self.line_tolerance * min(
                    band_min_size, frag.font_size
                )
                if abs(frag.center_y - band_center) < tolerance:
                    band = bands[-1]
                    band.append(frag)
                    band_center += (frag.center_y - band_center) / len(band)
                    band_min_size = min(band_min_size, frag.font_size)
                    continue

            bands.append([frag])
            band_center = frag.center_y
            band_min_size = frag.font_size

        for band in bands:
            band.sort(key=lambda f: f.x)
        return bands

    def _split_clusters(
        self, band: list[TextFragment]
    ) -> list[list[TextFragment]]:
        """Split an x-sorted band wherever the gap exceeds column_gap."""
        clusters = [[band[0]]]
        for prev, frag in zip(band, band[1:]):
            if frag.x - prev.right > self.column_gap:
                clusters.append([frag])
            else:
                clusters[-1].append(frag)
        return clusters

    # ─── Column detection ─────────────────────────────────────────────────

    def _find_column_divider(
        self,
        bands: list[list[TextFragment]],
        fragments: list[TextFragment],
    ) -> float | None:
        """Return the x of the column divider, or None for one column."""
        candidates: list[float] = []
        for band in bands:
            clusters = self._split_clusters(band)
            if len(clusters) < 2:
                continue
            # Midpoint of the widest gap in the band
            best = max(
                zip(clusters, clusters[1:]),
                key=lambda pair: pair[1][0].x - pair[0][-1].right,
            )
            gap_start = max(f.right for f in best[0])
            candidates.append((gap_start + best[1][0].x) / 2)

        if len(candidates) < self.min_column_lines:
            return None

        divider = median(candidates)
        crossing = sum(1 for f in fragments if f.x < divider < f.right)
        if crossing > self.max_crossing_ratio * len(fragments):
            return None

        return divider

    # ─── Line assembly ────────────────────────────────────────────────────

    def _bands_to_lines(
        self, bands: list[list[TextFragment]], column: int
    ) -> list[Line]:
        lines = [self._make_line(band, column) for band in bands if band]
        lines.sort(key=lambda line: line.y_position)
        return lines

    def _make_line(self, band: list[TextFragment], column: int) -> Line:
        parts: list[str] = []
        prev = None
        for frag in band:
            if prev is not None and not (
                prev.content[-1:].isspace() or frag.content[:1].isspace()
            ):
                # Abutting spans are one word split by a style change
                if frag.x - prev.right >= 0.15 * frag.font_size:
                    parts.append(" ")
            parts.append(frag.content)
            prev = frag

        text = _WHITESPACE.sub(" ", "".join(parts)).strip()
        return Line(
            page=band[0].page,
            column=column,
            fragments=tuple(band),
            text=text,
            y_position=min(f.y for f in band),
        )

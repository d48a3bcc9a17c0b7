"""
Row reconstruction from positioned glyph runs.

Glyphs arrive in content-stream order with no table structure. Rows are
inferred from baseline proximity, then each row is rendered left to right
with spacing estimated from the horizontal gaps between glyphs.
"""
import json
import logging
import math
from typing import List, Optional, Sequence

from config import ProcessorConfig, RenderOptions
from schema import FormattedRow, GlyphRun, TextEffects

logger = logging.getLogger(__name__)

ROTATED_MARKER = ' [ROTATED] '
FLIPPED_MARKER = ' [FLIPPED] '


def group_rows(glyphs: Sequence[GlyphRun], tolerance: float = 2.0) -> List[List[GlyphRun]]:
    """
    Cluster a glyph stream into rows in a single pass.

    A glyph joins the open row when its baseline is within ``tolerance`` of
    the last glyph added to that row, so a row may drift gradually across
    small steps. Row order follows the first glyph of each row.

    Args:
        glyphs: Glyph runs in stream order
        tolerance: Maximum vertical distance to the previous glyph

    Returns:
        List of rows, each a list of glyph runs in stream order
    """
    rows: List[List[GlyphRun]] = []
    current_row: List[GlyphRun] = []

    for glyph in glyphs:
        if not current_row:
            current_row.append(glyph)
        elif abs(glyph.y - current_row[-1].y) < tolerance:
            current_row.append(glyph)
        else:
            rows.append(current_row)
            current_row = [glyph]

    if current_row:
        rows.append(current_row)

    return rows


def analyze_text_effects(glyph: GlyphRun, config: Optional[ProcessorConfig] = None) -> TextEffects:
    """Infer italic/bold/rotation from a glyph's affine transform."""
    config = config or ProcessorConfig()
    scale_x, skew_x, skew_y, scale_y, translate_x, translate_y = glyph.transform

    return TextEffects(
        is_italic=abs(skew_x) > config.skew_threshold,
        is_rotated=abs(skew_y) > config.skew_threshold,
        is_bold=abs(scale_x) > abs(scale_y) * config.bold_ratio,
        is_stretched=abs(scale_x) != abs(scale_y),
        is_flipped=scale_x < 0 or scale_y < 0,
        font_size=abs(scale_y),
        rotation_degrees=math.degrees(math.atan2(skew_y, scale_y)),
        x=translate_x,
        y=translate_y,
    )


def style_tag(effects: Sequence[TextEffects]) -> str:
    """Coarse font classification for a row; bold and italic may come from different glyphs."""
    has_bold = any(e.is_bold for e in effects)
    has_italic = any(e.is_italic for e in effects)

    if has_bold and has_italic:
        return 'bold-italic'
    if has_bold:
        return 'bold'
    if has_italic:
        return 'italic'
    if any(e.is_rotated for e in effects):
        return 'rotated'
    return 'unknown'


class RowFormatter:
    """Renders grouped glyph rows into text with inferred spacing."""

    def __init__(self, config: Optional[ProcessorConfig] = None):
        self.config = config or ProcessorConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    def format_rows(self, rows: Sequence[Sequence[GlyphRun]]) -> List[FormattedRow]:
        """
        Convert grouped rows into formatted rows.

        Args:
            rows: Output of group_rows

        Returns:
            One FormattedRow per input row, in the same order
        """
        formatted = [self.format_row(row) for row in rows]
        self.logger.debug(f"Formatted {len(formatted)} rows")
        return formatted

    def format_row(self, row: Sequence[GlyphRun]) -> FormattedRow:
        """
        Render one row left to right with inferred spacing and markers.

        Glyph extents use GlyphRun.advance: the width reported by the
        decoder, or the horizontal scale (transform[0]) when the decoder
        reported none. Gaps and the row width are both measured with it.
        """
        if not row:
            return FormattedRow()

        # Grouping keeps stream order; rendering needs visual order
        sorted_row = sorted(row, key=lambda glyph: glyph.x)
        effects = [analyze_text_effects(glyph, self.config) for glyph in sorted_row]

        parts: List[str] = []
        for i, (glyph, current) in enumerate(zip(sorted_row, effects)):
            if i > 0:
                previous_glyph = sorted_row[i - 1]
                previous = effects[i - 1]
                gap = glyph.x - (previous_glyph.x + previous_glyph.advance)
                parts.append(self._spacing(gap, current))

                if current.is_rotated and not previous.is_rotated:
                    parts.append(ROTATED_MARKER)
                if current.is_flipped:
                    parts.append(FLIPPED_MARKER)

            parts.append(glyph.text)

        min_x = min(glyph.x for glyph in sorted_row)
        max_x = max(glyph.x + glyph.advance for glyph in sorted_row)

        return FormattedRow(
            text=''.join(parts).strip(),
            x=min_x,
            y=sum(glyph.y for glyph in sorted_row) / len(sorted_row),
            width=max_x - min_x,
            height=max(glyph.height for glyph in sorted_row),
            font_size=max(e.font_size for e in effects),
            font_name=style_tag(effects),
            items=sorted_row,
        )

    def _spacing(self, gap: float, effects: TextEffects) -> str:
        """Spaces standing in for a horizontal gap, scaled by the glyph's font size."""
        base_space_width = effects.font_size * self.config.space_width_factor
        if effects.is_italic:
            base_space_width *= self.config.italic_space_factor
        if effects.is_bold or effects.is_stretched:
            base_space_width *= self.config.bold_space_factor

        if base_space_width <= 0:
            # Any positive gap next to a zero-size glyph is an unbounded number of spaces
            return ' ' * self.config.max_spaces if gap > 0 else ''

        spaces_to_add = max(0, math.floor(gap / base_space_width))
        if spaces_to_add > 0:
            return ' ' * min(spaces_to_add, self.config.max_spaces)
        if gap > base_space_width * self.config.min_gap_ratio:
            return ' '
        return ''


def rows_to_json(rows: Sequence[FormattedRow]) -> str:
    """Serialize one page's rows as a self-contained JSON array."""
    return json.dumps([row.model_dump(mode='json', by_alias=True) for row in rows])


def render_page(page, options: Optional[RenderOptions] = None,
                config: Optional[ProcessorConfig] = None) -> str:
    """
    Per-page rendering hook: glyphs -> rows -> formatted rows -> JSON array.

    Each call only serializes its own page; concatenating the outputs of all
    pages is left to the caller.

    Args:
        page: Object exposing get_text_content(options) -> List[GlyphRun]
        options: Decoder options; defaults to config.render_options
        config: Heuristic constants

    Returns:
        JSON array of this page's formatted rows
    """
    config = config or ProcessorConfig()
    options = options or config.render_options

    glyphs = page.get_text_content(options)
    rows = group_rows(glyphs, config.row_tolerance)
    formatted = RowFormatter(config).format_rows(rows)
    logger.debug(f"Rendered page with {len(glyphs)} glyphs into {len(formatted)} rows")
    return rows_to_json(formatted)

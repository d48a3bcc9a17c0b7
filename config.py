"""
Configuration for the statement text extractor.

All layout heuristics are named here together with their magic constants.
They are approximations tuned for text-based bank statements and are not
meant to be a precise layout algorithm.
"""
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
ENV_PREFIX = 'STATEMENT_'


class RenderOptions(BaseModel):
    """Options handed to the page decoder when glyphs are requested."""
    normalize_whitespace: bool = Field(False, description="Collapse whitespace runs inside glyph text")
    disable_combine_text_items: bool = Field(False, description="Do not merge adjacent glyphs into runs")


class ProcessorConfig(BaseModel):
    """Heuristic constants and decoder options for the whole pipeline."""
    # Row grouping
    row_tolerance: float = Field(2.0, gt=0, description="Max baseline drift between consecutive glyphs of a row")

    # Text effects
    skew_threshold: float = Field(0.1, ge=0, description="Skew magnitude above which text is italic/rotated")
    bold_ratio: float = Field(1.2, gt=0, description="scaleX/scaleY ratio above which text is bold")

    # Inter-glyph spacing
    space_width_factor: float = Field(0.25, gt=0, description="Space width as a fraction of font size")
    italic_space_factor: float = Field(1.1, gt=0)
    bold_space_factor: float = Field(1.05, gt=0)
    max_spaces: int = Field(15, ge=1, description="Cap on repeated spaces between two glyphs")
    min_gap_ratio: float = Field(0.3, ge=0, description="Gap (in space widths) that still earns one space")

    # Matrix building
    column_split_spaces: int = Field(3, ge=1, description="Space run length that separates two columns")
    column_width: float = Field(100.0, gt=0, description="Width of each synthetic column bound")

    # Decoding
    render_options: RenderOptions = Field(default_factory=RenderOptions)
    text_page_separator: str = Field('\n', description="Separator between pages of plain extracted text")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> 'ProcessorConfig':
        """
        Build a configuration from STATEMENT_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            ProcessorConfig with overrides applied
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            if name == 'render_options':
                continue
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value

        render_overrides = {}
        for name in RenderOptions.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                render_overrides[name] = value
        if render_overrides:
            overrides['render_options'] = RenderOptions(**render_overrides)

        return cls(**overrides)


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure root logging for command line use."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # pdfminer is very chatty about malformed fonts
    logging.getLogger('pdfminer').setLevel(logging.ERROR)

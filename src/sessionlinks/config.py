"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass

from sessionlinks.container.mozlz4 import DEFAULT_MAX_RATIO
from sessionlinks.render.formats import FormatInfo
from sessionlinks.session.groups import DEFAULT_NAME_TEMPLATE


@dataclass(slots=True)
class AppConfig:
    max_expansion_ratio: int = DEFAULT_MAX_RATIO
    default_format: str = "pdf"
    fallback_to_all_open: bool = True
    window_name_template: str = DEFAULT_NAME_TEMPLATE
    pdf_paper_size: str = "a4"

    def __post_init__(self) -> None:
        if self.max_expansion_ratio < 1:
            raise ValueError("max_expansion_ratio must be at least 1")

    def output_format(self) -> FormatInfo:
        return FormatInfo.parse(self.default_format)

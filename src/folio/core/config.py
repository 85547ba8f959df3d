# ABOUTME: Rendering configuration consumed by the pagination engine.
# ABOUTME: Immutable and validated; any change forces a full re-pagination.

from dataclasses import dataclass, field

MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 32

# Horizontal space taken by the reader's sidebars
DEFAULT_SIDEBAR_ALLOWANCE = 400
# Vertical space taken by reading controls and padding
DEFAULT_CONTROLS_ALLOWANCE = 120


@dataclass(frozen=True)
class Viewport:
    """Reading viewport size in pixels."""

    width: int = 1200
    height: int = 800


@dataclass(frozen=True)
class RenderConfig:
    """Typography and viewport settings for one pagination pass."""

    font_size: int = 16
    line_height: float = 1.6
    viewport: Viewport = field(default_factory=Viewport)
    css_enabled: bool = True
    sidebar_allowance: int = DEFAULT_SIDEBAR_ALLOWANCE
    controls_allowance: int = DEFAULT_CONTROLS_ALLOWANCE

    def __post_init__(self) -> None:
        if not MIN_FONT_SIZE <= self.font_size <= MAX_FONT_SIZE:
            msg = (
                f"font_size must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}, "
                f"got {self.font_size}"
            )
            raise ValueError(msg)
        if self.line_height <= 0:
            msg = f"line_height must be positive, got {self.line_height}"
            raise ValueError(msg)
        if self.content_width <= 0:
            msg = (
                f"viewport width {self.viewport.width} leaves no room after "
                f"sidebar allowance {self.sidebar_allowance}"
            )
            raise ValueError(msg)
        if self.page_height <= 0:
            msg = (
                f"viewport height {self.viewport.height} leaves no room after "
                f"controls allowance {self.controls_allowance}"
            )
            raise ValueError(msg)

    @property
    def content_width(self) -> int:
        """Width of the measurement surface: viewport minus sidebars."""
        return self.viewport.width - self.sidebar_allowance

    @property
    def page_height(self) -> int:
        """Height available for one page: viewport minus controls."""
        return self.viewport.height - self.controls_allowance

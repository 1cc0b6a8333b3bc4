"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    # Output
    reports_dir: str = field(default_factory=lambda: os.getenv("REPORTS_DIR", "./reports"))

    # Block rendering (headless browser)
    render_settle_ms: int = field(default_factory=lambda: int(os.getenv("RENDER_SETTLE_MS", "1000")))
    measure_settle_ms: int = field(default_factory=lambda: int(os.getenv("MEASURE_SETTLE_MS", "100")))
    render_device_scale: float = field(
        default_factory=lambda: float(os.getenv("RENDER_DEVICE_SCALE", "2"))
    )

    # Charts and images
    chart_dpi: int = field(default_factory=lambda: int(os.getenv("CHART_DPI", "150")))
    image_fetch_timeout: int = field(default_factory=lambda: int(os.getenv("IMAGE_FETCH_TIMEOUT", "20")))

    # Fonts and branding
    arabic_font_path: Optional[str] = field(default_factory=lambda: os.getenv("ARABIC_FONT_PATH"))
    default_watermark: str = field(
        default_factory=lambda: os.getenv("DEFAULT_WATERMARK", "سري / CONFIDENTIAL")
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()


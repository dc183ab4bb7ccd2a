"""
Browser Layer.

`PageDriver` defines what the pipeline needs from a live page;
`PlaywrightPageDriver` provides it with a Chromium page.
"""

from .driver import Banner, DriverSettings, FormSpec, PageDriver, TableSpec

__all__ = ["Banner", "DriverSettings", "FormSpec", "PageDriver", "TableSpec"]

"""VitalWatch - Core Web Vitals alerts and digests."""

__version__ = "1.0.0"

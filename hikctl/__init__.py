"""Client-side session layer for Hikvision DVR/NVR devices."""

__version__ = "0.1.0"

"""Low-assurance visitor fingerprinting and network identity resolution."""

__version__ = "0.3.0"

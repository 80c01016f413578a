"""clearmark: trademark clearance search against the INPI and EUIPO registries."""

__version__ = "0.1.0"

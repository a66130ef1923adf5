# ABOUTME: Tripcast: canonical weather lookups and AI travel suggestions for a place.
# ABOUTME: Exposes the package version; the ASGI app lives in tripcast.web.

__version__ = "0.1.0"

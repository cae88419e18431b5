"""Gunny API Service.

OAuth2 client-credentials gateway in front of a self-hosted LLM backend.
Issues short-lived bearer tokens and proxies rate-limited chat completions
to the Gunny persona.
"""

__version__ = "1.0.0"
__service_name__ = "Gunny API"
__author__ = "Gunny Team"

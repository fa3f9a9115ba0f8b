"""SchoolHub API - authentication and session issuance for the school administration app."""

__version__ = "0.1.0"

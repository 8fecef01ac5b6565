"""Storefront checkout service: cart pricing and order orchestration."""

__version__ = "1.0.0"

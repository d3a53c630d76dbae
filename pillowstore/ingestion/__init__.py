"""
Ingestion Module
"""
from .seed_catalog import BRAND_TEMPLATES, PRODUCT_TEMPLATES, REVIEW_TEMPLATES, seed_catalog

__all__ = [
    "BRAND_TEMPLATES",
    "PRODUCT_TEMPLATES",
    "REVIEW_TEMPLATES",
    "seed_catalog",
]

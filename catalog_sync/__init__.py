"""Catalog product-set synchronization service."""

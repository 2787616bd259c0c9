"""Paginated S3 object listing."""

from .object_lister import ListingPage, S3ObjectLister

__all__ = ["ListingPage", "S3ObjectLister"]

"""
Job extraction pipeline for CareerViet pages.

URL classification, link and pagination resolution, and the staged
extraction of job fields from detail pages.
"""

__version__ = "1.0.0"

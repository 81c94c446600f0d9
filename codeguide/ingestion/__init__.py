"""Ingestion package for the source catalogs.

Contains the catalog normalizers (catalogs.py) and the offline cache builder
(build_cache.py) that embeds the normalized documents and writes the embedding cache.
"""

"""Catalog item service.

Cached read and write access to catalog products, with their catalogs,
categories, inherited data and outlines.
"""

"""Shared utilities for iceberg-rest."""

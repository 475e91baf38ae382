"""Packaged JSON Schemas for provcheck configuration and reports."""

"""Hybrid recipe extraction: structured-data parsers, generative fallback, YouTube and cookbook flows."""

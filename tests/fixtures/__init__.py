"""
Fixtures package for the TestIT Importer tests.

This package provides the in-memory fake Test IT server and builders for
export directories.
"""

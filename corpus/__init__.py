"""
Corpus - session-scoped document collections backed by File Search.

This app owns one remote File Search store per session, mirrors the metadata
of its uploaded documents, estimates storage usage against the configured
tier and runs grounded searches with citations.
"""

"""
Core modules for chartlens.

This package contains the request pipeline:
- Configuration and request models
- Cache keys and in-flight de-duplication
- Rate-limited dispatch and retrying invocation
- Vision providers and the timeframe workflow
"""

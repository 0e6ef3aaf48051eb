"""Core (UI-agnostic) dashboard engine.

This package contains:
- widget ids, static visual configs and the report catalog
- shared filter state and selection normalization
- cross-filter propagation over the embedded visuals
- visual order, readiness and debounced layout persistence
"""

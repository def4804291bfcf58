"""Core (UI-agnostic) finance dashboard logic.

This package contains:
- sheet loading (published Google Sheets CSV -> pandas)
- filter normalization
- tab compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""

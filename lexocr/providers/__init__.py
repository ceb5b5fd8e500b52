"""Pluggable OCR providers.

Each module in this package wraps one external OCR engine. Providers
report themselves unavailable instead of raising when a dependency or
credential is missing, so the orchestrator can fall back to the next
engine.
"""

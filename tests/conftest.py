"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("PAYMENT__MULTISAFEPAY__API_KEY", "test-api-key")
os.environ.setdefault("PAYMENT__MULTISAFEPAY__TEST_MODE", "true")
os.environ.setdefault("PAYMENT__WEBHOOK__BASE_URL", "https://shop.example.com")

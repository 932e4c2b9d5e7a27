"""Pytest configuration and shared fixtures."""

import os


# Settings are instantiated at import time; give them an API key so the
# Appwrite client can be constructed without a .env file.
os.environ.setdefault("APPWRITE_API_KEY", "test-api-key")
os.environ.setdefault("APPWRITE_ENDPOINT", "https://appwrite.test/v1")

"""Shared constants for the gateway tests."""

MASTER_KEY = "master-key-M"

TEST_KEY_POOLS = {
    "openai": ("k1", "k2", "k3"),
    "claude": ("c1", "c2"),
    "gemini": ("g1", "g2"),
}

TEST_ENDPOINTS = {
    "openai": "https://api.openai.com",
    "claude": "https://api.anthropic.com",
    "gemini": "https://generativelanguage.googleapis.com",
    "groq": "https://api.groq.com",
    "cerebras": "https://api.cerebras.ai",
}

__all__ = ["MASTER_KEY", "TEST_ENDPOINTS", "TEST_KEY_POOLS"]

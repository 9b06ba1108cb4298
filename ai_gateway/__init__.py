"""AI Gateway Proxy

A transparent reverse proxy for LLM provider APIs with upstream key rotation.
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("ai-gateway-proxy")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0"
__author__ = "AI Gateway Proxy"

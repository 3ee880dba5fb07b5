"""
Adapters module.
Contains HTTP implementations of the downstream ports.
"""

from quotestream.adapters.http import HttpFxInfoPort, HttpQuotePort, create_http_client

__all__ = ["HttpQuotePort", "HttpFxInfoPort", "create_http_client"]

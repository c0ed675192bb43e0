"""
Imaging Gateway.

Quota-limited relay of uploaded images to a multimodal inference endpoint.
"""

__version__ = "0.1.0"

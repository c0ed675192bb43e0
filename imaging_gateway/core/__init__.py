"""
Core modules for Imaging Gateway.

This package contains the request pipeline: quota admission, upload
validation, data URL encoding, and response relay.
"""

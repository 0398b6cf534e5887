"""
Apps package - hosts for real client IP resolution.

This package contains:
- real_ip_filter: JSON event pipeline filter, Starlette middleware and CLI
"""

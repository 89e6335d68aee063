"""Top-level package for Django configuration.

This package exposes the configuration for the Sweet Narcisse booking
platform. It contains settings modules for the different environments
and the entry points for WSGI and ASGI.
"""

"""
Backend package for the portfolio API.

This package provides a FastAPI application that stores contact-form
submissions, proxies a few public APIs, and seeds example data once per
datastore on startup.
"""

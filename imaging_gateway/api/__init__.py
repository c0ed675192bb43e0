"""
HTTP surface: FastAPI application, middleware, and process lifecycle.
"""

"""
e3d_commerce.api

HTTP API package (FastAPI app factory, dependencies, routers).
"""

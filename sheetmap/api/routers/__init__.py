"""
FastAPI routers for the import endpoints.
"""

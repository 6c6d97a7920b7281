"""
Schemas module - Request/Response schemas for API endpoints.

Listing documents travel as serialized Mongo documents; the request bodies
and fixed-shape responses live in app.schemas.schemas.
"""

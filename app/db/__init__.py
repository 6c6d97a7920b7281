"""
Database module - MongoDB connection pool.
"""
from app.db.mongodb import MongoPool, get_pool, init_pool, close_pool

__all__ = [
    "MongoPool",
    "get_pool",
    "init_pool",
    "close_pool",
]

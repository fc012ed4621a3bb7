"""
Database Service Module
=======================

MongoDB connection management for the terrain result cache.

The module handles:
    - MongoDB connection lifecycle management
    - Cache collection access and TTL index setup
    - Environment-based configuration (see :mod:`terrain_api.config`)

Caching is optional. When ``MONGO_URI`` is unset no connection is made and
:func:`get_cache_collection` returns None, so every request recomputes.

Example:
    Basic usage::

        from terrain_api.services.database import connect_to_mongo, get_cache_collection

        connect_to_mongo()
        collection = get_cache_collection()
"""

import logging

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from terrain_api import config

logger = logging.getLogger(__name__)

# Global variables for client and database
client: MongoClient = None
"""MongoClient: Global MongoDB client instance"""

db = None
"""Database: Global database instance"""


def connect_to_mongo():
    """
    Establish connection to MongoDB and make sure the TTL index exists.

    Does nothing when ``MONGO_URI`` is not configured. If the client cannot be
    created (malformed URI, failed SRV lookup) caching stays disabled. Failure
    to create the index is logged and otherwise ignored; the cache degrades
    to misses.
    """
    global client, db
    if not config.MONGO_URI:
        logger.info("MONGO_URI not set; terrain cache disabled")
        return

    try:
        client = MongoClient(config.MONGO_URI, serverSelectionTimeoutMS=2000)
    except PyMongoError as e:
        logger.warning(f"Could not connect to MongoDB, terrain cache disabled: {e}")
        client = None
        db = None
        return

    db = client[config.MONGO_DB_NAME]
    logger.info(f"Connected to MongoDB database '{config.MONGO_DB_NAME}'")

    try:
        db[config.CACHE_COLLECTION].create_index("expires_at", expireAfterSeconds=0)
    except PyMongoError as e:
        logger.warning(f"Could not create cache TTL index: {e}")


def close_mongo_connection():
    """
    Close MongoDB connection.

    Safe to call multiple times or when no connection exists.
    """
    global client, db
    if client:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    db = None


def get_cache_collection():
    """
    Get the terrain cache collection.

    Returns:
        Collection: MongoDB collection of cached terrain results, or None
        when caching is disabled
    """
    if db is None:
        return None
    return db[config.CACHE_COLLECTION]

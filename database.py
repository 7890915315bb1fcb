import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config
from errors import StoreError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect(url: Optional[str] = None, name: Optional[str] = None) -> Database:
    """Open the process-wide client once and check the server answers."""
    global client, db
    if db is not None:
        return db

    url = url or config.DATABASE_URL
    name = name or config.DATABASE_NAME
    if not url:
        raise StoreError("DATABASE_URL is not set")

    try:
        new_client = MongoClient(url, serverSelectionTimeoutMS=5000)
        new_client.admin.command("ping")
    except PyMongoError as e:
        raise StoreError(f"Failed to connect to MongoDB: {e}") from e

    client = new_client
    db = client[name]
    logger.info("Connected to MongoDB database %s", name)
    return db


def data_collection(database: Optional[Database] = None) -> Collection:
    database = database if database is not None else connect()
    return database[config.DATA_COLLECTION]


def close() -> None:
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None

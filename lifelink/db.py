import logging
import threading

from django.conf import settings
from pymongo import MongoClient

logger = logging.getLogger(__name__)

_client = None
_client_lock = threading.Lock()


def get_client():
    """
    Process-wide MongoClient, created on first use.

    MongoClient is thread-safe and pools connections; it does not connect until
    the first operation, so creating it never blocks request handling.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                timeout = settings.MONGO_TIMEOUT_MS
                _client = MongoClient(
                    settings.MONGO_URI,
                    serverSelectionTimeoutMS=timeout,
                    connectTimeoutMS=timeout,
                    socketTimeoutMS=timeout,
                )
                logger.info("MongoDB client created for DB: %s (timeout %sms)", settings.MONGO_DB_NAME, timeout)
    return _client


def get_db():
    return get_client()[settings.MONGO_DB_NAME]

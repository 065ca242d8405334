"""
Database configuration and connection management for MongoDB
"""
from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
import logging
from app.config.settings import settings

logger = logging.getLogger(__name__)

class DatabaseConfig:
    """MongoDB database configuration"""
    
    def __init__(self, mongo_uri: str = None, database_name: str = None, timeout_seconds: float = None):
        self.MONGO_URI = mongo_uri or settings.MONGO_URI
        self.DATABASE_NAME = database_name or settings.DATABASE_NAME
        if timeout_seconds is None:
            timeout_seconds = settings.STORAGE_TIMEOUT_SECONDS
        self.TIMEOUT_SECONDS = timeout_seconds
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None
    
    async def connect_db(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(
                self.MONGO_URI,
                serverSelectionTimeoutMS=int(self.TIMEOUT_SECONDS * 1000),
            )
            self.database = self.client[self.DATABASE_NAME]
            # Test connection
            await self.client.admin.command('ping')
            logger.info("✅ Connected to MongoDB: %s", self.DATABASE_NAME)
        except Exception as e:
            logger.error("❌ Error connecting to MongoDB: %s", e)
            raise
    
    async def close_db(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("✅ MongoDB connection closed")
    
    def get_collection(self, collection_name: str):
        """Get a specific collection"""
        if self.database is None:
            raise RuntimeError("Database not connected")
        return self.database[collection_name]

# Collection names
class Collections:
    SURVEY_RESPONSES = "survey_responses"

"""
Application settings

Values are read from environment variables; a local .env file is loaded first.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings:
    def __init__(self):
        # Database
        self.MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017/foodapp")
        # Falls back to the database named in MONGO_URI, then to "foodapp"
        self.DATABASE_NAME: Optional[str] = os.getenv("DATABASE_NAME") or None
        self.MONGO_TIMEOUT_MS: int = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

        # Server
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "3000"))
        self.STATIC_DIR: str = os.getenv("STATIC_DIR", str(Path(__file__).resolve().parent / "public"))

        # Security
        self.BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

        # CORS
        self.ALLOWED_ORIGINS: List[str] = [
            origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
        ]

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()

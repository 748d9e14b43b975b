"""Configuration management for the sector-aware RAG service."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Storage Configuration
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")  # "memory" or "supabase"
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
INGESTION_WORKERS = int(os.getenv("INGESTION_WORKERS", "2"))

# Model Configuration
EMBEDDING_MODEL = "sentence-transformers/all-mpnet-base-v2"
EMBEDDING_DIMENSION = 768
EMBEDDING_BATCH_SIZE = 10
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")

# Chunking Configuration
CHUNK_SIZE = 1000  # characters
CHUNK_OVERLAP = 200  # characters

# Retrieval Configuration
SIMILARITY_THRESHOLD = 0.7
MAX_RESULTS = 5
MAX_CONTEXT_LENGTH = 3000  # characters

# Sector Configuration
DEFAULT_SECTOR = os.getenv("DEFAULT_SECTOR", "default")
SECTOR_SIMILARITY_THRESHOLD = 0.2
SECTOR_MAX_RESULTS = 5
SESSION_MAX_AGE_MS = int(os.getenv("SESSION_MAX_AGE_MS", str(24 * 60 * 60 * 1000)))

"""Configuration management for the Portfolio Assistant."""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Content corpus
CONTENT_PATH = os.getenv(
    "CONTENT_PATH",
    str(Path(__file__).parent / "data" / "portfolio.json")
)

# Model Configuration
CHAT_MODEL = "gpt-4-turbo-preview"
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "60"))

EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_DIMENSIONS = 1536
EMBEDDING_BATCH_SIZE = 100  # OpenAI accepts up to 2048 inputs per request
EMBEDDING_BATCH_DELAY = 0.1  # seconds between batches

# Vector Store Configuration
VECTOR_TABLE = "portfolio_embeddings"
MATCH_FUNCTION = "match_portfolio_embeddings"
UPSERT_BATCH_SIZE = 1000  # Supabase row ceiling per request
OVERFETCH_MULTIPLIER = 2

# Retrieval Configuration
TOP_K = 5
MIN_SCORE = 0.7
FALLBACK_MIN_SCORE = 0.4
BOOST_AMOUNT = 0.1
MAX_CONFIDENCE = 0.95

# Cache Configuration (seconds)
EMBEDDING_CACHE_TTL = 24 * 60 * 60
QUERY_CACHE_TTL = 5 * 60
CACHE_SWEEP_INTERVAL = 10 * 60

# Rate Limiting
RATE_LIMIT_MAX_REQUESTS = 20
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_SWEEP_INTERVAL = 5 * 60

# Name used in prompts when addressing the portfolio owner
OWNER_NAME = os.getenv("OWNER_NAME", "Shree")

# Simulated streaming delay for local answers (seconds per word)
FALLBACK_STREAM_DELAY = 0.02

SYSTEM_PROMPT = """You are Shree's AI portfolio assistant. You help visitors learn about Shree's projects, experience, and skills.

Guidelines:
- Be concise but informative
- Always cite sources when referencing specific projects or experiences
- Use bullet points for clarity
- Suggest relevant follow-up actions
- If unsure, acknowledge it and suggest where to find more information

You have access to:
- Project details including metrics, technologies, and impact
- Work experience with achievements and responsibilities
- Education background and coursework
- Technical skills and proficiencies"""

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

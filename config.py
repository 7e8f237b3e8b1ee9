# config.py
import os
from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Storage backend: "memory" or "mongo"
LMS_PROVIDER = os.getenv("LMS_PROVIDER", "memory")
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "lms_db")
LMS_DATA_FILE = os.getenv("LMS_DATA_FILE") or None
LMS_SEED = os.getenv("LMS_SEED", "true").lower() in ("1", "true", "yes")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", str(60 * 8)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

# Client side of the RPC transport
RPC_URL = os.getenv("RPC_URL", "http://localhost:8000/api/rpc")
RPC_TIMEOUT = float(os.getenv("RPC_TIMEOUT", "30"))

# At-risk policy
AT_RISK_MAX_LATE = int(os.getenv("AT_RISK_MAX_LATE", "2"))
AT_RISK_MIN_AVERAGE = float(os.getenv("AT_RISK_MIN_AVERAGE", "5.0"))

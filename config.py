import os

from dotenv import load_dotenv

load_dotenv(override=False)

# ----------------------
# Store
# ----------------------
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "proxy-project")
DATA_COLLECTION = os.getenv("DATA_COLLECTION", "data")
DATA_DOCUMENT_ID = os.getenv("DATA_DOCUMENT_ID", "main")

# ----------------------
# Attendance rules
# ----------------------
GEOFENCE_RADIUS_METERS = float(os.getenv("GEOFENCE_RADIUS_METERS", "50"))
TIMEZONE = os.getenv("TIMEZONE", "Asia/Kolkata")

# ----------------------
# Credentials and proofs
# ----------------------
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))
LOCATION_PROOF_SECRET = os.getenv("LOCATION_PROOF_SECRET", "dev-secret-change-me")
LOCATION_PROOF_ALG = os.getenv("LOCATION_PROOF_ALG", "HS256")
LOCATION_PROOF_TTL_SECONDS = int(os.getenv("LOCATION_PROOF_TTL_SECONDS", "120"))
REQUIRE_LOCATION_PROOF = bool(int(os.getenv("REQUIRE_LOCATION_PROOF", "0")))

# ----------------------
# Process
# ----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "4000"))

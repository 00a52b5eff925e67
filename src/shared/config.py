import os

ENV = os.getenv("ENV", "production")
AWS_REGION = os.getenv("AWS_REGION", "us-west-2")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

RADIO_TABLE = os.getenv("DYNAMODB_RADIO_TABLE", "radio")

DYNAMODB_ENDPOINT = os.getenv("DYNAMODB_ENDPOINT")  # local only (http://localhost:8002)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
NEXTAUTH_SECRET = os.getenv("NEXTAUTH_SECRET", "")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

# "lowest" records only the first newly-crossed threshold per report, "all" records each one
MILESTONE_POLICY = os.getenv("MILESTONE_POLICY", "lowest")

MAX_REPORT_SECONDS = int(os.getenv("MAX_REPORT_SECONDS", "86400"))
MAX_CAS_ATTEMPTS = int(os.getenv("MAX_CAS_ATTEMPTS", "5"))
REPORT_TOKEN_TTL_SECONDS = int(os.getenv("REPORT_TOKEN_TTL_SECONDS", str(7 * 24 * 3600)))

# Injected into boto3 calls when running locally
DYNAMODB_KWARGS: dict = {}
if ENV == "local" and DYNAMODB_ENDPOINT:
    DYNAMODB_KWARGS["endpoint_url"] = DYNAMODB_ENDPOINT

# Bind address for `radio-api` / `radio-admin-api` (one app per process/container)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

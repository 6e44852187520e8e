import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ledger.db")
SQLALCHEMY_DATABASE_URI = DATABASE_URL

# JWT Settings (tokens are minted by the external auth service)
SECRET_KEY: str = os.getenv("SECRET_KEY", "a_very_secret_key_that_should_be_in_env_file_and_much_stronger")
ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
ADMIN_ROLE: str = os.getenv("ADMIN_ROLE", "admin")
SALES_ROLE: str = os.getenv("SALES_ROLE", "sales")

# Withdrawal locking and retry
LEDGER_LOCK_TIMEOUT_SECONDS: float = float(os.getenv("LEDGER_LOCK_TIMEOUT_SECONDS", 5))
LEDGER_MAX_RETRIES: int = int(os.getenv("LEDGER_MAX_RETRIES", 3))
LEDGER_RETRY_BACKOFF_SECONDS: float = float(os.getenv("LEDGER_RETRY_BACKOFF_SECONDS", 0.05))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

if SECRET_KEY.startswith("a_very_secret_key"):
    # Avoid logging the key itself.
    print("WARNING: SECRET_KEY is using the placeholder value. Set it in the environment.")

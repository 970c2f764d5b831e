import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Storage
    BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    DATA_DIR = os.getenv("MEDTEXTDB_DATA_DIR", os.path.join(BASE_DIR, "data"))
    STORAGE = os.getenv("MEDTEXTDB_STORAGE", "file")
    KEY_PREFIX = os.getenv("MEDTEXTDB_KEY_PREFIX", "medtextdb")

    # Passwords
    PASSWORD_SCHEME = os.getenv("MEDTEXTDB_PASSWORD_SCHEME", "bcrypt")
    BCRYPT_ROUNDS = int(os.getenv("MEDTEXTDB_BCRYPT_ROUNDS", 12))

    # Attachments (PDF/TXT only, 2 MiB by default)
    MAX_ATTACHMENT_BYTES = int(os.getenv("MEDTEXTDB_MAX_ATTACHMENT_BYTES", 2 * 1024 * 1024))

    SEED = _flag("MEDTEXTDB_SEED", "true")
    LOG_LEVEL = os.getenv("MEDTEXTDB_LOG_LEVEL", "INFO")

    HOST = os.getenv("MEDTEXTDB_HOST", "127.0.0.1")
    PORT = int(os.getenv("MEDTEXTDB_PORT", 8123))


settings = Settings()

"""
Configuration module for the back-office backend.

Loads environment variables and validates required settings.
"""
import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Google Sheets Configuration
    GOOGLE_SPREADSHEET_ID: str = os.getenv(
        "GOOGLE_SPREADSHEET_ID", os.getenv("SPREADSHEET_ID", "")
    )
    # Service account JSON (either variable name is accepted)
    GOOGLE_SHEETS_CREDENTIALS: str = os.getenv(
        "GOOGLE_SHEETS_CREDENTIALS", os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "")
    )
    # Directory searched for a service account file when no env credentials are set
    CREDENTIALS_DIR: str = os.getenv(
        "CREDENTIALS_DIR", os.path.join(os.getcwd(), "dist", "credentials")
    )

    # Supabase Configuration (server-wide defaults, users may override in UserConfig)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")

    # OpenAI API
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    OPENAI_EMBEDDING_MODEL: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    OPENAI_CHAT_MODEL: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-3.5-turbo")

    # DeepSeek API (OpenAI-compatible)
    DEEPSEEK_API_KEY: str = os.getenv("DEEPSEEK_API_KEY", "")
    DEEPSEEK_BASE_URL: str = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
    DEEPSEEK_MODEL: str = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")

    # Firebase Configuration
    FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "")
    FIREBASE_API_KEY: str = os.getenv("FIREBASE_API_KEY", "")
    FIREBASE_AUTH_DOMAIN: str = os.getenv("FIREBASE_AUTH_DOMAIN", "")
    FIREBASE_APP_ID: str = os.getenv("FIREBASE_APP_ID", "")
    FIREBASE_MEASUREMENT_ID: str = os.getenv("FIREBASE_MEASUREMENT_ID", "")

    # Firebase Admin credentials (first match wins, see db/firebase_app.py)
    GOOGLE_APPLICATION_CREDENTIALS: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")
    FIREBASE_SERVICE_ACCOUNT_BASE64: str = os.getenv("FIREBASE_SERVICE_ACCOUNT_BASE64", "")
    FIREBASE_SERVICE_ACCOUNT: str = os.getenv("FIREBASE_SERVICE_ACCOUNT", "")
    FIREBASE_CLIENT_EMAIL: str = os.getenv("FIREBASE_CLIENT_EMAIL", "")
    FIREBASE_PRIVATE_KEY: str = os.getenv("FIREBASE_PRIVATE_KEY", "")

    # Google Sheets client-side settings copied into new user configs
    GOOGLE_SHEETS_CLIENT_ID: str = os.getenv("GOOGLE_SHEETS_CLIENT_ID", "")
    GOOGLE_SHEETS_PROJECT_ID: str = os.getenv("GOOGLE_SHEETS_PROJECT_ID", "")

    API_BASE_URL: str = os.getenv("API_BASE_URL", "")

    # Firebase ID tokens are signed by Google's securetoken service account
    @property
    def FIREBASE_JWKS_URL(self) -> str:
        """Get the JWKS URL for Firebase ID token verification."""
        return (
            "https://www.googleapis.com/service_accounts/v1/jwk/"
            "securetoken@system.gserviceaccount.com"
        )

    @property
    def FIREBASE_ISSUER(self) -> str:
        """Expected 'iss' claim of Firebase ID tokens."""
        if not self.FIREBASE_PROJECT_ID:
            return ""
        return f"https://securetoken.google.com/{self.FIREBASE_PROJECT_ID}"

    # Session Settings
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "fallback-secret-for-development")
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", str(7 * 24 * 60 * 60)))

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    PORT: int = int(os.getenv("PORT", "8000"))

    # CORS Settings (comma separated; required for web clients in production)
    CORS_ALLOWED_ORIGINS: str = os.getenv("CORS_ALLOWED_ORIGINS", "")

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required settings are configured.

        Raises:
            ValueError: If any required setting is missing.
        """
        required_settings = {
            "GOOGLE_SPREADSHEET_ID": cls.GOOGLE_SPREADSHEET_ID,
            "FIREBASE_PROJECT_ID": cls.FIREBASE_PROJECT_ID,
        }

        missing = [key for key, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

        if cls.is_production() and cls.SESSION_SECRET == "fallback-secret-for-development":
            raise ValueError("SESSION_SECRET must be set in production.")

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"


# Create a singleton instance
settings = Settings()

# Validate settings on module import (will fail fast if misconfigured)
# Skip validation during tests or when importing for introspection
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # In development, warn but don't crash
        if settings.is_development():
            print(f"⚠️  Warning: {e}")
            print("   The app may not work correctly until you configure your .env file.")
        else:
            raise

"""
Configuration settings for schedule_health.
Load configuration from environment variables or a project-root .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


class Settings:
    """Application settings loaded from environment variables."""

    PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # ============================================================================
    # Upload limits (enforced by the uploader before parsing)
    # ============================================================================
    MAX_UPLOAD_MB = int(os.getenv('MAX_UPLOAD_MB', '50'))
    ALLOWED_EXTENSIONS = ('.xer', '.xml')

    # ============================================================================
    # Analysis defaults
    # ============================================================================
    LOOKAHEAD_DAYS = int(os.getenv('LOOKAHEAD_DAYS', '28'))

    # ============================================================================
    # Narrative text-generation service (Azure OpenAI compatible)
    # ============================================================================
    NARRATIVE_ENDPOINT = os.getenv('NARRATIVE_ENDPOINT', '')
    NARRATIVE_API_KEY = os.getenv('NARRATIVE_API_KEY', '')
    NARRATIVE_DEPLOYMENT = os.getenv('NARRATIVE_DEPLOYMENT', '')
    NARRATIVE_API_VERSION = os.getenv('NARRATIVE_API_VERSION', '2025-01-01-preview')
    NARRATIVE_TIMEOUT = int(os.getenv('NARRATIVE_TIMEOUT', '30'))
    NARRATIVE_MAX_ATTEMPTS = int(os.getenv('NARRATIVE_MAX_ATTEMPTS', '3'))
    NARRATIVE_BASE_DELAY = float(os.getenv('NARRATIVE_BASE_DELAY', '1.0'))
    NARRATIVE_MAX_DELAY = float(os.getenv('NARRATIVE_MAX_DELAY', '5.0'))

    @classmethod
    def max_upload_bytes(cls) -> int:
        return cls.MAX_UPLOAD_MB * 1024 * 1024

    @classmethod
    def validate_required_settings(cls) -> list[str]:
        """
        Validate that the narrative service is configured.
        Returns list of missing required settings.
        """
        missing = []
        for key in ('NARRATIVE_ENDPOINT', 'NARRATIVE_API_KEY', 'NARRATIVE_DEPLOYMENT'):
            if not getattr(cls, key):
                missing.append(key)
        return missing


# Create settings instance
settings = Settings()

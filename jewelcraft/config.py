"""
Configuration, constants, and generation settings
Service settings come from the environment, everything else is static
"""
import os
from typing import List

# OpenAI Configuration
OPENAI_IMAGE_MODEL = "dall-e-3"
OPENAI_SPEC_MODEL = "gpt-4o"
OPENAI_TIMEOUT = 180
IMAGE_SIZE = "1024x1024"
IMAGE_QUALITY = "hd"
IMAGE_STYLE = "natural"

# Generation
MIN_VIEWS = 2
MAX_VIEWS = 4
IMAGE_REQUEST_DELAY = 1.5  # seconds between staggered image calls
GENERATION_TIMEOUT = 300
VISION_MIN_LENGTH = 10
VISION_MAX_LENGTH = 2000
SPEC_MAX_TOKENS = 400
SPEC_TEMPERATURE = 0.3

SPEC_FALLBACK_TEXT = (
    "Specifications generation temporarily unavailable. "
    "Our team will provide detailed specs upon request."
)

SPEC_PROMPT_TEMPLATE = """As a master jeweler, create detailed manufacturing specifications for this custom jewelry piece:

Design Vision: {vision}

Provide concise specifications including:
1. Materials and dimensions
2. Stone specifications
3. Manufacturing techniques
4. Estimated timeline
5. Price range

Keep response under 300 words and focus on technical details."""

# Storage
IMAGE_BUCKET = "images"
IMAGE_CACHE_CONTROL = "31536000"
MAX_IMAGE_SIZE_BYTES = 10 * 1024 * 1024
ALLOWED_IMAGE_MIME_TYPES = ["image/png", "image/jpeg", "image/jpg", "image/webp"]
SHARE_LINK_DAYS = 30
DOWNLOAD_TIMEOUT = 60

# Designs
DEFAULT_SHARED_PRICE_CENTS = 250000
SHARED_DESIGN_PAGE_SIZE = 50
SHARED_DESIGN_SORTS = {"newest", "popular", "price_low", "price_high"}

# GDPR
CONSENT_VERSION = "1.0.0"
CONSENT_TYPES = {"terms", "privacy", "marketing", "data_retention"}
DELETION_GRACE_DAYS = 30

# Spot prices (USD per troy ounce)
MOCK_SPOT_PRICES = {"gold": 2040.0, "silver": 24.50, "platinum": 950.0}
FALLBACK_SPOT_PRICES = {"gold": 2000.0, "silver": 25.0, "platinum": 950.0}
SPOT_PRICE_TIMEOUT = 10


class Config:
    """Application configuration"""

    # Server
    PORT: int = int(os.getenv("PORT", "8080"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    PUBLIC_SITE_URL: str = os.getenv("PUBLIC_SITE_URL", "http://localhost:3000")

    # OpenAI
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # Supabase (auth, tables, storage)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Metals price API
    METALS_API_KEY: str = os.getenv("METALS_API_KEY", "")
    METALS_API_URL: str = os.getenv("METALS_API_URL", "https://metals-api.com/api/latest")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


config = Config()

# Backwards compatible alias for settings
settings = config

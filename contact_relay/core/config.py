from typing import List, Literal, Optional

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:5000",
]


class Settings(BaseSettings):
    PROJECT_NAME: str = "Starkville Tech API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "development"
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # --- CORS ---
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=list,
        validate_default=True,
        description="List of allowed CORS origins (JSON list in .env)",
    )

    # --- Delivery ---
    EMAIL_PROVIDER: Literal["smtp", "resend"] = "smtp"
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[SecretStr] = None
    EMAIL_FROM: Optional[str] = None
    SENDER_NAME: str = "Starkville Tech"
    CONTACT_EMAIL: str = "admin@starkville.tech"
    EMAIL_TIMEOUT: float = 10.0

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_SECURE: bool = True  # implicit TLS; False means STARTTLS

    RESEND_API_KEY: Optional[SecretStr] = None
    RESEND_API_URL: str = "https://api.resend.com"

    # --- Contact form ---
    CONTACT_FORM: Literal["basic", "extended"] = "basic"
    EMAIL_HTML: bool = True

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def default_allowed_origins(
        cls, v: Optional[List[str]], info: ValidationInfo
    ) -> Optional[List[str]]:
        env = info.data.get("ENVIRONMENT") or "development"
        if env != "production":
            if v is None:
                return list(DEFAULT_ORIGINS)
            if isinstance(v, str) and v.strip() in ("", "[]"):
                return list(DEFAULT_ORIGINS)
            if isinstance(v, list) and len(v) == 0:
                return list(DEFAULT_ORIGINS)
        return v

    @property
    def sender_address(self) -> Optional[str]:
        return self.EMAIL_FROM or self.EMAIL_USER

    @property
    def email_configured(self) -> bool:
        """Whether both credential values of the active provider are present.

        This is a presence check only; the credentials are never validated here.
        """
        if self.EMAIL_PROVIDER == "resend":
            return bool(self.RESEND_API_KEY and self.sender_address)
        return bool(self.EMAIL_USER and self.EMAIL_PASS)

    def secret_values(self) -> List[str]:
        """Configured secrets, used to scrub provider messages before display."""
        secrets = []
        for value in (self.EMAIL_PASS, self.RESEND_API_KEY):
            if value is not None and value.get_secret_value():
                secrets.append(value.get_secret_value())
        return secrets


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Error handling settings loaded from environment variables.

    Pydantic Settings reads env vars matching field names (case-insensitive).
    In development, it also reads from .env file if present.
    """

    # Client message for unhandled exceptions when their text is not exposed
    unhandled_message: str = "Internal server error"
    expose_unhandled_messages: bool = False  # True sends str(exc) to clients (debug only)

    log_client_errors: bool = True  # Log 4xx wrappers at warning level

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env in development
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Hosted backend (PostgREST interface)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    user_timezone: str = "Europe/Paris"

    # Shorter cleaned texts are treated as "not understood"
    min_reminder_text_length: int = 2
    snooze_minutes: int = 30
    voice_feedback_enabled: bool = True

    # Sentry error tracking
    sentry_dsn: str = ""
    sentry_environment: str = "production"

    log_level: str = "INFO"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def has_sentry(self) -> bool:
        return bool(self.sentry_dsn)


settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict

from tpe_availability.services.slot_evaluator import StatusVocabulary


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://tpe:tpe@db:5432/tpe_availability"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://ops.example.com,https://bi.example.com"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # "json" in production, "console" for local development
    LOG_FORMAT: str = "json"

    # Vendor wording used by the slot classifiers. Lists are read from env as
    # JSON, e.g. OFFLINE_PROLONGED_MARKERS='[">", "days", "jours"]'
    OFFLINE_PROLONGED_MARKERS: list[str] = [">", "days"]
    STATUS_ACTIVE_MARKERS: list[str] = ["active", "online"]
    GEOFENCE_IN_MARKERS: list[str] = ["in geofence"]
    PAPER_OK_VALUES: list[str] = ["available"]
    PAPER_OUT_VALUES: list[str] = ["out of paper"]
    LOW_VOLTAGE_MARKERS: list[str] = ["low voltage"]

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def status_vocabulary(self) -> StatusVocabulary:
        return StatusVocabulary(
            offline_prolonged_markers=tuple(self.OFFLINE_PROLONGED_MARKERS),
            status_active_markers=tuple(self.STATUS_ACTIVE_MARKERS),
            geofence_in_markers=tuple(self.GEOFENCE_IN_MARKERS),
            paper_ok_values=tuple(self.PAPER_OK_VALUES),
            paper_out_values=tuple(self.PAPER_OUT_VALUES),
            low_voltage_markers=tuple(self.LOW_VOLTAGE_MARKERS),
        )


settings = Settings()

"""
Configuration management for the LabTrack laboratory workspace
"""

from typing import List
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main configuration class combining all settings"""

    model_config = SettingsConfigDict(
        env_prefix="LABTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application settings
    app_name: str = "LabTrack Laboratory Workspace"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Logging configuration
    log_level: str = "INFO"
    log_file: str = "logs/labtrack.log"
    log_to_file: bool = True
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_reload: bool = False
    api_cors_origins: List[str] = ["*"]
    api_cors_methods: List[str] = ["*"]
    api_cors_headers: List[str] = ["*"]

    # Catalog settings
    catalog_id_prefix: str = "T"
    catalog_seed_defaults: bool = True
    catalog_enforce_references: bool = True

    # Sample and patient identifiers
    sample_id_prefix: str = "SAM"
    sample_id_digits: int = 8
    patient_id_prefix: str = "P"

    # Workflow settings
    workflow_enforce_transitions: bool = True
    workflow_allow_manual_override: bool = False

    # Inventory and equipment
    inventory_id_prefix: str = "INV"
    equipment_id_prefix: str = "EQ"
    maintenance_id_prefix: str = "MR"
    inventory_seed_defaults: bool = True
    inventory_expiry_warning_days: int = 7
    equipment_maintenance_warning_days: int = 7

    # Appointments
    appointment_id_prefix: str = "APT"

    # Tracking and dashboards
    tracking_refresh_interval: float = 5.0
    dashboard_recent_limit: int = 5

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['development', 'testing', 'production']:
            raise ValueError('Environment must be development, testing, or production')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f'Unknown log level: {v}')
        return v

    @field_validator('sample_id_digits')
    @classmethod
    def validate_sample_id_digits(cls, v):
        if not 4 <= v <= 13:
            raise ValueError('sample_id_digits must be between 4 and 13')
        return v

    @field_validator('inventory_expiry_warning_days', 'equipment_maintenance_warning_days')
    @classmethod
    def validate_warning_days(cls, v):
        if v < 0:
            raise ValueError('Warning windows cannot be negative')
        return v

    @field_validator('tracking_refresh_interval')
    @classmethod
    def validate_refresh_interval(cls, v):
        if v <= 0:
            raise ValueError('tracking_refresh_interval must be positive')
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def create_log_directory(self):
        """Create log directory if it doesn't exist"""
        log_dir = Path(self.log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()

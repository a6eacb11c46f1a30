"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRAVEL_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Travel Cost Estimation API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for stored trips and audit logs.")
    city_coordinates_file: Optional[Path] = Field(
        default=None,
        description="Optional workbook (City, Latitude, Longitude) extending the built-in city table.",
    )
    record_store: Literal["memory", "file", "supabase"] = Field(
        default="file",
        description="Backend used for client facts, trips and authorization logs.",
    )
    store_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Geocoding collaborator (Nominatim-compatible search endpoint)
    geocoder_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the geocoding service (e.g., https://nominatim.openstreetmap.org).",
    )
    geocoder_user_agent: str = "travel-engine/1.0"
    geocoder_country: str = "Brasil"
    geocoder_timeout_seconds: float = Field(default=5.0, gt=0.0)
    geocoder_max_retries: int = Field(default=2, ge=0)
    geocoder_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Home city reference (company headquarters)
    home_latitude: float = Field(default=-23.7150, ge=-90.0, le=90.0)
    home_longitude: float = Field(default=-46.5550, ge=-180.0, le=180.0)
    home_region: str = "SP"
    home_city_variants: tuple[str, ...] = Field(
        default=("são bernardo", "sao bernardo", "s. bernardo", "sbc"),
        description="Lower-case fragments that identify the home city in free-text city names.",
    )
    visual_offset_step_degrees: float = Field(default=0.002, ge=0.0)

    # Cost tables
    fuel_cost_per_km: float = Field(default=0.85, ge=0.0)
    toll_bands: tuple[tuple[float, float], ...] = Field(
        default=((50.0, 0.0), (150.0, 18.0), (300.0, 42.0), (450.0, 68.0), (600.0, 95.0)),
        description="(upper distance km, toll cost) pairs, ascending; distances beyond the last band use its cost.",
    )
    parking_fee: float = Field(default=40.0, ge=0.0)
    air_fare_bands: tuple[tuple[float, float], ...] = Field(
        default=((1200.0, 900.0), (2500.0, 1400.0), (5000.0, 2100.0), (12000.0, 2800.0)),
        description="(upper distance km, fare per person) pairs, ascending.",
    )
    airport_tax_per_person: float = Field(default=65.0, ge=0.0)
    nightly_lodging_rate: float = Field(default=280.0, ge=0.0)
    daily_meal_rate: float = Field(default=120.0, ge=0.0)
    ground_speed_kmh: float = Field(default=80.0, gt=0.0)
    air_speed_kmh: float = Field(default=750.0, gt=0.0)
    airport_overhead_hours: float = Field(default=2.5, ge=0.0)

    # Eligibility rules
    obligatory_rules: tuple[str, ...] = Field(
        default=("min_days_since_last_proposal",),
        description="Rule identifiers whose failure blocks default approval; all others are recommended.",
    )
    min_days_since_last_proposal: int = Field(default=30, ge=0)
    min_cumulative_sales: float = Field(default=50000.0, ge=0.0)
    max_cost_to_revenue_pct: float = Field(default=5.0, ge=0.0)

    # Authorization workflow
    drift_threshold_km: float = Field(default=10.0, ge=0.0)
    finished_decision_retention: int = Field(default=1000, ge=0)

    nearby_radius_km: float = Field(default=100.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "city_coordinates_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "home_city_variants", "obligatory_rules", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("toll_bands", "air_fare_bands", mode="before")
    @classmethod
    def _parse_bands_from_env(cls, value: Any) -> tuple[tuple[float, float], ...]:
        """Parse (upper_km, cost) bands from a JSON array of pairs and sort them by distance."""
        if isinstance(value, str):
            value = json.loads(value)
        bands = tuple((float(upper), float(cost)) for upper, cost in value)
        if not bands:
            raise ValueError("At least one band is required.")
        return tuple(sorted(bands, key=lambda band: band[0]))


settings = Settings()

"""
Configuration management for building stock data processing.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessingParameters(BaseModel):
    """
    Tunable parameters of one processing run.

    Validated at construction, so an out-of-range weight or period is
    rejected before any computation starts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Structural
    thermal_conductivity_weight: float = Field(
        default=0.5, ge=0.0, le=1.0,
        description="Sampling of material thermal conductivity, 0 = min, 1 = max",
    )
    interior_node_depth: float = Field(
        default=0.1, ge=0.0, le=1.0,
        description="Depth of the interior temperature node within the structure",
    )
    variation_period: float = Field(
        default=2225140.0, gt=0.0,
        description="Period of variations [s] as in EN ISO 13786:2017 Annex C",
    )

    # Ventilation and fenestration
    ventilation_rate_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    n50_infiltration_rate_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    infiltration_factor_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    HRU_efficiency_weight: float = Field(default=0.5, ge=0.0, le=1.0)

    # Period relaxation when no data is found
    lookback_if_empty: int = Field(default=10, gt=0, description="Relaxation step [years]")
    max_lookbacks: int = Field(default=20, ge=0, description="Maximum number of relaxations")

    # Scope and policies
    num_location_ids: Optional[int] = Field(
        default=None, gt=0, description="Limit the number of included locations (e.g. for testing)"
    )
    on_missing_data: Literal["raise", "skip"] = Field(
        default="raise", description="Abort, or log and skip cells without applicable data"
    )
    run_integrity_checks: bool = Field(default=True)
    strict_integrity: bool = Field(
        default=False, description="Abort the run if the integrity checks report violations"
    )
    max_workers: int = Field(default=1, ge=1, description="Worker threads for the map steps")


class Settings(BaseSettings):
    """
    Application settings.

    Can be configured via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BSD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default=Path("data"))
    output_dir: Path = Field(default=Path("output"))

    # Default processing parameters
    thermal_conductivity_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    interior_node_depth: float = Field(default=0.1, ge=0.0, le=1.0)
    variation_period: float = Field(default=2225140.0, gt=0.0)
    lookback_if_empty: int = Field(default=10, gt=0)
    max_lookbacks: int = Field(default=20, ge=0)
    max_workers: int = Field(default=1, ge=1)

    def processing_parameters(self, **overrides) -> ProcessingParameters:
        """Processing parameters from the settings, with `overrides` applied."""
        values = {
            "thermal_conductivity_weight": self.thermal_conductivity_weight,
            "interior_node_depth": self.interior_node_depth,
            "variation_period": self.variation_period,
            "lookback_if_empty": self.lookback_if_empty,
            "max_lookbacks": self.max_lookbacks,
            "max_workers": self.max_workers,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProcessingParameters(**values)

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for dir_path in [self.data_dir, self.output_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()

from pydantic_settings import BaseSettings
from functools import lru_cache
from pydantic import Field


class AnalysisSettings(BaseSettings):
    # Non-linear iteration
    convergence_threshold: float = Field(default=1e-3, gt=0)  # volts
    max_iterations: int = Field(default=100, ge=1)
    led_initial_voltage: float = 2.0

    # Reporting
    report_decimals: int | None = 3  # None = raw solver output

    # Reserved super-nodes
    power_node: str = "unified-power"
    ground_node: str = "unified-ground"

    class Config:
        env_prefix = "CIRCUIT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> AnalysisSettings:
    return AnalysisSettings()

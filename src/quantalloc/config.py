"""
Central configuration for the quantalloc allocation engine.

All settings are loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Environment ---
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"

    # --- Engine Defaults (EngineConfig fields left unset) ---
    default_objective: str = "MAX_SHARPE"
    risk_free_rate: float = 0.04  # 4% annual, as a fraction
    rebalancing_threshold: float = 0.05  # 5% drift triggers a trade
    transaction_cost_model: str = "PERCENTAGE"
    time_horizon_years: float = 5.0
    allow_leverage: bool = False
    include_alternatives: bool = True
    objective_blend: float = 0.5  # Share of the objective target mixed into weights
    default_rebalancing_days: int = 90  # Quarterly

    # --- Constraint Defaults ---
    preferred_class_floor: float = 0.10

    # --- Transaction Costs ---
    fixed_trade_fee: float = 10.0  # Flat fee per executed trade ($)
    default_transaction_cost: float = 0.001  # 0.1% when the class has no cost data

    # --- Advisory Thresholds ---
    small_account_threshold: float = 5_000.0
    high_volatility_index: float = 25.0
    concentration_threshold: float = 0.40
    liquidity_risk_threshold: float = 30.0
    crypto_warning_threshold: float = 0.15
    options_warning_threshold: float = 0.25

    # --- Optimizer Numerics ---
    optimizer_max_iterations: int = 500  # SLSQP iteration cap
    optimizer_ftol: float = 1e-10
    risk_parity_tolerance: float = 1e-4  # Max deviation of a variance share from 1/n
    max_condition_number: float = 1e12

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton settings instance
settings = Settings()

"""
Configuration management for the IMC Planner application.
Handles the OpenAI key, planning defaults, and storage locations.
"""

import os
import streamlit as st
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class AppConfig:
    """Application configuration settings."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    default_currency: str = "VND"
    min_total_budget: int = 50_000_000
    plans_dir: str = "saved_plans"
    benchmark_file: Optional[str] = None
    max_retries: int = 3

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets, then environment (.env)."""
        if self._config is not None:
            return self._config

        defaults = AppConfig()
        self._config = AppConfig(
            openai_api_key=self._get_secret_or_env("OPENAI_API_KEY"),
            openai_model=self._get_setting("OPENAI_MODEL", defaults.openai_model),
            default_currency=self._get_setting("DEFAULT_CURRENCY", defaults.default_currency),
            min_total_budget=self._get_int_setting("MIN_TOTAL_BUDGET", defaults.min_total_budget),
            plans_dir=self._get_setting("PLANS_DIR", defaults.plans_dir),
            benchmark_file=self._get_secret_or_env("BENCHMARK_FILE"),
            max_retries=self._get_int_setting("MAX_RETRIES", defaults.max_retries)
        )

        return self._config

    def reset(self):
        """Forget the cached configuration so the next load re-reads it."""
        self._config = None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Outside `streamlit run` there is no secrets file and st.secrets raises
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return st.secrets[key]
        except Exception:
            pass

        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        value = self._get_secret_or_env(key)
        return value if value else default

    def _get_int_setting(self, key: str, default: int) -> int:
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return int(str(value).replace(",", "").replace("_", ""))
            except ValueError:
                pass
        return default

    def get_openai_api_key(self) -> str:
        """
        Get the OpenAI API key.

        Raises:
            ValueError: If no key is configured
        """
        config = self.load_config()
        if not config.openai_api_key:
            raise ValueError(
                "OpenAI API key not found. Please set OPENAI_API_KEY in "
                "Streamlit secrets or environment variables."
            )
        return config.openai_api_key

    def get_openai_model(self) -> str:
        return self.load_config().openai_model

    def get_plans_dir(self) -> str:
        return self.load_config().plans_dir

    def get_max_retries(self) -> int:
        return self.load_config().max_retries


# Global configuration manager instance
config_manager = ConfigManager()

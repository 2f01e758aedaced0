# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

import os
import yaml
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from textcall_core.function_calling import DEFAULT_STOP_LABELS
from textcall_core.models import GenerationSettings


class ServerConfig(BaseModel):
    """HTTP service binding"""
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server host address")
    timeout: int = Field(default=180, ge=1, description="Request timeout (seconds)")


class UpstreamConfig(BaseModel):
    """Text-completion backend configuration"""
    name: str = Field(default="local", description="Backend name")
    base_url: str = Field(description="Backend base URL, e.g. http://localhost:8080/v1")
    api_key: str = Field(default="", description="API key (optional for local servers)")
    model: str = Field(default="", description="Model name sent with each request (optional)")
    timeout: int = Field(default=180, ge=1, description="Generation timeout (seconds)")

    @field_validator('base_url')
    def validate_base_url(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Base URL must start with http:// or https://')
        return v.rstrip('/')


class ClientAuthConfig(BaseModel):
    """Bearer keys accepted from API clients"""
    allowed_keys: List[str] = Field(description="List of allowed client API keys")

    @field_validator('allowed_keys')
    def validate_allowed_keys(cls, v):
        if not v:
            raise ValueError("At least one client API key must be configured")
        if any(not key.strip() for key in v):
            raise ValueError("Client API keys must not be blank")
        return v


class GenerationConfig(BaseModel):
    """Default generation settings"""
    max_tokens: int = Field(default=256, ge=1, description="Maximum tokens per generation")
    temperature: float = Field(default=0.0, ge=0.0, description="Sampling temperature")
    top_p: float = Field(default=0.0, ge=0.0, le=1.0, description="Nucleus sampling threshold")
    stop_sequences: List[str] = Field(default_factory=list, description="Additional stop sequences")
    auto_invoke: bool = Field(default=True, description="Run the function-call protocol by default")


class FeaturesConfig(BaseModel):
    """Function-calling and logging switches"""
    enable_function_calling: bool = Field(default=True, description="Enable function calling globally")
    log_level: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL, or DISABLED")
    prompt_template: Optional[str] = Field(default=None, description="Custom function-calling instruction template")
    stop_labels: List[str] = Field(default_factory=lambda: list(DEFAULT_STOP_LABELS), description="Labels that end a generation")

    @field_validator('log_level')
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "DISABLED"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('prompt_template')
    def validate_prompt_template(cls, v):
        if v:
            if "{functions}" not in v:
                raise ValueError("Custom prompt template must contain the {functions} placeholder")
        return v


class AppConfig(BaseModel):
    """Top-level configuration document"""
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(description="Text-completion backend")
    client_authentication: ClientAuthConfig = Field(description="Client authentication configuration")
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)


class ConfigLoader:
    """Loads and caches the YAML configuration document"""

    def __init__(self, config_path: str = None):
        self.config_path = config_path or os.environ.get("TEXTCALL_CONFIG", "config.yaml")
        self._config: AppConfig = None

    def load_config(self) -> AppConfig:
        """Read, parse and validate the configuration file"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(
                f"No configuration at '{self.config_path}'. Start from 'config.example.yaml' "
                f"or point TEXTCALL_CONFIG at an existing file."
            )

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in '{self.config_path}': {e}")
        except OSError as e:
            raise ValueError(f"Cannot read '{self.config_path}': {e}")

        if not config_data:
            raise ValueError(f"Configuration file '{self.config_path}' has no content")

        try:
            self._config = AppConfig(**config_data)
            return self._config
        except Exception as e:
            raise ValueError(f"Invalid configuration in '{self.config_path}': {e}")

    @property
    def config(self) -> AppConfig:
        """Validated configuration, loaded on first access"""
        if self._config is None:
            self.load_config()
        return self._config

    def reload_config(self) -> AppConfig:
        """Discard the cached configuration and read it again"""
        self._config = None
        return self.load_config()

    def get_generation_settings(self) -> GenerationSettings:
        """Default generation settings, with auto-invoke gated by the global feature flag"""
        generation = self.config.generation
        return GenerationSettings(
            max_tokens=generation.max_tokens,
            temperature=generation.temperature,
            top_p=generation.top_p,
            stop_sequences=frozenset(generation.stop_sequences),
            auto_invoke=generation.auto_invoke and self.config.features.enable_function_calling,
        )

    def get_allowed_client_keys(self) -> set:
        """Client keys as a set for membership checks"""
        return set(self.config.client_authentication.allowed_keys)

    def get_log_level(self) -> str:
        """Normalized log level name"""
        return self.config.features.log_level


config_loader = ConfigLoader()

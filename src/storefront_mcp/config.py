import json
import os
from typing import Optional

from pydantic import BaseModel, Field


class SupabaseConfig(BaseModel):
    url: str
    anon_key: str
    timeout: float = 15.0


class StorageConfig(BaseModel):
    state_dir: str = "/data/storefront"


class Preferences(BaseModel):
    currency_symbol: str = "₾"
    confirm_before_order: bool = True
    max_order_amount: float = 5000.00
    payment_methods: list[str] = Field(default_factory=lambda: ["cash", "card"])


class StorefrontConfig(BaseModel):
    supabase: SupabaseConfig
    storage: StorageConfig = Field(default_factory=StorageConfig)
    preferences: Preferences = Field(default_factory=Preferences)


def load_config(path: Optional[str] = None) -> StorefrontConfig:
    config_path = path or os.environ.get("CONFIG_PATH", "/config/config.json")
    if not os.path.exists(config_path):
        raise FileNotFoundError(
            f"Config file not found at {config_path}. "
            "Copy config.json.example to the config path and fill in your details."
        )
    with open(config_path) as f:
        data = json.load(f)
    config = StorefrontConfig(**data)
    state_dir = os.environ.get("STOREFRONT_STATE_DIR")
    if state_dir:
        config.storage.state_dir = state_dir
    return config

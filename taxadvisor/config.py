import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from dotenv import load_dotenv

CONFIG_PATH = Path("config.json")
ENV_OVERRIDE_KEY = "TAXADVISOR_ENV_OVERRIDES_CONFIG"
ENV_OVERRIDE_TRUE = {"1", "true", "yes", "on"}
MASK = "********"


class GeminiConfig(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: Optional[str] = None
    model: str = "gemini-3-flash-preview"
    max_iterations: int = 6
    timeout_s: float = 60.0

    model_config = {"protected_namespaces": ()}


class ImageModelConfig(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: Optional[str] = None
    model: str = "gemini-3.1-flash-image-preview"
    timeout_s: float = 60.0

    model_config = {"protected_namespaces": ()}


class AppSettings(BaseModel):
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    image: ImageModelConfig = Field(default_factory=ImageModelConfig)
    database_path: str = "taxadvisor.db"
    seed_demo_data: bool = True
    default_user_id: str = "me"
    host: str = "0.0.0.0"
    port: int = 8000

    def to_safe_dict(self) -> dict:
        data = self.model_dump()
        for section in ("gemini", "image"):
            if data[section].get("api_key"):
                data[section]["api_key"] = MASK
        return data

    model_config = {"protected_namespaces": ()}


def _load_from_env() -> dict:
    load_dotenv()
    gemini = {
        "api_key": os.getenv("GEMINI_API_KEY"),
        "base_url": os.getenv("GEMINI_BASE_URL"),
        "model": os.getenv("GEMINI_MODEL"),
        "max_iterations": os.getenv("GEMINI_MAX_ITERATIONS"),
        "timeout_s": os.getenv("GEMINI_TIMEOUT_S"),
    }
    image = {
        "api_key": os.getenv("NANO_BANANA_API_KEY"),
        "base_url": os.getenv("NANO_BANANA_BASE_URL"),
        "model": os.getenv("NANO_BANANA_MODEL"),
        "timeout_s": os.getenv("NANO_BANANA_TIMEOUT_S"),
    }
    env_map = {
        "database_path": os.getenv("DATABASE_PATH"),
        "default_user_id": os.getenv("DEFAULT_USER_ID"),
        "seed_demo_data": os.getenv("SEED_DEMO_DATA"),
        "host": os.getenv("HOST"),
        "port": os.getenv("PORT"),
    }
    cleaned: Dict[str, Any] = {k: v for k, v in env_map.items() if v not in (None, "")}
    gemini_cleaned = {k: v for k, v in gemini.items() if v not in (None, "")}
    image_cleaned = {k: v for k, v in image.items() if v not in (None, "")}
    if "max_iterations" in gemini_cleaned:
        gemini_cleaned["max_iterations"] = int(gemini_cleaned["max_iterations"])
    if "timeout_s" in gemini_cleaned:
        gemini_cleaned["timeout_s"] = float(gemini_cleaned["timeout_s"])
    if "timeout_s" in image_cleaned:
        image_cleaned["timeout_s"] = float(image_cleaned["timeout_s"])
    if "port" in cleaned:
        cleaned["port"] = int(cleaned["port"])
    if "seed_demo_data" in cleaned:
        cleaned["seed_demo_data"] = str(cleaned["seed_demo_data"]).lower() in ENV_OVERRIDE_TRUE
    if gemini_cleaned:
        cleaned["gemini"] = gemini_cleaned
    if image_cleaned:
        cleaned["image"] = image_cleaned
    return cleaned


def _env_overrides_config() -> bool:
    return str(os.getenv(ENV_OVERRIDE_KEY, "")).strip().lower() in ENV_OVERRIDE_TRUE


def _merge_section(primary: Dict[str, Any], secondary: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Merge a nested section so a partial override keeps the other fields."""
    low = secondary.get(key) if isinstance(secondary.get(key), dict) else {}
    high = primary.get(key) if isinstance(primary.get(key), dict) else {}
    return {**low, **high}


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    env_data = _load_from_env()
    path = config_path or CONFIG_PATH
    file_data: Dict[str, Any] = {}
    if path.exists():
        try:
            file_data = json.loads(path.read_text())
        except Exception:
            file_data = {}
    allow_env_overrides = _env_overrides_config()
    # Config wins by default; allow env overrides only when explicitly enabled.
    if allow_env_overrides:
        high, low = env_data, file_data
    else:
        high, low = file_data, env_data
    merged = {**low, **high}
    for section in ("gemini", "image"):
        merged[section] = _merge_section(high, low, section)
        env_key = (env_data.get(section) or {}).get("api_key")
        if not merged[section].get("api_key") and env_key:
            merged[section]["api_key"] = env_key
    return AppSettings(**merged)


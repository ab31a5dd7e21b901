"""
Runtime settings for the clinical insights service.

Settings are read from a YAML file and then overridden by environment
variables, so deployments can keep secrets out of the file.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "settings.yaml"


class ModelSettings(BaseModel):
    """Which model powers each LLM-backed step."""

    extraction_model: str = "gpt-4o-mini"
    query_model: str = "gpt-4o-mini"
    recommendation_model: str = "gpt-4o"
    redaction_model: str = "gpt-4o-mini"
    plan_model: str = "gpt-4o"
    simplify_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"


class InsightSettings(BaseModel):
    """Settings for the pipeline and its adapters."""

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    ncbi_api_key: Optional[str] = None
    data_dir: Path = Field(default=Path("data"))
    models: ModelSettings = Field(default_factory=ModelSettings)

    min_query_length: int = 10
    min_follow_up_length: int = 5

    llm_timeout_seconds: float = 30.0
    literature_timeout_seconds: float = 10.0
    branch_timeout_seconds: float = 20.0
    literature_branch_timeout_seconds: float = 15.0
    stream_queue_size: int = 16

    @classmethod
    def from_config(cls, config_path: Optional[Path] = None) -> "InsightSettings":
        """
        Load settings from YAML, then apply environment overrides.

        A missing config file is not an error; defaults are used.
        """
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        data: dict = {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            pass

        settings = cls.model_validate(data)

        env_overrides = {
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "openai_base_url": os.getenv("OPENAI_BASE_URL"),
            "ncbi_api_key": os.getenv("NCBI_API_KEY"),
            "data_dir": os.getenv("INSIGHTS_DATA_DIR"),
        }
        updates = {k: v for k, v in env_overrides.items() if v}
        if "data_dir" in updates:
            updates["data_dir"] = Path(updates["data_dir"])

        return settings.model_copy(update=updates)

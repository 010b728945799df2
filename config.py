from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys (only needed when the chat agent is enabled)
    anthropic_api_key: Optional[str] = None

    # AWS Credentials (optional — only needed when using S3)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"

    # S3 Configuration (optional — falls back to local data/ dir if unset)
    s3_bucket: Optional[str] = None
    s3_prefix: str = ""

    # Local fallback
    data_path: str = "data"

    # Dataset files, relative to data_path or s3_prefix
    tags_file: str = "raw/tags.json"
    movies_file: str = "raw/movies.json"
    scores_file: str = "scores/tagdl.csv"
    vector_size: int = 1094

    # Search Configuration
    default_limit: int = 10
    search_mode: Literal["tree", "scan"] = "tree"

    # Agent Configuration
    use_agent: bool = False
    llm_model: str = "anthropic:claude-haiku-4-5-20251001"
    system_prompt: str = (
        "You are a movie recommendation assistant. Use the similar_movies tool "
        "to find movies whose tag profile is closest to the one the user names. "
        "Only recommend titles returned by the tool, and mention their similarity "
        "scores. If the tool finds no matching movie, say so."
    )

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

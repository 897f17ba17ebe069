from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    COHERE_API_KEY: str | None = None
    COHERE_MODEL: str = "embed-english-v3.0"
    COHERE_INPUT_TYPE: str = "clustering"
    EMBED_TIMEOUT: float = 10.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY: str = "similar_links:embeddings"
    USE_REDIS: bool = False  # Set to True to keep embeddings in Redis instead of a JSON file

    EMBEDDINGS_PATH: str = "metadata/embeddings.json"
    METADATA_PATH: str = "metadata/full.yaml"
    BACKLINKS_PATH: str = "metadata/backlinks.yaml"
    SIMILARS_DIR: str = "metadata/annotations/similars"
    BACKLINKS_URL_PREFIX: str = "/metadata/annotations/backlinks/"

    MAX_EMBED_AT_ONCE: int = 750
    BEST_N_EMBEDDINGS: int = 20
    ITERATION_LIMIT: int = 2000

    FOREST_TREES: int = 10
    LEAF_SIZE: int = 16
    FOREST_SEED: int = 42

    WORKERS: int = 8

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


settings = Settings()

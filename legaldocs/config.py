# legaldocs/config.py
from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode
from pydantic import Field, field_validator


class Settings(BaseSettings):
    # DB
    database_url: str = Field("postgresql+asyncpg://localhost:5432/legaldocs")

    # Redis (upload progress status)
    redis_url: str = Field("redis://localhost:6379/0")
    upload_status_ttl: int = Field(60 * 60)

    # MinIO / S3 object store
    minio_endpoint: str = Field("localhost:9000")
    minio_access_key: Optional[str] = Field(None)
    minio_secret_key: Optional[str] = Field(None)
    minio_secure: bool = Field(False)
    storage_bucket: str = Field("documents")
    # base used to build public object URLs, e.g. https://cdn.example.org
    storage_public_url: Optional[str] = Field(None)

    # Conversion service (served by this app at /convert-document)
    conversion_url: str = Field("http://localhost:8000/convert-document")

    # n8n workflows
    vector_workflow_url: str = Field("http://localhost:5678/webhook/pdf-to-vector")
    compare_qa_url: str = Field("http://localhost:5678/webhook/compare-documents")
    civic_qa_url: str = Field("http://localhost:5678/webhook/finance-bill")
    workflow_token: Optional[str] = Field(None)
    http_timeout: float = Field(60.0)

    # Per-principal session state (in process)
    session_idle_ttl: int = Field(2 * 60 * 60)
    max_sessions: int = Field(10000)

    # Uploads
    max_upload_size: int = Field(50 * 1024 * 1024)
    allowed_extensions: Annotated[List[str], NoDecode] = Field([".pdf"])
    allowed_content_types: Annotated[List[str], NoDecode] = Field(["application/pdf"])

    # Auth: HS256 secret used to verify bearer tokens
    jwt_secret: str = Field("change_me")

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = Field(["*"])

    log_level: str = Field("INFO")
    host: str = Field("0.0.0.0")
    port: int = Field(8000)

    # Pydantic v2 config
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # ---- field validators (pydantic v2 style) ----
    @field_validator("allowed_extensions", "allowed_content_types", mode="before")
    def _split_list(cls, v):
        """
        Allows ALLOWED_EXTENSIONS / ALLOWED_CONTENT_TYPES as comma-separated strings in env.
        Example: '.pdf,.PDF'
        """
        if isinstance(v, str):
            return [s.strip().lower() for s in v.split(",") if s.strip()]
        return [str(s).lower() for s in v]

    @field_validator("cors_origins", mode="before")
    def _split_cors_origins(cls, v):
        """
        Allows CORS_ORIGINS as comma-separated string in env, or as a list.
        """
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level", mode="before")
    def _normalize_log_level(cls, v):
        if v is None:
            return "INFO"
        return str(v).strip().upper()

    @field_validator("max_upload_size", mode="before")
    def _validate_max_upload_size(cls, v):
        """
        Accepts the env value as string or int and ensures it's a positive int.
        """
        if isinstance(v, str) and v.isdigit():
            v = int(v)
        if not isinstance(v, int) or v <= 0:
            raise ValueError("MAX_UPLOAD_SIZE must be a positive integer")
        return v

    def public_base_url(self) -> str:
        if self.storage_public_url:
            return self.storage_public_url.rstrip("/")
        scheme = "https" if self.minio_secure else "http"
        return f"{scheme}://{self.minio_endpoint}"


settings = Settings()

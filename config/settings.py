"""
Centralized configuration for the Funding Follow-Up Engine.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # Sender
    company_name: str = Field(default="Today Capital Group", env="COMPANY_NAME")

    # LLM provider selection
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # openai | bedrock | none
    max_tokens: int = Field(default=1024, env="MAX_TOKENS")
    enrichment_temperature: float = Field(default=0.3, env="ENRICHMENT_TEMPERATURE")
    message_temperature: float = Field(default=0.7, env="MESSAGE_TEMPERATURE")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_llm_model: str = Field(default="gpt-4o-mini", env="OPENAI_LLM_MODEL")

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    bedrock_llm_model_id: str = Field(
        default="anthropic.claude-3-haiku-20240307-v1:0", env="BEDROCK_LLM_MODEL_ID"
    )

    # Enrichment
    enrichment_batch_size: int = Field(default=5, env="ENRICHMENT_BATCH_SIZE")

    # CRM workflow webhooks
    crm_webhook_base: str = Field(
        default="https://services.leadconnectorhq.com/hooks", env="CRM_WEBHOOK_BASE"
    )
    crm_location_id: Optional[str] = Field(default=None, env="CRM_LOCATION_ID")
    crm_webhook_hot_lead: Optional[str] = Field(default=None, env="CRM_WEBHOOK_HOT_LEAD")
    crm_webhook_new_lead: Optional[str] = Field(default=None, env="CRM_WEBHOOK_NEW_LEAD")
    crm_webhook_stale_lead: Optional[str] = Field(default=None, env="CRM_WEBHOOK_STALE_LEAD")
    crm_webhook_incomplete_app: Optional[str] = Field(default=None, env="CRM_WEBHOOK_INCOMPLETE_APP")
    crm_webhook_docs_needed: Optional[str] = Field(default=None, env="CRM_WEBHOOK_DOCS_NEEDED")
    crm_webhook_nurture: Optional[str] = Field(default=None, env="CRM_WEBHOOK_NURTURE")
    crm_webhook_abandonment: Optional[str] = Field(default=None, env="CRM_WEBHOOK_ABANDONMENT")
    crm_api_key: Optional[str] = Field(default=None, env="CRM_API_KEY")

    # Sequencing
    dedupe_stage_actions: bool = Field(default=True, env="DEDUPE_STAGE_ACTIONS")
    stage_claim_capacity: int = Field(default=10000, env="STAGE_CLAIM_CAPACITY")
    stage_claim_ttl_hours: float = Field(default=720, env="STAGE_CLAIM_TTL_HOURS")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    api_title: str = Field(default="Funding Follow-Up Engine API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    debug: bool = Field(default=False, env="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def llm_enabled(self) -> bool:
        if self.is_openai:
            return bool(self.openai_api_key)
        return self.is_bedrock

    @property
    def llm_model_id(self) -> str:
        if self.is_openai:
            return self.openai_llm_model
        return self.bedrock_llm_model_id


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

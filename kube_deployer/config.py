"""
Configuration settings for the deploy job controller.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    APP_NAME: str = Field(default="kube-deployer", description="Application name")

    # HTTP Configuration
    HTTP_PORT: int = Field(default=8002, description="Service port")

    # Kubernetes Configuration
    K8S_IN_CLUSTER: bool = Field(default=False, description="Running in cluster")
    K8S_CONTEXT: Optional[str] = Field(default=None, description="Kubernetes context of the default cluster")
    KUBECONFIG_PATH: Optional[str] = Field(default=None, description="Kubeconfig file holding one context per cluster id")

    # Deploy job Configuration
    DEPLOY_TIMEOUT_SECS: int = Field(default=600, description="Readiness timeout when the job sets none")
    POLL_INTERVAL_SECS: float = Field(default=2, description="Delay between readiness checks")
    CATALOG_PATH: Optional[str] = Field(default=None, description="JSON catalog of environments and services")
    JOB_RETENTION_SECS: int = Field(default=3600, description="How long finished jobs stay queryable")

    # Service Configuration
    LOG_LEVEL: str = Field(default="info", description="Log level: info|debug|warning")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()

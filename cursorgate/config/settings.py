"""Runtime settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CURSORGATE_", extra="ignore")

    app_name: str = "CursorGate"
    log_level: str = "info"
    # DEBUG 下是否打印完整请求正文；False 时只打 method/path/headers + body_size
    log_full_request_body: bool = False
    host: str = "127.0.0.1"
    port: int = 3000

    upstream_url: str = "https://api2.cursor.sh/aiserver.v1.AiService/StreamChat"
    upstream_timeout_seconds: float = 60.0
    upstream_max_connections: int = 100
    upstream_max_keepalive_connections: int = 20

    client_version: str = "0.42.3"
    client_timezone: str = "Asia/Shanghai"
    ghost_mode: bool = False
    # 固定 x-cursor-checksum；为空时每次请求随机生成
    checksum: str = ""

    instruction: str = "Always respond in 中文"
    project_path: str = "/path/to/project"
    # /v1/models 返回的模型列表，逗号分隔
    models: str = "claude-3-5-sonnet-20241022,claude-3-opus,gpt-4o,gpt-4o-mini,o1-mini,o1-preview,cursor-small"

    max_request_body_bytes: int = 2_000_000
    max_messages_count: int = Field(default=500, ge=1)


settings = Settings()

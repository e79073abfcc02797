"""Configuration schema using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OwnerConfig(BaseModel):
    """Who nova works for and how to reach them."""
    number: str = ""  # Owner phone number, e.g. "+15551234567"
    sms_gateway_domain: str = "msg.fi.google.com"  # Email-to-SMS gateway
    notify_account: str = "nova-sms"  # Mailbox account used for owner notifications
    notify_subject: str = "Nova Update"
    fallback_email: str = ""  # Used when no owner number is configured

    @property
    def gateway_address(self) -> str | None:
        """Owner's email-to-SMS address, or None without a number."""
        if not self.number:
            return None
        return f"{self.number}@{self.sms_gateway_domain}"


class SchedulerConfig(BaseModel):
    """Reminder scheduling configuration."""
    merge_window_ms: int = Field(default=2 * 60 * 60 * 1000, ge=0, description="Radius for merging nearby reminders")
    sweep_interval_s: float = Field(default=30.0, gt=0, description="Seconds between reminder sweeps")
    index_key: str = "nova_wakeups"
    default_delay_ms: int = Field(default=15 * 60 * 1000, gt=0)
    daily_summary_hour: int = Field(default=18, ge=0, le=23)


class EmailAccountConfig(BaseModel):
    """A mailbox account known to the mail transport."""
    id: str
    name: str = ""
    email: str = ""


class EmailConfig(BaseModel):
    """Email action configuration."""
    accounts: list[EmailAccountConfig] = Field(default_factory=list)
    default_limit: int = Field(default=5, ge=1, le=50)
    search_limit: int = Field(default=3, ge=1, le=5)


class StoreConfig(BaseModel):
    """Durable key-value / sorted-set store."""
    redis_url: str = ""  # Empty means in-memory (no persistence across restarts)
    history_key: str = "nova_conversation_history"
    history_length: int = Field(default=6, ge=2, le=100)


class AgentConfig(BaseModel):
    """Reasoning model configuration."""
    model: str = "gpt-4o-mini"
    temperature: float = 0.4
    memory_temperature: float = 0.2
    api_key: str = ""
    api_base: str | None = None


class MemoryConfig(BaseModel):
    """Long-term memory (mem0 platform) configuration."""
    enabled: bool = True
    api_key: str = ""
    user_id: str = "owner"
    search_limit: int = Field(default=8, ge=1, le=50)


class GatewayConfig(BaseModel):
    """Webhook server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    allow_from: list[str] = Field(default_factory=list)  # Allowed sender numbers


class Config(BaseSettings):
    """Root configuration for nova."""
    model_config = SettingsConfigDict(
        env_prefix="NOVA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    owner: OwnerConfig = Field(default_factory=OwnerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    def summary(self) -> dict:
        """Configuration overview with secrets redacted."""
        def redacted(value: str) -> str:
            return "set" if value else "missing"

        return {
            "port": self.gateway.port,
            "services": {
                "llm": redacted(self.agent.api_key),
                "mem0": redacted(self.memory.api_key),
                "redis": redacted(self.store.redis_url),
                "owner_number": redacted(self.owner.number),
            },
            "accounts": [a.id for a in self.email.accounts],
            "merge_window_min": self.scheduler.merge_window_ms // 60_000,
        }

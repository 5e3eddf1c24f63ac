"""
服务配置

所有配置项都来自环境变量（或仓库根目录的 .env），由 pydantic-settings 校验。
密钥类配置在非本地环境不允许使用占位值 "changethis"。
"""
import secrets
import warnings
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    """BACKEND_CORS_ORIGINS 支持逗号分隔的字符串或 JSON 列表"""
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    服务配置

    优先级：环境变量 > .env 文件 > 默认值。
    """
    model_config = SettingsConfigDict(
        # 从 backend/ 目录启动，.env 在仓库根目录
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    # 与认证服务共享的 JWT 密钥（HS256），用于校验请求里的 token
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "MEC Referrals"
    SENTRY_DSN: HttpUrl | None = None

    # 初始管理员邮箱（initial_data.py 创建），为空则不创建
    FIRST_ADMIN_EMAIL: str | None = None

    # 前端站点地址，推荐链接跳转的目标
    FRONTEND_URL: str = "http://localhost:5173"

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # Redis 配置（定时任务的分布式锁）
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None

    # 推荐归因 Cookie 配置（first-click 归因）
    REFERRAL_COOKIE_NAME: str = "mec_referral"
    REFERRAL_COOKIE_DAYS: int = 30

    # 支付平台 webhook 配置
    # 配置后要求请求头 asaas-access-token 与之相同
    PAYMENT_WEBHOOK_TOKEN: str | None = None
    # 默认订阅周期（天），checkout 时未指定则使用
    SUBSCRIPTION_PERIOD_DAYS: int = 365

    # 大使（推荐人）佣金配置
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("15.00")  # 平台默认佣金比例（%）

    # 通知配置
    NOTIFICATIONS_PAGE_LIMIT: int = 50  # 通知列表最多返回条数
    NOTIFICATION_POLL_INTERVAL_SECONDS: int = 30  # 前端未读数轮询间隔（秒）

    # 对账任务配置
    RECONCILE_INTERVAL_MINUTES: int = 15
    RECONCILE_LOCK_TTL_SECONDS: int = 60 * 10

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值 "changethis"

        本地环境只警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("PAYMENT_WEBHOOK_TOKEN", self.PAYMENT_WEBHOOK_TOKEN)

        return self


settings = Settings()  # type: ignore

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    POSTGRES_CONNECTION_STRING: str = os.getenv("POSTGRES_CONNECTION_STRING", "")

    # API
    API_TOKEN: str = os.getenv("API_TOKEN", "")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Notifications (пустой URL — уведомления отключены)
    NOTIFICATIONS_BASE_URL: str = os.getenv("NOTIFICATIONS_BASE_URL", "")
    NOTIFICATIONS_MAX_RETRIES: int = int(os.getenv("NOTIFICATIONS_MAX_RETRIES", "3"))
    NOTIFICATIONS_RETRY_DELAY: float = float(os.getenv("NOTIFICATIONS_RETRY_DELAY", "1.0"))

    @property
    def DATABASE_URL(self) -> str:
        """Асинхронный URL для приложения"""
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql+asyncpg://")

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Синхронный URL для Alembic"""
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql://")


settings = Settings()
